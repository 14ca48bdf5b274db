"""
Shared contracts and configuration for the climate_timeseries package.
"""
