"""
Regional time series from gridded climate model output.
"""
