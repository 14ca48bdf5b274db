"""
Plotting for regional series.
"""

from .series_plot import plot_annual_series

__all__ = ['plot_annual_series']
