"""
Core components of the regional time-series pipeline.
"""

from .calendar import CalendarNormalizer, ModelDate, TimeEncoding, normalize, parse_time_units
from .concatenator import MultiFileConcatenator, concatenate
from .fields import Field3D, GridAxis, VariableMetadata
from .grid_reader import GridHandle, GridReader, SourceData, find_axis
from .regions import (
    REGION_PRESETS,
    RegionalAggregator,
    get_region,
    normalize_longitudes,
    reduce_to_series,
    select_region,
)
from .resample import AnnualResampler, AnnualSeries, TimeSeries1D, TrendLine, resample_annual

__all__ = [
    'CalendarNormalizer', 'ModelDate', 'TimeEncoding', 'normalize', 'parse_time_units',
    'MultiFileConcatenator', 'concatenate',
    'Field3D', 'GridAxis', 'VariableMetadata',
    'GridHandle', 'GridReader', 'SourceData', 'find_axis',
    'REGION_PRESETS', 'RegionalAggregator', 'get_region',
    'normalize_longitudes', 'reduce_to_series', 'select_region',
    'AnnualResampler', 'AnnualSeries', 'TimeSeries1D', 'TrendLine', 'resample_annual',
]
