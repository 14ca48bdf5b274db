"""
Climate Timeseries

Regional annual time series from gridded climate model output:
- Reading netCDF sources with raw time offsets and fill values
- Calendar-aware time normalization (standard, noleap, all_leap, 360_day)
- Chronological stitching of multi-file model runs
- Regional spatial means and annual aggregation with a linear trend
"""

__version__ = "0.1.0"

from .exceptions import SeriesPipelineError
from .regional.core.pipeline import PipelineResult, RegionalSeriesPipeline, run_pipeline
from .shared.config import ConfigurationLoader, PipelineConfig

__all__ = [
    "SeriesPipelineError",
    "PipelineResult",
    "RegionalSeriesPipeline",
    "run_pipeline",
    "ConfigurationLoader",
    "PipelineConfig",
]
