"""
Configuration models and loading for the regional time-series pipeline.
"""

from .pipeline_config import (
    LoggingConfig,
    OutputConfig,
    PipelineConfig,
)

from .config_loader import (
    ConfigurationError,
    ConfigurationLoader,
)

__all__ = [
    # Configuration models
    "PipelineConfig",
    "LoggingConfig",
    "OutputConfig",

    # Configuration management
    "ConfigurationLoader",
    "ConfigurationError",
]
