"""
Root logger setup for command line runs.
"""

import logging
import sys
from typing import Optional

from climate_timeseries.shared.config.pipeline_config import LoggingConfig

# Libraries that log at INFO on every file open
NOISY_LOGGERS = ('matplotlib', 'fsspec', 'h5py', 'netCDF4', 'PIL')


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure the root logger: stdout plus an optional log file."""
    config = config or LoggingConfig()

    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, config.level),
        format=config.format,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger('climate_timeseries')
