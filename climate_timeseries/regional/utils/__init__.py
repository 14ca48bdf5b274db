"""
Utility helpers for the regional pipeline.
"""

from .io_util import (
    expand_sources,
    extract_period_from_filename,
    write_annual_csv,
    write_series_csv,
)
from .logging_util import setup_logging

__all__ = [
    'expand_sources',
    'extract_period_from_filename',
    'write_annual_csv',
    'write_series_csv',
    'setup_logging',
]
