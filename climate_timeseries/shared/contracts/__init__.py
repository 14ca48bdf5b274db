"""
Data contracts for the regional time-series pipeline.
"""

from .climate_data import (
    CalendarKind,
    LongitudeConvention,
    RegionBounds,
    SourceOrdering,
    Weighting,
)

__all__ = [
    "CalendarKind",
    "LongitudeConvention",
    "RegionBounds",
    "SourceOrdering",
    "Weighting",
]
