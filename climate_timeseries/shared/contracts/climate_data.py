"""
Pydantic data contracts shared by the regional time-series pipeline.

These contracts define the validated inputs the pipeline accepts from the
configuration/CLI layer: region boxes with an explicit longitude convention
and the enumerations used to select pipeline behaviour.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator


class LongitudeConvention(str, Enum):
    """Longitude conventions found in gridded climate data."""
    ZERO_TO_360 = "0_360"
    MINUS180_TO_180 = "-180_180"


class CalendarKind(str, Enum):
    """CF calendar variants supported by the calendar normalizer."""
    STANDARD = "standard"
    NO_LEAP = "no_leap"
    ALL_LEAP = "all_leap"
    DAY_360 = "360_day"


class Weighting(str, Enum):
    """Spatial weighting used when averaging a region."""
    NONE = "none"
    COS_LAT = "cos_lat"


class SourceOrdering(str, Enum):
    """How the pipeline orders sources before stacking."""
    CALLER = "caller"  # trust the given order, validate the stitched dates
    TIME = "time"      # sort by the first normalized date of each source


class RegionBounds(BaseModel):
    """
    Latitude/longitude box with an explicitly declared longitude convention.

    ``lon_min > lon_max`` describes a box that crosses the seam of the
    declared convention (e.g. 350 -> 10 in 0-360).
    """
    name: str = Field(default="custom", description="Region label used in reports")
    lat_min: float = Field(..., ge=-90, le=90)
    lat_max: float = Field(..., ge=-90, le=90)
    lon_min: float
    lon_max: float
    convention: LongitudeConvention = Field(..., description="Convention the longitudes are expressed in")

    model_config = {"frozen": True}

    @field_validator('lat_max')
    @classmethod
    def validate_latitude_range(cls, v, info):
        if 'lat_min' in info.data and v < info.data['lat_min']:
            raise ValueError('lat_max must be >= lat_min')
        return v

    @model_validator(mode='after')
    def validate_longitudes(self):
        if self.convention == LongitudeConvention.ZERO_TO_360:
            low, high = 0.0, 360.0
        else:
            low, high = -180.0, 180.0
        for value in (self.lon_min, self.lon_max):
            if not low <= value <= high:
                raise ValueError(
                    f"longitude {value} outside {self.convention.value} convention [{low}, {high}]"
                )
        return self

    @property
    def crosses_seam(self) -> bool:
        return self.lon_min > self.lon_max

    def to_list(self) -> List[float]:
        """Convert to [lon_min, lon_max, lat_min, lat_max] format."""
        return [self.lon_min, self.lon_max, self.lat_min, self.lat_max]
