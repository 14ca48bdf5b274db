"""
Configuration models for the regional time-series pipeline.

The pipeline receives one validated ``PipelineConfig`` object; there is no
process-wide configuration state.
"""

from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..contracts.climate_data import (
    RegionBounds,
    SourceOrdering,
    Weighting,
)


class LoggingConfig(BaseModel):
    """Logging setup applied by the CLI before a run."""

    level: str = Field(default="INFO", description="Root log level")
    format: str = Field(default='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    log_file: Optional[Path] = Field(None, description="Also write log records to this file")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        level = str(v).upper()
        if level not in {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class OutputConfig(BaseModel):
    """Where results are written; every output is optional."""

    annual_csv: Optional[Path] = None
    series_csv: Optional[Path] = None
    plot: Optional[Path] = None
    plot_title: Optional[str] = None


class PipelineConfig(BaseModel):
    """Everything one pipeline run needs."""

    sources: List[str] = Field(..., min_length=1,
                               description="Source locators in chronological order; glob patterns allowed")
    variable: str = Field(..., min_length=1, description="Data variable to extract, e.g. 'tas'")
    region: Union[RegionBounds, str] = Field(..., description="Region box or preset name")
    ordering: SourceOrdering = SourceOrdering.CALLER
    weighting: Weighting = Weighting.NONE
    time_name: str = "time"
    max_workers: int = Field(default=1, ge=1, description="Concurrent source reads")
    trend: bool = Field(default=True, description="Fit a linear trend to the annual series")
    engine: Optional[str] = Field(None, description="xarray backend engine")

    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('sources', mode='before')
    @classmethod
    def coerce_sources(cls, v):
        if isinstance(v, (str, Path)):
            v = [v]
        return [str(item) for item in v]

    @field_validator('region')
    @classmethod
    def validate_region(cls, v):
        if isinstance(v, str):
            # Imported here to keep the contracts layer free of the core package
            from climate_timeseries.regional.core.regions import REGION_PRESETS
            if v.upper() not in REGION_PRESETS:
                raise ValueError(f"Unknown region preset '{v}'. Available: {list(REGION_PRESETS)}")
            return v.upper()
        return v

    def region_bounds(self) -> RegionBounds:
        """Resolve ``region`` to a RegionBounds."""
        if isinstance(self.region, RegionBounds):
            return self.region
        from climate_timeseries.regional.core.regions import get_region
        return get_region(self.region)
