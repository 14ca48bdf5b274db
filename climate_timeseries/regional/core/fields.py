"""
In-memory containers for gridded data read from climate model files.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import xarray as xr

CANONICAL_DIMS = ('time', 'lat', 'lon')


@dataclass(frozen=True)
class GridAxis:
    """A 1-D coordinate axis (longitude or latitude) as read from a source."""
    name: str
    values: np.ndarray
    units: Optional[str] = None

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float64, copy=True).ravel()
        values.setflags(write=False)
        object.__setattr__(self, 'values', values)

    def __len__(self) -> int:
        return int(self.values.size)

    @property
    def is_monotonic(self) -> bool:
        if self.values.size < 2:
            return True
        steps = np.diff(self.values)
        return bool(np.all(steps > 0) or np.all(steps < 0))

    @property
    def bounds(self) -> Tuple[float, float]:
        return float(self.values.min()), float(self.values.max())


@dataclass(frozen=True)
class VariableMetadata:
    """Descriptive attributes of a data variable."""
    name: str
    units: Optional[str] = None
    long_name: Optional[str] = None
    fill_value: Optional[float] = None
    source_dims: Tuple[str, ...] = field(default_factory=tuple)


@dataclass
class Field3D:
    """
    A physical quantity on a regular grid with dims ``(time, lat, lon)``.

    ``fill_value`` is the sentinel marking missing cells. NaN cells are
    treated as missing as well.
    """
    data: xr.DataArray
    fill_value: Optional[float] = None
    units: Optional[str] = None
    long_name: Optional[str] = None
    source: Optional[str] = None

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    @property
    def n_time(self) -> int:
        return int(self.data.sizes['time'])

    @property
    def values(self) -> np.ndarray:
        return np.asarray(self.data.values)

    @property
    def lon(self) -> np.ndarray:
        return np.asarray(self.data['lon'].values)

    @property
    def lat(self) -> np.ndarray:
        return np.asarray(self.data['lat'].values)

    def missing_mask(self) -> np.ndarray:
        """Boolean array, True where a cell is NaN or equals the fill value."""
        values = self.values
        mask = np.isnan(values) if np.issubdtype(values.dtype, np.floating) else np.zeros(values.shape, bool)
        if self.fill_value is not None and not np.isnan(self.fill_value):
            mask |= values == self.fill_value
        return mask
