#!/usr/bin/env python3
"""
Regional subsetting and spatial averaging.

Region boxes declare the longitude convention they are written in, and the
source's longitude axis is converted to that convention before selection.
A CONUS box written as 234-294 therefore selects the same cells whether the
model grid runs 0-360 or -180-180.
"""

import logging
from typing import Dict, Tuple, Union

import numpy as np

from climate_timeseries.exceptions import AllMissing, EmptyRegion
from climate_timeseries.regional.core.fields import Field3D, GridAxis
from climate_timeseries.shared.contracts.climate_data import (
    LongitudeConvention,
    RegionBounds,
    Weighting,
)

logger = logging.getLogger(__name__)

_ZERO_360 = LongitudeConvention.ZERO_TO_360

# cos(lat) floor so rows at the poles still count
_MIN_COS_WEIGHT = 1e-12

# Regional boundary definitions (0-360 longitude system)
REGION_PRESETS: Dict[str, RegionBounds] = {
    'CONUS': RegionBounds(name='CONUS', lat_min=24.0, lat_max=50.0,
                          lon_min=234.0, lon_max=294.0, convention=_ZERO_360),
    'AK': RegionBounds(name='AK', lat_min=50.0, lat_max=72.0,
                       lon_min=170.0, lon_max=235.0, convention=_ZERO_360),
    'HI': RegionBounds(name='HI', lat_min=18.0, lat_max=29.0,
                       lon_min=182.0, lon_max=205.0, convention=_ZERO_360),
    'PRVI': RegionBounds(name='PRVI', lat_min=17.0, lat_max=19.0,
                         lon_min=292.0, lon_max=296.0, convention=_ZERO_360),
    'GU': RegionBounds(name='GU', lat_min=13.0, lat_max=21.0,
                       lon_min=144.0, lon_max=147.0, convention=_ZERO_360),
    'GLOBAL': RegionBounds(name='GLOBAL', lat_min=-90.0, lat_max=90.0,
                           lon_min=0.0, lon_max=360.0, convention=_ZERO_360),
}

REGION_DESCRIPTIONS = {
    'CONUS': 'Continental United States',
    'AK': 'Alaska',
    'HI': 'Hawaii',
    'PRVI': 'Puerto Rico and Virgin Islands',
    'GU': 'Guam and Northern Mariana Islands',
    'GLOBAL': 'Whole globe',
}


def get_region(name: str) -> RegionBounds:
    """Look up a preset region by name (case-insensitive)."""
    key = name.upper()
    if key not in REGION_PRESETS:
        raise KeyError(f"Unknown region '{name}'. Available: {list(REGION_PRESETS)}")
    return REGION_PRESETS[key]


def normalize_longitudes(values, convention: Union[LongitudeConvention, str]) -> np.ndarray:
    """
    Express longitudes in the given convention.

    ``0_360`` maps into [0, 360). ``-180_180`` keeps values already in
    [-180, 180] as written, so both -180 and 180 survive, and folds the
    rest into (-180, 180].
    """
    convention = LongitudeConvention(convention)
    raw = np.asarray(values, dtype=np.float64)
    lons = np.mod(raw, 360.0)
    if convention == LongitudeConvention.MINUS180_TO_180:
        lons = np.where(lons > 180.0, lons - 360.0, lons)
        lons = np.where((raw >= -180.0) & (raw <= 180.0), raw, lons)
    return lons


def _in_lon_box(lons: np.ndarray, bounds: RegionBounds) -> np.ndarray:
    if bounds.crosses_seam:
        return (lons >= bounds.lon_min) | (lons <= bounds.lon_max)
    return (lons >= bounds.lon_min) & (lons <= bounds.lon_max)


def _axis_values(axis) -> np.ndarray:
    if isinstance(axis, GridAxis):
        return axis.values
    return np.asarray(axis, dtype=np.float64)


def select_region(lon_axis, lat_axis, bounds: RegionBounds) -> Tuple[np.ndarray, np.ndarray]:
    """
    Find the axis indices inside a region box (bounds inclusive).

    Args:
        lon_axis: Source longitude axis (GridAxis or array), any convention
        lat_axis: Source latitude axis (GridAxis or array)
        bounds: Region box in its declared convention

    Returns:
        (lon_indices, lat_indices), each ascending

    Raises:
        EmptyRegion: If no longitude or no latitude falls inside the box
    """
    raw_lons = _axis_values(lon_axis)
    lats = _axis_values(lat_axis)
    lons = normalize_longitudes(raw_lons, bounds.convention)

    lon_mask = _in_lon_box(lons, bounds)
    if bounds.convention == LongitudeConvention.MINUS180_TO_180:
        # -180 and 180 are one meridian
        lon_mask |= _in_lon_box(np.where(np.abs(lons) == 180.0, -lons, lons), bounds)
    lat_mask = (lats >= bounds.lat_min) & (lats <= bounds.lat_max)

    lon_indices = np.flatnonzero(lon_mask)
    lat_indices = np.flatnonzero(lat_mask)

    if lon_indices.size == 0 or lat_indices.size == 0:
        lon_range = (float(lons.min()), float(lons.max())) if lons.size else None
        lat_range = (float(lats.min()), float(lats.max())) if lats.size else None
        raise EmptyRegion(
            f"Region '{bounds.name}' {bounds.to_list()} ({bounds.convention.value}) selects "
            f"{lon_indices.size} longitudes and {lat_indices.size} latitudes; grid spans "
            f"lon {lon_range} lat {lat_range} in that convention"
        )

    logger.debug(f"Region '{bounds.name}': {lon_indices.size} lon x {lat_indices.size} lat cells")
    return lon_indices, lat_indices


def reduce_to_series(field: Field3D, lon_indices, lat_indices,
                     weighting: Union[Weighting, str] = Weighting.NONE) -> np.ndarray:
    """
    Spatial mean of the selected cells at each time step.

    Cells that are NaN or equal to the field's fill value are ignored.

    Args:
        field: Field with dims (time, lat, lon)
        lon_indices: Longitude indices from :func:`select_region`
        lat_indices: Latitude indices from :func:`select_region`
        weighting: ``none`` for a plain mean, ``cos_lat`` for area weighting

    Returns:
        1-D float64 array, one value per time step

    Raises:
        EmptyRegion: If either index set is empty
        AllMissing: If a time step has no valid cell in the region
    """
    weighting = Weighting(weighting)
    lon_indices = np.asarray(lon_indices, dtype=np.intp)
    lat_indices = np.asarray(lat_indices, dtype=np.intp)
    if lon_indices.size == 0 or lat_indices.size == 0:
        raise EmptyRegion("No grid cells selected", source=field.source)

    selector = np.ix_(np.arange(field.n_time), lat_indices, lon_indices)
    values = field.values[selector].astype(np.float64)
    valid = ~field.missing_mask()[selector]

    if weighting == Weighting.COS_LAT:
        lats = np.asarray(field.lat, dtype=np.float64)[lat_indices]
        cos_lat = np.maximum(np.cos(np.deg2rad(lats)), _MIN_COS_WEIGHT)
        weights = cos_lat[np.newaxis, :, np.newaxis] * valid
    else:
        weights = valid.astype(np.float64)

    totals = np.where(valid, values, 0.0) * weights
    weight_sums = weights.sum(axis=(1, 2))

    empty_steps = np.flatnonzero(~valid.any(axis=(1, 2)))
    if empty_steps.size:
        raise AllMissing(
            f"All {lat_indices.size * lon_indices.size} selected cells are missing at "
            f"time step {int(empty_steps[0])} ({empty_steps.size} step(s) affected)",
            source=field.source,
            time_index=int(empty_steps[0])
        )

    return totals.sum(axis=(1, 2)) / weight_sums


class RegionalAggregator:
    """Reduces a field to a regional mean series for one region box."""

    def __init__(self, bounds: RegionBounds, weighting: Union[Weighting, str] = Weighting.NONE):
        self.bounds = bounds
        self.weighting = Weighting(weighting)

    @classmethod
    def from_preset(cls, name: str, weighting: Union[Weighting, str] = Weighting.NONE) -> "RegionalAggregator":
        return cls(get_region(name), weighting)

    def aggregate(self, field: Field3D, lon_axis=None, lat_axis=None) -> np.ndarray:
        """Select the region on the field's own axes unless others are given, then average."""
        lon_axis = field.lon if lon_axis is None else lon_axis
        lat_axis = field.lat if lat_axis is None else lat_axis
        try:
            lon_idx, lat_idx = select_region(lon_axis, lat_axis, self.bounds)
        except EmptyRegion as e:
            if field.source:
                e.with_source(field.source)
            raise
        logger.info(f"Averaging {lon_idx.size * lat_idx.size} cells over '{self.bounds.name}' "
                     f"({self.weighting.value} weighting)")
        return reduce_to_series(field, lon_idx, lat_idx, self.weighting)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.bounds.name!r}, weighting={self.weighting.value!r})"
