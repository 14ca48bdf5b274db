#!/usr/bin/env python3
"""
Stacking of per-file fields into one continuous field along time.

Model runs are split across files by period (``..._185001-189912.nc``,
``..._190001-194912.nc`` and so on). Inputs are stacked in the order they
are given; nothing here looks at the time stamps.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
import xarray as xr

from climate_timeseries.exceptions import AxisMismatch, ShapeError
from climate_timeseries.regional.core.fields import CANONICAL_DIMS, Field3D

logger = logging.getLogger(__name__)


def _check_shape(field: Field3D, position: int):
    data = field.data
    if data.ndim != 3 or tuple(data.dims) != CANONICAL_DIMS:
        raise ShapeError(
            f"Input {position} has dims {tuple(data.dims)}; expected {CANONICAL_DIMS}",
            source=field.source
        )


def _check_axes(reference: Field3D, field: Field3D, position: int):
    for dim in ('lat', 'lon'):
        expected = reference.data.sizes[dim]
        actual = field.data.sizes[dim]
        if expected != actual:
            raise AxisMismatch(
                f"Input {position} has {actual} {dim} points; input 0 has {expected}",
                source=field.source
            )

        if dim in reference.data.coords and dim in field.data.coords:
            ref_values = np.asarray(reference.data[dim].values, dtype=np.float64)
            values = np.asarray(field.data[dim].values, dtype=np.float64)
            if not np.allclose(ref_values, values, rtol=0, atol=1e-6):
                raise AxisMismatch(
                    f"Input {position} {dim} coordinates differ from input 0",
                    source=field.source
                )


def _common_fill_value(fields: Sequence[Field3D]) -> Optional[float]:
    """The shared fill value, or None when the inputs disagree."""
    fills = {f.fill_value for f in fields}
    if len(fills) == 1:
        return fills.pop()
    return None


def concatenate(fields: Sequence[Field3D]) -> Field3D:
    """
    Stack fields along the time axis in the given order.

    Args:
        fields: Fields with identical spatial axes, in chronological order

    Returns:
        Field3D whose time length is the sum of the inputs'

    Raises:
        ShapeError: If no fields are given or any field is not (time, lat, lon)
        AxisMismatch: If the spatial axes differ between fields
    """
    fields = list(fields)
    if not fields:
        raise ShapeError("No fields to concatenate")

    for position, field in enumerate(fields):
        _check_shape(field, position)
    for position, field in enumerate(fields[1:], start=1):
        _check_axes(fields[0], field, position)

    if len(fields) == 1:
        return fields[0]

    fill_value = _common_fill_value(fields)
    arrays: List[xr.DataArray] = []
    if fill_value is None and any(f.fill_value is not None for f in fields):
        # Fill sentinels differ between files, so mask them all to NaN
        logger.warning(f"Inputs declare different fill values "
                       f"{sorted({str(f.fill_value) for f in fields})}; masking to NaN")
        for field in fields:
            masked = np.where(field.missing_mask(), np.nan, field.values.astype(np.float64))
            arrays.append(field.data.copy(data=masked))
        fill_value = float('nan')
    else:
        arrays = [field.data for field in fields]

    # Spatial coordinates come from the first input
    combined = xr.concat(arrays, dim='time', coords='minimal', compat='override',
                         join='override', combine_attrs='override')

    first = fields[0]
    sources = [f.source for f in fields if f.source]
    result = Field3D(
        data=combined,
        fill_value=fill_value,
        units=first.units,
        long_name=first.long_name,
        source=", ".join(sources) if sources else None,
    )
    logger.info(f"Concatenated {len(fields)} fields into {result.shape}")
    return result


class MultiFileConcatenator:
    """Object form of :func:`concatenate`."""

    def concatenate(self, fields: Sequence[Field3D]) -> Field3D:
        return concatenate(fields)
