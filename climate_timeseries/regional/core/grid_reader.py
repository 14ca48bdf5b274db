#!/usr/bin/env python3
"""
Reading gridded climate model output.

Sources are opened without time decoding or masking so that the raw time
offsets and the declared fill value reach the pipeline untouched; calendar
conversion and missing-value handling happen downstream.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import xarray as xr

from climate_timeseries.exceptions import (
    MalformedTimeUnits,
    SeriesPipelineError,
    ShapeError,
    SourceUnavailable,
    VariableNotFound,
)
from climate_timeseries.regional.core.calendar import TimeEncoding, parse_time_units
from climate_timeseries.regional.core.fields import (
    CANONICAL_DIMS,
    Field3D,
    GridAxis,
    VariableMetadata,
)

logger = logging.getLogger(__name__)

# Names under which each axis appears in CMIP-style and reanalysis files
AXIS_ALIASES = {
    'lon': ('lon', 'longitude', 'x'),
    'lat': ('lat', 'latitude', 'y'),
    'time': ('time', 't'),
}


class GridHandle:
    """
    An open gridded-data source.

    Use as a context manager so the underlying file is released on every
    exit path, including errors.
    """

    def __init__(self, dataset: xr.Dataset, locator: str):
        self._dataset = dataset
        self.locator = locator
        self.closed = False

    @property
    def dataset(self) -> xr.Dataset:
        if self.closed:
            raise SourceUnavailable("Handle already released", source=self.locator)
        return self._dataset

    def close(self):
        if not self.closed:
            self._dataset.close()
            self.closed = True
            logger.debug(f"Released {self.locator}")

    def __enter__(self) -> "GridHandle":
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"{self.__class__.__name__}({self.locator!r}, {state})"


def find_axis(handle: GridHandle, name: str) -> str:
    """
    Resolve an axis name against the aliases it may appear under.

    Returns:
        Name of the matching variable in the source

    Raises:
        VariableNotFound: If neither the name nor any alias is present
    """
    ds = handle.dataset
    if name in ds.variables:
        return name

    for canonical, aliases in AXIS_ALIASES.items():
        if name == canonical or name in aliases:
            for alias in aliases:
                if alias in ds.variables:
                    return alias

    raise VariableNotFound(
        f"Coordinate '{name}' not found. Available: {sorted(map(str, ds.variables))}",
        source=handle.locator
    )


def _axis_role(dim: str) -> Optional[str]:
    for canonical, aliases in AXIS_ALIASES.items():
        if dim in aliases:
            return canonical
    return None


def _scalar_attr(value) -> Optional[float]:
    if value is None:
        return None
    array = np.atleast_1d(np.asarray(value))
    if array.size == 0:
        return None
    return float(array[0])


@dataclass
class SourceData:
    """Everything the pipeline needs from one source."""
    locator: str
    field: Field3D
    metadata: VariableMetadata
    lon_axis: GridAxis
    lat_axis: GridAxis
    time_offsets: np.ndarray
    time_encoding: TimeEncoding


class GridReader:
    """Opens gridded sources and extracts axes, time and data variables."""

    def __init__(self, engine: Optional[str] = None):
        """
        Args:
            engine: xarray backend engine; ``None`` lets xarray pick one
        """
        self.engine = engine

    def open(self, source_locator: Union[str, Path]) -> GridHandle:
        """
        Open a source.

        Raises:
            SourceUnavailable: If the locator does not exist or cannot be read
        """
        locator = str(source_locator)
        is_remote = '://' in locator

        if not is_remote and not Path(locator).exists():
            raise SourceUnavailable(f"Source not found: {locator}", source=locator)

        try:
            ds = xr.open_dataset(
                locator,
                decode_times=False,
                mask_and_scale=False,
                engine=self.engine,
            )
        except (OSError, ValueError, RuntimeError, KeyError) as e:
            raise SourceUnavailable(f"Cannot open source: {e}", source=locator) from e

        logger.debug(f"Opened {locator}")
        return GridHandle(ds, locator)

    def read_axis(self, handle: GridHandle, name: str) -> GridAxis:
        """
        Read a 1-D coordinate axis.

        Raises:
            VariableNotFound: If the axis is absent
            ShapeError: If the coordinate is not one-dimensional
        """
        actual = find_axis(handle, name)
        variable = handle.dataset[actual]

        if variable.ndim != 1:
            raise ShapeError(
                f"Coordinate '{actual}' has {variable.ndim} dimensions; only regular 1-D axes are supported",
                source=handle.locator
            )

        return GridAxis(
            name=actual,
            values=np.asarray(variable.values, dtype=np.float64),
            units=variable.attrs.get('units'),
        )

    def read_time(self, handle: GridHandle, name: str = 'time') -> Tuple[np.ndarray, TimeEncoding]:
        """
        Read raw time offsets and their encoding.

        Raises:
            VariableNotFound: If the time coordinate is absent
            MalformedTimeUnits: If the units attribute is missing or malformed
        """
        actual = find_axis(handle, name)
        variable = handle.dataset[actual]

        units = variable.attrs.get('units')
        if units is None:
            raise MalformedTimeUnits(f"Time coordinate '{actual}' has no units attribute",
                                     source=handle.locator)

        try:
            encoding = parse_time_units(str(units), variable.attrs.get('calendar'))
        except SeriesPipelineError as e:
            raise e.with_source(handle.locator)

        offsets = np.asarray(variable.values, dtype=np.float64).ravel()
        return offsets, encoding

    def read_variable(self, handle: GridHandle, name: str) -> Tuple[Field3D, VariableMetadata]:
        """
        Read a 3-D data variable into memory in ``(time, lat, lon)`` order.

        Raises:
            VariableNotFound: If the variable is absent
            ShapeError: If it is not 3-D over time, latitude and longitude
        """
        ds = handle.dataset
        if name not in ds.data_vars:
            raise VariableNotFound(
                f"Variable '{name}' not found. Available: {sorted(map(str, ds.data_vars))}",
                source=handle.locator
            )

        data = ds[name]
        if data.ndim != 3:
            raise ShapeError(f"Variable '{name}' has dims {data.dims}; expected (time, lat, lon)",
                             source=handle.locator)

        renames = {}
        for dim in data.dims:
            role = _axis_role(str(dim))
            if role is None:
                raise ShapeError(f"Variable '{name}' has unrecognized dimension '{dim}'",
                                 source=handle.locator)
            if role != dim:
                renames[dim] = role

        if renames:
            data = data.rename(renames)
        if set(data.dims) != set(CANONICAL_DIMS):
            raise ShapeError(f"Variable '{name}' has dims {data.dims}; expected (time, lat, lon)",
                             source=handle.locator)

        data = data.transpose(*CANONICAL_DIMS).load()

        attrs = dict(data.attrs)
        fill_value = _scalar_attr(attrs.pop('_FillValue', None))
        missing_value = _scalar_attr(attrs.pop('missing_value', None))
        if fill_value is None:
            fill_value = missing_value
        data.attrs = attrs

        metadata = VariableMetadata(
            name=name,
            units=attrs.get('units'),
            long_name=attrs.get('long_name'),
            fill_value=fill_value,
            source_dims=tuple(str(d) for d in ds[name].dims),
        )
        field = Field3D(
            data=data,
            fill_value=fill_value,
            units=metadata.units,
            long_name=metadata.long_name,
            source=handle.locator,
        )
        logger.debug(f"Read {name} {field.shape} from {handle.locator} (fill={fill_value})")
        return field, metadata

    def read_source(self, source_locator: Union[str, Path], variable: str,
                    time_name: str = 'time') -> SourceData:
        """Open a source, read everything the pipeline needs and release it."""
        with self.open(source_locator) as handle:
            lon_axis = self.read_axis(handle, 'lon')
            lat_axis = self.read_axis(handle, 'lat')
            offsets, encoding = self.read_time(handle, time_name)
            field, metadata = self.read_variable(handle, variable)

        if len(offsets) != field.n_time:
            raise ShapeError(
                f"Time coordinate has {len(offsets)} steps but '{variable}' has {field.n_time}",
                source=str(source_locator)
            )

        return SourceData(
            locator=str(source_locator),
            field=field,
            metadata=metadata,
            lon_axis=lon_axis,
            lat_axis=lat_axis,
            time_offsets=offsets,
            time_encoding=encoding,
        )

    def describe(self, source_locator: Union[str, Path]) -> dict:
        """Summarize a source's dimensions, variables and time encoding."""
        with self.open(source_locator) as handle:
            ds = handle.dataset
            summary = {
                'source': handle.locator,
                'dimensions': {str(k): int(v) for k, v in ds.sizes.items()},
                'variables': {
                    str(k): {
                        'dims': [str(d) for d in v.dims],
                        'units': v.attrs.get('units'),
                        'long_name': v.attrs.get('long_name'),
                    }
                    for k, v in ds.data_vars.items()
                },
                'time_units': None,
                'calendar': None,
            }
            try:
                time_name = find_axis(handle, 'time')
            except VariableNotFound:
                return summary
            summary['time_units'] = ds[time_name].attrs.get('units')
            summary['calendar'] = ds[time_name].attrs.get('calendar')
        return summary


def read_sources(reader: GridReader, locators: Sequence[Union[str, Path]],
                 variable: str, time_name: str = 'time') -> List[SourceData]:
    """Read several sources one after another, in the given order."""
    return [reader.read_source(locator, variable, time_name) for locator in locators]
