"""
Shared fixtures: tiny netCDF files shaped like CMIP monthly output.
"""

from pathlib import Path

import numpy as np
import pytest
import xarray as xr

from climate_timeseries.regional.core.fields import Field3D

LATS = np.array([30.0, 40.0])
LONS = np.array([250.0, 260.0])


def write_grid(path, values, offsets, units="days since 1850-01-01", calendar="noleap",
               lats=LATS, lons=LONS, fill_value=None, variable="tas", lat_name="lat",
               lon_name="lon", time_attrs=True):
    """Write a (time, lat, lon) variable with a numeric time axis to ``path``."""
    values = np.asarray(values, dtype=np.float32)
    ds = xr.Dataset(
        {variable: (["time", lat_name, lon_name], values,
                    {"units": "K", "long_name": "Near-Surface Air Temperature"})},
        coords={
            "time": ("time", np.asarray(offsets, dtype=np.float64)),
            lat_name: (lat_name, np.asarray(lats, dtype=np.float64), {"units": "degrees_north"}),
            lon_name: (lon_name, np.asarray(lons, dtype=np.float64), {"units": "degrees_east"}),
        },
    )
    if time_attrs:
        ds["time"].attrs = {"units": units}
        if calendar is not None:
            ds["time"].attrs["calendar"] = calendar

    encoding = {}
    if fill_value is not None:
        encoding[variable] = {"_FillValue": np.float32(fill_value)}
    ds.to_netcdf(path, engine="netcdf4", encoding=encoding)
    ds.close()
    return Path(path)


def uniform_values(step_values, n_lat=2, n_lon=2):
    """A field whose cells all equal ``step_values[t]`` at step t."""
    steps = np.asarray(step_values, dtype=np.float64)
    return np.broadcast_to(steps[:, None, None], (steps.size, n_lat, n_lon)).copy()


def make_field(values, lats=LATS, lons=LONS, fill_value=None, source=None):
    """In-memory Field3D with canonical dims."""
    values = np.asarray(values, dtype=np.float64)
    data = xr.DataArray(
        values,
        dims=("time", "lat", "lon"),
        coords={"time": np.arange(values.shape[0], dtype=np.float64), "lat": lats, "lon": lons},
    )
    return Field3D(data=data, fill_value=fill_value, units="K", source=source)


@pytest.fixture
def two_part_run(tmp_path):
    """Two consecutive noleap files covering January to April 1850."""
    first = write_grid(tmp_path / "tas_Amon_TEST_historical_r1i1p1f1_gn_185001-185002.nc",
                       uniform_values([280.0, 282.0]), [0.0, 31.0])
    second = write_grid(tmp_path / "tas_Amon_TEST_historical_r1i1p1f1_gn_185003-185004.nc",
                        uniform_values([284.0, 286.0]), [59.0, 90.0])
    return first, second


@pytest.fixture
def monthly_run(tmp_path):
    """Two years of noleap monthly mid-points in one file, value = 270 + month index."""
    month_starts = np.cumsum([0, 31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30])
    offsets = np.concatenate([month_starts + 15.0, month_starts + 365 + 15.0])
    values = uniform_values(270.0 + np.arange(24))
    return write_grid(tmp_path / "tas_Amon_TEST_historical_r1i1p1f1_gn_185001-185112.nc",
                      values, offsets)
