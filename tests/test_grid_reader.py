"""
Tests for reading axes, time and data variables from netCDF sources.
"""

import numpy as np
import pytest
import xarray as xr

from climate_timeseries.exceptions import (
    MalformedTimeUnits,
    PipelineStep,
    ShapeError,
    SourceUnavailable,
    VariableNotFound,
)
from climate_timeseries.regional.core.calendar import ModelDate, normalize
from climate_timeseries.regional.core.grid_reader import GridReader, find_axis
from climate_timeseries.shared.contracts.climate_data import CalendarKind

from conftest import LATS, LONS, uniform_values, write_grid


class TestOpen:

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope.nc"
        with pytest.raises(SourceUnavailable) as exc_info:
            GridReader().open(missing)
        assert exc_info.value.source == str(missing)
        assert exc_info.value.step == PipelineStep.READ
        assert str(missing) in str(exc_info.value)

    def test_corrupt_file(self, tmp_path):
        corrupt = tmp_path / "corrupt.nc"
        corrupt.write_bytes(b"this is not a netCDF file")
        with pytest.raises(SourceUnavailable):
            GridReader().open(corrupt)

    def test_handle_released_after_with_block(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0])
        with GridReader().open(path) as handle:
            assert not handle.closed
        assert handle.closed
        with pytest.raises(SourceUnavailable):
            handle.dataset

    def test_handle_released_on_error(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0])
        reader = GridReader()
        with pytest.raises(VariableNotFound):
            with reader.open(path) as handle:
                reader.read_variable(handle, "pr")
        assert handle.closed


class TestReadAxes:

    def test_read_lon_lat(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0])
        reader = GridReader()
        with reader.open(path) as handle:
            lon = reader.read_axis(handle, "lon")
            lat = reader.read_axis(handle, "lat")
        np.testing.assert_array_equal(lon.values, LONS)
        np.testing.assert_array_equal(lat.values, LATS)
        assert lon.units == "degrees_east"
        assert len(lat) == 2
        assert lat.is_monotonic

    def test_axis_values_read_only(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0])
        reader = GridReader()
        with reader.open(path) as handle:
            lon = reader.read_axis(handle, "lon")
        with pytest.raises(ValueError):
            lon.values[0] = 0.0

    def test_axis_aliases(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0],
                          lat_name="latitude", lon_name="longitude")
        reader = GridReader()
        with reader.open(path) as handle:
            assert find_axis(handle, "lon") == "longitude"
            assert reader.read_axis(handle, "lat").name == "latitude"

    def test_missing_axis(self, tmp_path):
        path = tmp_path / "no_lat.nc"
        xr.Dataset({"tas": (["time"], np.zeros(2))},
                   coords={"time": [0.0, 1.0]}).to_netcdf(path, engine="netcdf4")
        reader = GridReader()
        with reader.open(path) as handle:
            with pytest.raises(VariableNotFound) as exc_info:
                reader.read_axis(handle, "lat")
        assert exc_info.value.source == str(path)


class TestReadTime:

    def test_offsets_and_encoding(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0, 281.0]), [0.0, 31.0])
        reader = GridReader()
        with reader.open(path) as handle:
            offsets, encoding = reader.read_time(handle)
        np.testing.assert_array_equal(offsets, [0.0, 31.0])
        assert encoding.calendar_kind == CalendarKind.NO_LEAP
        assert normalize(offsets, encoding) == [ModelDate(1850, 1, 1), ModelDate(1850, 2, 1)]

    def test_calendar_defaults_to_standard(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0], calendar=None)
        reader = GridReader()
        with reader.open(path) as handle:
            _, encoding = reader.read_time(handle)
        assert encoding.calendar_kind == CalendarKind.STANDARD

    def test_missing_units(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0], time_attrs=False)
        reader = GridReader()
        with reader.open(path) as handle:
            with pytest.raises(MalformedTimeUnits) as exc_info:
                reader.read_time(handle)
        assert exc_info.value.source == str(path)

    def test_malformed_units_carry_source(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0], units="days")
        reader = GridReader()
        with reader.open(path) as handle:
            with pytest.raises(MalformedTimeUnits) as exc_info:
                reader.read_time(handle)
        assert exc_info.value.source == str(path)


class TestReadVariable:

    def test_field_and_metadata(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0, 282.0]), [0.0, 31.0],
                          fill_value=1e20)
        reader = GridReader()
        with reader.open(path) as handle:
            field, metadata = reader.read_variable(handle, "tas")

        # Data stays usable after the handle is released
        assert field.shape == (2, 2, 2)
        assert field.data.dims == ("time", "lat", "lon")
        np.testing.assert_allclose(field.values[1], 282.0)
        assert field.fill_value == pytest.approx(1e20, rel=1e-6)
        assert metadata.units == "K"
        assert metadata.long_name == "Near-Surface Air Temperature"
        assert field.source == str(path)

    def test_fill_cells_kept_raw(self, tmp_path):
        values = uniform_values([280.0])
        values[0, 0, 0] = 1e20
        path = write_grid(tmp_path / "a.nc", values, [0.0], fill_value=1e20)
        reader = GridReader()
        with reader.open(path) as handle:
            field, _ = reader.read_variable(handle, "tas")
        mask = field.missing_mask()
        assert mask[0, 0, 0]
        assert mask.sum() == 1

    def test_transposes_to_canonical_order(self, tmp_path):
        path = tmp_path / "lon_first.nc"
        data = np.arange(12, dtype=np.float64).reshape(2, 3, 2)  # (lon, time, lat)
        ds = xr.Dataset(
            {"tas": (["lon", "time", "lat"], data)},
            coords={"lon": [0.0, 10.0], "time": [0.0, 1.0, 2.0], "lat": [-5.0, 5.0]},
        )
        ds["time"].attrs = {"units": "days since 2000-01-01"}
        ds.to_netcdf(path, engine="netcdf4")
        reader = GridReader()
        with reader.open(path) as handle:
            field, metadata = reader.read_variable(handle, "tas")
        assert field.shape == (3, 2, 2)
        assert metadata.source_dims == ("lon", "time", "lat")
        assert field.values[2, 1, 0] == data[0, 2, 1]

    def test_missing_variable(self, tmp_path):
        path = write_grid(tmp_path / "a.nc", uniform_values([280.0]), [0.0])
        reader = GridReader()
        with reader.open(path) as handle:
            with pytest.raises(VariableNotFound) as exc_info:
                reader.read_variable(handle, "pr")
        assert "tas" in exc_info.value.message

    def test_wrong_rank(self, tmp_path):
        path = tmp_path / "2d.nc"
        ds = xr.Dataset({"orog": (["lat", "lon"], np.zeros((2, 2)))},
                        coords={"lat": LATS, "lon": LONS})
        ds.to_netcdf(path, engine="netcdf4")
        reader = GridReader()
        with reader.open(path) as handle:
            with pytest.raises(ShapeError):
                reader.read_variable(handle, "orog")


class TestReadSource:

    def test_read_source_bundle(self, two_part_run):
        first, _ = two_part_run
        source = GridReader().read_source(first, "tas")
        assert source.locator == str(first)
        assert source.field.n_time == 2
        np.testing.assert_array_equal(source.time_offsets, [0.0, 31.0])
        np.testing.assert_array_equal(source.lon_axis.values, LONS)

    def test_describe(self, two_part_run):
        first, _ = two_part_run
        summary = GridReader().describe(first)
        assert summary["dimensions"]["time"] == 2
        assert summary["variables"]["tas"]["dims"] == ["time", "lat", "lon"]
        assert summary["time_units"] == "days since 1850-01-01"
        assert summary["calendar"] == "noleap"
