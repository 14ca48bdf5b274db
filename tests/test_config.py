"""
Tests for pipeline configuration models and loading.
"""

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from climate_timeseries.shared.config import (
    ConfigurationError,
    ConfigurationLoader,
    LoggingConfig,
    PipelineConfig,
)
from climate_timeseries.shared.contracts.climate_data import (
    RegionBounds,
    SourceOrdering,
    Weighting,
)


BASIC = {
    "sources": ["a.nc", "b.nc"],
    "variable": "tas",
    "region": "conus",
}


class TestPipelineConfig:

    def test_defaults(self):
        config = PipelineConfig(**BASIC)
        assert config.region == "CONUS"
        assert config.ordering == SourceOrdering.CALLER
        assert config.weighting == Weighting.NONE
        assert config.max_workers == 1
        assert config.trend is True
        assert config.logging.level == "INFO"
        assert config.output.annual_csv is None

    def test_region_bounds_resolution(self):
        assert PipelineConfig(**BASIC).region_bounds().lon_min == 234.0

        custom = dict(BASIC, region={"lat_min": 0, "lat_max": 10, "lon_min": -20,
                                     "lon_max": 20, "convention": "-180_180"})
        bounds = PipelineConfig(**custom).region_bounds()
        assert isinstance(bounds, RegionBounds)
        assert bounds.lon_min == -20.0

    def test_single_source_string(self):
        config = PipelineConfig(**dict(BASIC, sources="only.nc"))
        assert config.sources == ["only.nc"]

    @pytest.mark.parametrize("changes", [
        {"sources": []},
        {"variable": ""},
        {"region": "ATLANTIS"},
        {"max_workers": 0},
        {"ordering": "random"},
        {"weighting": "area"},
    ])
    def test_invalid(self, changes):
        with pytest.raises(ValidationError):
            PipelineConfig(**dict(BASIC, **changes))

    def test_log_level(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")


class TestConfigurationLoader:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "series.yaml"
        path.write_text(yaml.safe_dump(dict(BASIC, output={"annual_csv": "out/annual.csv"})))
        config = ConfigurationLoader().load_pipeline_config(path, use_env=False)
        assert config.sources == ["a.nc", "b.nc"]
        assert config.output.annual_csv == Path("out/annual.csv")

    def test_load_json(self, tmp_path):
        path = tmp_path / "series.json"
        path.write_text(json.dumps(BASIC))
        assert ConfigurationLoader().load_pipeline_config(path, use_env=False).variable == "tas"

    def test_find_by_name(self, tmp_path):
        (tmp_path / "series.yml").write_text(yaml.safe_dump(BASIC))
        loader = ConfigurationLoader(config_search_paths=[tmp_path])
        assert loader.load_pipeline_config("series", use_env=False).variable == "tas"

    def test_missing_file(self, tmp_path):
        loader = ConfigurationLoader(config_search_paths=[tmp_path])
        with pytest.raises(ConfigurationError):
            loader.load_pipeline_config(tmp_path / "absent.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "series.toml"
        path.write_text("variable = 'tas'")
        with pytest.raises(ConfigurationError):
            ConfigurationLoader().load_pipeline_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("sources: [a.nc\nvariable: tas")
        with pytest.raises(ConfigurationError):
            ConfigurationLoader().load_pipeline_config(path)

    def test_validation_error_wrapped(self):
        with pytest.raises(ConfigurationError):
            ConfigurationLoader().load_pipeline_config({"variable": "tas"}, use_env=False)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CLIMATE_SERIES_VARIABLE", "pr")
        monkeypatch.setenv("CLIMATE_SERIES_MAX_WORKERS", "3")
        monkeypatch.setenv("CLIMATE_SERIES_LOG_LEVEL", "warning")
        config = ConfigurationLoader().load_pipeline_config(BASIC)
        assert config.variable == "pr"
        assert config.max_workers == 3
        assert config.logging.level == "WARNING"

    def test_bad_env_integer(self, monkeypatch):
        monkeypatch.setenv("CLIMATE_SERIES_MAX_WORKERS", "many")
        with pytest.raises(ConfigurationError):
            ConfigurationLoader().load_pipeline_config(BASIC)

    def test_overrides_win_and_skip_none(self, monkeypatch):
        monkeypatch.setenv("CLIMATE_SERIES_VARIABLE", "pr")
        config = ConfigurationLoader().load_pipeline_config(
            BASIC, overrides={"variable": "tasmax", "output.plot": "plot.png", "ordering": None}
        )
        assert config.variable == "tasmax"
        assert config.output.plot == Path("plot.png")
        assert config.ordering == SourceOrdering.CALLER

    def test_source_dict_not_mutated(self):
        original = dict(BASIC, output={"plot": "a.png"})
        ConfigurationLoader().load_pipeline_config(original, overrides={"output.plot": "b.png"},
                                                   use_env=False)
        assert original["output"] == {"plot": "a.png"}
