"""
Configuration loader for the regional time-series pipeline.

Loads a ``PipelineConfig`` from YAML, JSON or a plain dict and applies
environment variable overrides.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from .pipeline_config import PipelineConfig


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class ConfigurationLoader:
    """Loads and validates pipeline configurations from various sources."""

    # Environment variable -> dotted config path
    ENV_MAPPINGS = {
        "CLIMATE_SERIES_VARIABLE": "variable",
        "CLIMATE_SERIES_MAX_WORKERS": "max_workers",
        "CLIMATE_SERIES_LOG_LEVEL": "logging.level",
        "CLIMATE_SERIES_LOG_FILE": "logging.log_file",
    }

    def __init__(self, config_search_paths: Optional[List[Path]] = None):
        """Initialize configuration loader.

        Args:
            config_search_paths: Directories to search for configuration files.
                                Defaults to [current_dir, ~/.climate-series]
        """
        if config_search_paths is None:
            config_search_paths = [
                Path.cwd(),
                Path.home() / ".climate-series",
            ]
        self.search_paths = [Path(p) for p in config_search_paths]

    def load_pipeline_config(
        self,
        config_source: Union[str, Path, Dict[str, Any]],
        overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> PipelineConfig:
        """Load pipeline configuration.

        Args:
            config_source: Configuration file path, dict, or config name to search for
            overrides: Values applied last, e.g. from command line flags
            use_env: Whether to apply environment variable overrides

        Returns:
            Validated pipeline configuration

        Raises:
            ConfigurationError: If configuration cannot be loaded or validated
        """
        if isinstance(config_source, dict):
            config_data = dict(config_source)
        elif isinstance(config_source, (str, Path)):
            config_data = self._load_config_file(config_source)
        else:
            raise ConfigurationError(f"Unsupported config source type: {type(config_source)}")

        if use_env:
            config_data = self._apply_env_var_overrides(config_data)
        for key, value in (overrides or {}).items():
            if value is not None:
                self._set_nested_config(config_data, key, value)

        try:
            return PipelineConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def find_config_file(self, config_name: str) -> Optional[Path]:
        """Search the configured paths for ``config_name`` with a known suffix."""
        candidates = [config_name]
        if not Path(config_name).suffix:
            candidates = [f"{config_name}{suffix}" for suffix in ('.yaml', '.yml', '.json')]

        for search_path in self.search_paths:
            for candidate in candidates:
                path = search_path / candidate
                if path.exists():
                    return path
        return None

    def _load_config_file(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration from file."""
        file_path = Path(file_path)

        # If it's just a name, search for it
        if not file_path.exists():
            found_path = self.find_config_file(str(file_path))
            if found_path:
                file_path = found_path
            else:
                raise ConfigurationError(f"Configuration file not found: {file_path}")

        try:
            with open(file_path, 'r') as f:
                if file_path.suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                elif file_path.suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot parse {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration in {file_path} must be a mapping")
        return data

    def _apply_env_var_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        config_copy = dict(config_data)

        for env_var, config_path in self.ENV_MAPPINGS.items():
            if env_var in os.environ:
                value: Any = os.environ[env_var]
                if config_path.endswith("max_workers"):
                    try:
                        value = int(value)
                    except ValueError as e:
                        raise ConfigurationError(f"{env_var} must be an integer, got '{value}'") from e
                self._set_nested_config(config_copy, config_path, value)

        return config_copy

    def _set_nested_config(self, config: Dict[str, Any], path: str, value: Any):
        """Set nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            else:
                current[key] = dict(current[key])
            current = current[key]

        current[keys[-1]] = value
