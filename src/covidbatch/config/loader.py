"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
An empty or missing config yields the defaults (the public NYT feeds).
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from covidbatch.config.settings import (
    BatchConfig,
    DatabaseConfig,
    JobConfig,
    LoggingConfig,
    SourcesConfig,
)


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _section(merged: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section, rejecting non-mapping values."""
    value = merged.get(name) or {}
    if not isinstance(value, dict):
        msg = f"Config section '{name}' must be a mapping, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def load_config(
    config_path: Path | None = None,
    base_path: Path | None = None,
) -> JobConfig:
    """
    Load job configuration from YAML file(s).

    Every key is optional. A typical config only overrides the source
    locators and the database path:

        sources:
          by_county_url: ${COUNTY_URL:https://.../us-counties.csv}
          by_state_url: ./data/us-states.csv
        database:
          path: ./data/covid19.sqlite
        batch:
          chunk_size: 100

    Args:
        config_path: Path to the main configuration file. None loads defaults.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated JobConfig instance.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ValueError: If a value fails validation.
    """
    if config_path is None:
        return JobConfig()

    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        if potential_base.exists() and potential_base.resolve() != config_path.resolve():
            base_data = load_yaml(potential_base)
        else:
            base_data = {}

    main_data = load_yaml(config_path)
    merged = _deep_merge(base_data, main_data)

    sources_data = _section(merged, "sources")
    database_data = _section(merged, "database")
    batch_data = _section(merged, "batch")
    logging_data = _section(merged, "logging")

    # pydantic.ValidationError subclasses ValueError
    return JobConfig(
        sources=SourcesConfig(**sources_data),
        database=DatabaseConfig(**database_data),
        batch=BatchConfig(**batch_data),
        logging=LoggingConfig(**logging_data),
    )
