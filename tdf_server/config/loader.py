"""Configuration loader for the TDF server."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import Settings


def expand_env_vars(config: Any) -> Any:
    """Recursively expand ``${VAR}`` and ``${VAR:default}`` in string values."""
    if isinstance(config, dict):
        return {key: expand_env_vars(value) for key, value in config.items()}
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str) and config.startswith("${") and config.endswith("}"):
        var_expr = config[2:-1]
        if ":" in var_expr:
            var_name, default_value = var_expr.split(":", 1)
            return os.environ.get(var_name, default_value)
        return os.environ.get(var_expr, config)
    return config


def load_config(config_path: Path | None = None) -> Settings:
    """Load settings from a YAML file, or defaults when no path is given."""
    if config_path is None:
        return Settings()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValueError(f"Invalid configuration: expected a mapping in {config_path}")

    config = expand_env_vars(raw_config)

    try:
        return Settings(**config)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
