# src/promptloop/config/loader.py
"""
Configuration loading for promptloop.

Configuration is loaded and merged in order:
    1. Default values (from the Pydantic models)
    2. The packaged default_config.toml
    3. A user TOML config file (if provided)
    4. A config dictionary (if provided)
    5. Environment variables (PROMPTLOOP__*)
    6. Runtime overrides (if provided)

Example:
    >>> config = load_config(overrides={"loop": {"bound_policy": "lenient"}})
    >>> config.loop.bound_policy.value
    'lenient'
"""

from __future__ import annotations

import importlib.resources
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import PromptLoopConfig

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

ENV_PREFIX = "PROMPTLOOP__"


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    config_dict: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> PromptLoopConfig:
    """
    Load promptloop configuration.

    Args:
        config_path: Optional path to a TOML config file
        config_dict: Optional config dictionary
        overrides: Optional runtime overrides

    Returns:
        A validated PromptLoopConfig instance

    Raises:
        ConfigError: If the config file cannot be parsed or values are invalid.
    """
    merged_config: Dict[str, Any] = load_default_config()

    if config_path is not None:
        path = Path(config_path).expanduser()
        try:
            with open(path, "rb") as f:
                merged_config = _deep_merge(merged_config, tomllib.load(f))
            logger.debug(f"Loaded config from {path}")
        except FileNotFoundError:
            logger.warning(f"Config file not found: {path}")
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if config_dict is not None:
        merged_config = _deep_merge(merged_config, config_dict)

    merged_config = _apply_env_overrides(merged_config)

    if overrides is not None:
        merged_config = _deep_merge(merged_config, overrides)

    try:
        return PromptLoopConfig(**merged_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid promptloop configuration: {e}") from e


def load_default_config() -> Dict[str, Any]:
    """Read the default_config.toml shipped with the package."""
    resource = importlib.resources.files("promptloop.config").joinpath("default_config.toml")
    with resource.open("rb") as f:
        return tomllib.load(f)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary
        override: Override dictionary (values take precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides.

    Environment variables follow the pattern:
        PROMPTLOOP__<KEY> or PROMPTLOOP__<SECTION>__<KEY>=value

    Examples:
        PROMPTLOOP__DEFAULT_MODEL=llama3
        PROMPTLOOP__LOOP__DEFAULT_MAX_LOOPS=25
        PROMPTLOOP__LOOP__BOUND_POLICY=lenient
    """
    result = config.copy()
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        path_parts = key[len(ENV_PREFIX):].lower().split("__")
        if not all(path_parts):
            continue

        current = result
        for part in path_parts[:-1]:
            existing = current.get(part)
            current[part] = dict(existing) if isinstance(existing, dict) else {}
            current = current[part]

        current[path_parts[-1]] = _convert_env_value(value)

    return result


def _convert_env_value(value: str) -> Any:
    """
    Convert environment variable string to appropriate type.

    Returns:
        Converted value (bool, int, float, or string)
    """
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value
