"""
Configuration loading.

Precedence, lowest first: FlintConfig defaults, the ``flint:`` section of a
YAML file, then ``FLINT_<FIELD>`` environment variables (a ``.env`` file is
loaded into the environment first, without overriding real variables).
"""

import inspect
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from flint.core.models import FlintConfig
from flint.utils import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "FLINT_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _config_defaults() -> Dict[str, Any]:
    params = inspect.signature(FlintConfig.__init__).parameters
    return {name: p.default for name, p in params.items() if name != "self"}


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce ``value`` to the type of the field's default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid boolean for '{name}': {value!r}")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def load_yaml_settings(path: Union[str, Path]) -> Dict[str, Any]:
    """Read the ``flint:`` section of a YAML config file."""
    config_file = Path(path)
    if not config_file.exists():
        logger.warn(f"Config file {config_file} not found, using defaults")
        return {}

    with open(config_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    section = data.get("flint", {}) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'flint' section of {config_file} must be a mapping")
    return section


def env_settings(environ: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Collect ``FLINT_*`` overrides for known config fields."""
    environ = os.environ if environ is None else environ
    known = _config_defaults()
    settings = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in known:
            settings[name] = value
    return settings


def build_config(settings: Dict[str, Any]) -> FlintConfig:
    """Build a FlintConfig from a flat mapping, ignoring unknown keys."""
    defaults = _config_defaults()
    kwargs = {}
    for name, value in settings.items():
        if name not in defaults:
            logger.warn(f"Ignoring unknown config key '{name}'")
            continue
        kwargs[name] = _coerce(name, value, defaults[name])
    return FlintConfig(**kwargs)


def load_config(
    path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> FlintConfig:
    """
    Load a FlintConfig from YAML and environment overrides.

    Args:
        path: Optional YAML file with a ``flint:`` section
        env_file: Optional .env file loaded before reading the environment
        environ: Mapping used instead of ``os.environ`` (tests)

    Returns:
        The merged configuration
    """
    settings: Dict[str, Any] = {}
    if path is not None:
        settings.update(load_yaml_settings(path))

    if env_file is not None:
        load_dotenv(env_file, override=False)
    settings.update(env_settings(environ))

    config = build_config(settings)
    logger.debug("Loaded configuration", config.to_dict())
    return config
