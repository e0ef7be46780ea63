"""YAML configuration for MarketPulse.

Config files live in ``config/`` at the repository root.  The directory
can be redirected with the ``MARKETPULSE_CONFIG_DIR`` environment
variable (used by tests and by hosts that ship their own settings).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
_CONFIG_DIR_ENV = "MARKETPULSE_CONFIG_DIR"

# Parsed files keyed by absolute path.
_cache: dict[Path, dict[str, Any]] = {}


def config_dir() -> Path:
    """Return the active config directory."""
    override = os.environ.get(_CONFIG_DIR_ENV, "").strip()
    return Path(override) if override else _DEFAULT_CONFIG_DIR


def load_config(name: str, *, reload: bool = False) -> dict[str, Any]:
    """Load ``<config_dir>/<name>.yml`` as a dict.

    Parameters
    ----------
    name:
        Config filename stem, e.g. ``"global_config"``.
    reload:
        Re-read from disk instead of returning the cached copy.

    Raises
    ------
    FileNotFoundError
        If the config file does not exist.
    """
    path = (config_dir() / f"{name}.yml").resolve()
    if not reload and path in _cache:
        return _cache[path]

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if not isinstance(data, dict):
        logger.warning("Config %s is not a mapping; treating as empty", path)
        data = {}

    logger.debug("Loaded config %s from %s", name, path)
    _cache[path] = data
    return data


def get_global_config() -> dict[str, Any]:
    """Convenience accessor for ``global_config.yml``."""
    return load_config("global_config")


def get_setting(section: str, key: str, default: Any) -> Any:
    """Look up ``section.key`` in the global config.

    The value is coerced to the type of *default*.  A missing section,
    missing key or uncoercible value falls back to *default*.
    """
    block = get_global_config().get(section)
    if not isinstance(block, dict) or key not in block:
        return default

    raw = block[key]
    if default is None or raw is None:
        return raw if raw is not None else default
    try:
        return type(default)(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Config %s.%s=%r is not a valid %s; using default %r",
            section, key, raw, type(default).__name__, default,
        )
        return default
