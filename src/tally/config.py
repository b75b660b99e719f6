"""Configuration resolution.

Sources, lowest to highest precedence:

1. built-in defaults (see ``tally.models.config``)
2. tally.yaml / tally.yml, found by walking up from ``cwd``
3. ``TALLY_*`` environment variables
4. explicit overrides passed by the caller

Mappings are deep-merged, so an override of ``storage.path`` keeps the
backend chosen in the file. The last resolved config is cached.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tally.exceptions import ConfigError
from tally.models.config import (
    TallyConfig,
    find_config_file,
    load_config_file,
    validate_config,
)

logger = logging.getLogger(__name__)

_cached_config: TallyConfig | None = None


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return base updated with override, merging nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_env_config(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Build a raw config mapping from TALLY_* environment variables.

    S2 settings are only used when both basin and access token are set.

    Raises:
        ConfigError: If TALLY_DEFAULT_TEMPERATURE is not a number.
    """
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}

    storage: dict[str, Any] = {}
    if env.get("TALLY_STORAGE_BACKEND"):
        storage["backend"] = env["TALLY_STORAGE_BACKEND"]
    if env.get("TALLY_STORAGE_PATH"):
        storage["path"] = env["TALLY_STORAGE_PATH"]
    if env.get("TALLY_S2_BASIN") and env.get("TALLY_S2_ACCESS_TOKEN"):
        storage["s2"] = {
            "basin": env["TALLY_S2_BASIN"],
            "access_token": env["TALLY_S2_ACCESS_TOKEN"],
        }
    if env.get("TALLY_REDIS_URL"):
        redis: dict[str, Any] = {"url": env["TALLY_REDIS_URL"]}
        if env.get("TALLY_REDIS_KEY_PREFIX"):
            redis["key_prefix"] = env["TALLY_REDIS_KEY_PREFIX"]
        storage["redis"] = redis
    if storage:
        config["storage"] = storage

    defaults: dict[str, Any] = {}
    if env.get("TALLY_DEFAULT_MODEL"):
        defaults["model"] = env["TALLY_DEFAULT_MODEL"]
    if env.get("TALLY_DEFAULT_TEMPERATURE"):
        raw = env["TALLY_DEFAULT_TEMPERATURE"]
        try:
            defaults["temperature"] = float(raw)
        except ValueError:
            raise ConfigError(
                f"TALLY_DEFAULT_TEMPERATURE must be a number, got '{raw}'"
            ) from None
    if defaults:
        config["defaults"] = defaults

    return config


def resolve_config(
    cwd: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
    skip_config_file: bool = False,
) -> TallyConfig:
    """Resolve configuration from file, environment and overrides.

    Args:
        cwd: Directory to start the config file search from. Defaults to cwd.
        overrides: Raw (snake_case) config values that win over every
            other source.
        skip_config_file: Use only defaults, environment and overrides.

    Returns:
        The validated, fully-defaulted TallyConfig. It is also cached for
        get_config().

    Raises:
        ConfigError: If the file is unreadable or the merged result is invalid.
    """
    global _cached_config

    raw: dict[str, Any] = {}
    if not skip_config_file:
        config_path = find_config_file(Path(cwd) if cwd is not None else None)
        if config_path is not None:
            logger.debug("Loading config from %s", config_path)
            raw = load_config_file(config_path)

    raw = deep_merge(raw, load_env_config())
    if overrides:
        raw = deep_merge(raw, overrides)

    config = validate_config(raw)
    _cached_config = config
    return config


def get_config() -> TallyConfig:
    """Return the cached config, resolving it from cwd on first use."""
    if _cached_config is not None:
        return _cached_config
    return resolve_config()


def clear_config_cache() -> None:
    global _cached_config
    _cached_config = None
