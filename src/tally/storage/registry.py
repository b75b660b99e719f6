"""Storage registry for resolving backend names to classes.

Backends are imported lazily from dotted paths, so only the selected
backend's module (and its SDK) is ever loaded.
"""

from __future__ import annotations

import importlib
from typing import Any

from tally.exceptions import ConfigError
from tally.models.config import StorageConfig
from tally.storage.base import BaseStorage

# Mapping of builtin backend names to their fully-qualified class paths.
BUILTIN_BACKENDS: dict[str, str] = {
    "local": "tally.storage.local.LocalStorage",
    "s2": "tally.storage.s2.S2Storage",
    "redis": "tally.storage.redis.RedisStorage",
}

# Maps backend names to their pip install extras for helpful error messages.
_INSTALL_HINTS: dict[str, str] = {
    "s2": "pip install tally-evals[s2]",
    "redis": "pip install tally-evals[redis]",
}


def get_backend_class(name: str) -> type[BaseStorage]:
    """Resolve a builtin backend name to its class.

    Args:
        name: One of the keys of BUILTIN_BACKENDS.

    Returns:
        The BaseStorage subclass implementing the backend.

    Raises:
        ConfigError: If the name is not a known backend.
        ImportError: If the backend module cannot be imported.
    """
    if name not in BUILTIN_BACKENDS:
        available = ", ".join(sorted(BUILTIN_BACKENDS))
        raise ConfigError(
            f"Unknown storage backend '{name}'. Available backends: {available}."
        )

    module_path, _, class_name = BUILTIN_BACKENDS[name].rpartition(".")
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        if name in _INSTALL_HINTS:
            raise ImportError(
                f"Storage backend '{name}' could not be loaded. "
                f"Install it: {_INSTALL_HINTS[name]}"
            ) from exc
        raise
    return getattr(module, class_name)


def _backend_kwargs(config: StorageConfig) -> dict[str, Any]:
    if config.backend == "s2":
        if config.s2 is None:
            raise ConfigError(
                "S2 configuration is required when using the s2 backend. "
                "Provide storage.s2.basin and storage.s2.access_token."
            )
        return {"basin": config.s2.basin, "access_token": config.s2.access_token}
    if config.backend == "redis":
        if config.redis is None:
            raise ConfigError(
                "Redis configuration is required when using the redis backend. "
                "Provide storage.redis.url."
            )
        return {
            "url": config.redis.url,
            "key_prefix": config.redis.key_prefix,
            "stream_max_len": config.redis.stream_max_len,
        }
    return {}


def create_storage(config: StorageConfig) -> BaseStorage:
    """Create a storage backend from its configuration.

    Raises:
        ConfigError: If the backend is unknown or its section is missing.
        ImportError: If the backend's SDK is not installed.
    """
    kwargs = _backend_kwargs(config)
    return get_backend_class(config.backend)(**kwargs)
