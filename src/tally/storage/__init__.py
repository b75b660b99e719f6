"""Storage backends - a file-like async API over disk, S2 and Redis.

Re-exports the BaseStorage ABC, its records, the always-available local
backend, and the registry factory. The S2 and Redis backends are loaded
through the registry so their SDKs stay optional.
"""

from tally.storage.base import BaseStorage, StatResult, StorageEntry
from tally.storage.local import LocalStorage
from tally.storage.registry import BUILTIN_BACKENDS, create_storage, get_backend_class

__all__ = [
    "BUILTIN_BACKENDS",
    "BaseStorage",
    "LocalStorage",
    "StatResult",
    "StorageEntry",
    "create_storage",
    "get_backend_class",
]
