"""BaseStorage ABC and the entry/stat records every backend returns.

All storage backends (local disk, S2 streams, Redis streams) subclass
BaseStorage and expose the same path-based, file-like API. Paths are
plain '/'-separated strings; stream backends map them onto stream
names or keys.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import TracebackType


@dataclass
class StorageEntry:
    """A child of a directory-like path returned by ``list()``."""

    id: str
    path: str
    is_directory: bool = False


@dataclass
class StatResult:
    """Metadata about an existing path."""

    is_directory: bool


class BaseStorage(ABC):
    """Abstract base class for all storage backends.

    Subclasses must implement list/stat/read/write/delete/join. ``append``
    defaults to read-modify-write and ``close`` to a no-op; backends with
    native appends or held clients override them.
    """

    #: Short backend name as used in configuration.
    backend_name: str = ""

    @abstractmethod
    async def list(self, dir_path: str) -> list[StorageEntry]:
        """List the direct children of dir_path.

        Returns:
            Entries for every child; an empty list if dir_path does not exist.
        """
        ...

    @abstractmethod
    async def stat(self, path: str) -> StatResult | None:
        """Return metadata for path, or None if nothing exists there."""
        ...

    @abstractmethod
    async def read(self, path: str) -> str:
        """Read the full content stored at path."""
        ...

    @abstractmethod
    async def write(self, path: str, content: str) -> None:
        """Replace the content at path, creating parents as needed."""
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def join(self, *segments: str) -> str:
        """Join path segments the way this backend names things."""
        ...

    async def append(self, path: str, content: str) -> None:
        """Append content to path.

        The default emulates append with read + concatenate + write; a
        path that does not exist yet is simply written.
        """
        try:
            existing = await self.read(path)
        except FileNotFoundError:
            existing = ""
        await self.write(path, existing + content)

    async def close(self) -> None:
        """Release any client held by this backend."""
        return None

    async def __aenter__(self) -> BaseStorage:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
