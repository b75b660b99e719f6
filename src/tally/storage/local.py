"""Local filesystem storage backend.

Maps storage paths 1:1 onto files and directories. Writes are atomic
(write to .tmp, then replace) so readers never see a partial document.
Blocking filesystem calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from stat import S_ISDIR

from tally.storage.base import BaseStorage, StatResult, StorageEntry

logger = logging.getLogger(__name__)


class LocalStorage(BaseStorage):
    """Store documents as plain files on the local disk."""

    backend_name = "local"

    async def list(self, dir_path: str) -> list[StorageEntry]:
        return await asyncio.to_thread(self._list_sync, dir_path)

    def _list_sync(self, dir_path: str) -> list[StorageEntry]:
        try:
            with os.scandir(dir_path) as entries:
                return sorted(
                    (
                        StorageEntry(
                            id=entry.name,
                            path=self.join(dir_path, entry.name),
                            is_directory=entry.is_dir(),
                        )
                        for entry in entries
                    ),
                    key=lambda entry: entry.id,
                )
        except (FileNotFoundError, NotADirectoryError):
            return []

    async def stat(self, path: str) -> StatResult | None:
        try:
            result = await asyncio.to_thread(os.stat, path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        return StatResult(is_directory=S_ISDIR(result.st_mode))

    async def read(self, path: str) -> str:
        """Read a file as UTF-8 text.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")

    async def write(self, path: str, content: str) -> None:
        await asyncio.to_thread(self._write_sync, path, content)
        logger.debug("Wrote %d chars to %s", len(content), path)

    def _write_sync(self, path: str, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = target.with_name(f"{target.name}.tmp")
        tmp_file.write_text(content, encoding="utf-8")
        os.replace(tmp_file, target)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(os.unlink, path)
        logger.debug("Deleted %s", path)

    def join(self, *segments: str) -> str:
        return "/".join(segments)
