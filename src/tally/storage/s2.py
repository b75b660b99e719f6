"""S2 stream store backend.

Each storage path is one stream in a basin, named by the path itself.
Every append adds one record; reading drains the stream from sequence 0
and joins record bodies with newlines. Directories do not exist in S2,
so they are synthesized from stream-name prefixes.

``write`` on an existing stream appends a trim command record followed by
the new body instead of deleting and recreating the stream, since S2
deletes streams asynchronously and the name stays taken until it does.
Trimming is also applied asynchronously, so readers skip every record
that a trim command has cut off. ``delete`` keeps the asynchronous
semantics: recreating a path right after deleting it fails with
``streamstore.S2Error`` until S2 has finished the deletion.

Requires the ``streamstore`` package (``pip install tally-evals[s2]``).
"""

from __future__ import annotations

import logging
from typing import Any

from tally.storage.base import BaseStorage, StatResult, StorageEntry

logger = logging.getLogger(__name__)

# Command records carry a header with an empty name whose value is the command.
_TRIM_HEADER = (b"", b"trim")


def _require_streamstore() -> Any:
    """Import and return the ``streamstore`` module."""
    try:
        import streamstore.schemas
        import streamstore.utils
    except ImportError as exc:
        raise ImportError(
            "S2Storage requires the streamstore package. "
            "Install it: pip install tally-evals[s2]"
        ) from exc
    return streamstore


class S2Storage(BaseStorage):
    """Store documents as S2 streams.

    Args:
        basin: Name of the basin holding every stream.
        access_token: S2 access token, used when no client is given.
        client: An ``streamstore.S2`` client. When omitted, one is
            created from ``access_token`` and closed by ``close()``.
    """

    backend_name = "s2"

    def __init__(
        self,
        basin: str,
        access_token: str | None = None,
        client: Any = None,
    ) -> None:
        self._sdk = _require_streamstore()
        self._owns_client = client is None
        if client is None:
            if not access_token:
                raise ValueError("S2Storage requires an access_token when no client is given")
            client = self._sdk.S2(access_token=access_token)
        self._client = client
        self.basin_name = basin

    @property
    def _basin(self) -> Any:
        return self._client[self.basin_name]

    def _stream(self, path: str) -> Any:
        return self._basin[path]

    async def _stream_names(self, prefix: str) -> list[str]:
        """Return the names of all live streams starting with prefix."""
        names: list[str] = []
        start_after = ""
        while True:
            page = await self._basin.list_streams(prefix=prefix, start_after=start_after)
            for info in page.items:
                if info.deleted_at is None:
                    names.append(info.name)
            if not page.has_more or not page.items:
                return names
            start_after = page.items[-1].name

    async def list(self, dir_path: str) -> list[StorageEntry]:
        prefix = f"{dir_path}/" if dir_path else ""
        entries: dict[str, StorageEntry] = {}
        for name in await self._stream_names(prefix):
            relative = name[len(prefix):]
            child, sep, _ = relative.partition("/")
            if not child:
                continue
            if not sep:
                entries[child] = StorageEntry(id=child, path=name)
            elif child not in entries:
                entries[child] = StorageEntry(
                    id=child, path=self.join(dir_path, child), is_directory=True
                )
        return [entries[child] for child in sorted(entries)]

    async def stat(self, path: str) -> StatResult | None:
        is_directory = False
        for name in await self._stream_names(path):
            if name == path:
                return StatResult(is_directory=False)
            if name.startswith(f"{path}/"):
                is_directory = True
        return StatResult(is_directory=True) if is_directory else None

    async def _exists(self, path: str) -> bool:
        return path in await self._stream_names(path)

    async def read(self, path: str) -> str:
        """Drain the stream at path from sequence 0.

        A missing stream reads as an empty string.
        """
        if not await self._exists(path):
            return ""
        schemas = self._sdk.schemas
        stream = self._stream(path)
        records: list[tuple[int, str]] = []
        next_seq_num = 0
        while True:
            batch = await stream.read(start=schemas.SeqNum(next_seq_num))
            # A Tail means start reached the end of the stream.
            if isinstance(batch, schemas.Tail) or not batch:
                break
            for record in batch:
                if _TRIM_HEADER in record.headers:
                    first = int.from_bytes(record.body, "big")
                    records = [(seq, body) for seq, body in records if seq >= first]
                elif not any(name == b"" for name, _ in record.headers):
                    records.append((record.seq_num, record.body.decode("utf-8")))
            next_seq_num = batch[-1].seq_num + 1
        return "\n".join(body for _, body in records)

    async def write(self, path: str, content: str) -> None:
        """Replace the stream at path with a single record.

        Destructive: on an existing stream a trim command cuts off every
        earlier record, so only ``content`` is read back.
        """
        schemas = self._sdk.schemas
        record = schemas.Record(body=content.encode("utf-8"))
        if not await self._exists(path):
            await self._basin.create_stream(path)
            records = [record]
        else:
            tail = await self._stream(path).check_tail()
            # The trim lands at tail.next_seq_num and the body right after it.
            trim = self._sdk.utils.CommandRecord.trim(tail.next_seq_num + 1)
            records = [trim, record]
        await self._stream(path).append(schemas.AppendInput(records=records))
        logger.debug("Wrote %d chars to s2 stream %s", len(content), path)

    async def append(self, path: str, content: str) -> None:
        if not await self._exists(path):
            await self._basin.create_stream(path)
        schemas = self._sdk.schemas
        await self._stream(path).append(
            schemas.AppendInput(records=[schemas.Record(body=content.encode("utf-8"))])
        )

    async def delete(self, path: str) -> None:
        await self._basin.delete_stream(path)
        logger.debug("Deleted s2 stream %s", path)

    def join(self, *segments: str) -> str:
        return "/".join(segment for segment in segments if segment)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()
