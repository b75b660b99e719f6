"""Redis Streams storage backend.

Each storage path maps to one stream key: ``<key_prefix><path>`` with
'/' replaced by ':'. Every write or append adds one entry whose
``content`` field holds the text; reading joins all entries with
newlines. Requires the ``redis`` package (``pip install tally-evals[redis]``).
"""

from __future__ import annotations

import logging
import re
from typing import Any

from tally.storage.base import BaseStorage, StatResult, StorageEntry

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "tally:"
CONTENT_FIELD = "content"

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(text: str) -> str:
    """Escape characters SCAN MATCH treats as glob syntax."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


def _require_redis() -> Any:
    """Import and return the ``redis.asyncio`` module."""
    try:
        import redis.asyncio as redis_asyncio
    except ImportError as exc:
        raise ImportError(
            "RedisStorage requires the redis package. "
            "Install it: pip install tally-evals[redis]"
        ) from exc
    return redis_asyncio


class RedisStorage(BaseStorage):
    """Store documents as Redis streams.

    Args:
        url: Redis connection URL, e.g. ``redis://localhost:6379/0``.
        key_prefix: Prefix for every key this backend touches.
        stream_max_len: If set, trim each stream to roughly this many
            entries on every add (``MAXLEN ~ n``).
        client: An already-connected ``redis.asyncio.Redis`` client
            created with ``decode_responses=True``. When omitted, one is
            created from ``url`` and closed by ``close()``; an injected
            client is left open for its owner.
    """

    backend_name = "redis"

    def __init__(
        self,
        url: str | None = None,
        key_prefix: str | None = None,
        stream_max_len: int | None = None,
        client: Any = None,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            if not url:
                raise ValueError("RedisStorage requires a url when no client is given")
            client = _require_redis().from_url(url, decode_responses=True)
        self._client = client
        self.key_prefix = key_prefix if key_prefix is not None else DEFAULT_KEY_PREFIX
        self.stream_max_len = stream_max_len

    def _key(self, path: str) -> str:
        return f"{self.key_prefix}{path.replace('/', ':')}"

    def _path_from_key(self, key: str) -> str:
        return key[len(self.key_prefix):].replace(":", "/")

    async def list(self, dir_path: str) -> list[StorageEntry]:
        if dir_path:
            pattern = f"{_escape_glob(self._key(dir_path))}:*"
        else:
            pattern = f"{_escape_glob(self.key_prefix)}*"
        entries: dict[str, StorageEntry] = {}
        async for key in self._client.scan_iter(match=pattern):
            full_path = self._path_from_key(key)
            if dir_path and not full_path.startswith(f"{dir_path}/"):
                continue
            relative = full_path[len(dir_path) + 1:] if dir_path else full_path
            name, sep, _ = relative.partition("/")
            if not sep:
                entries[name] = StorageEntry(id=name, path=full_path)
            elif name not in entries:
                entries[name] = StorageEntry(
                    id=name, path=self.join(dir_path, name), is_directory=True
                )
        return [entries[name] for name in sorted(entries)]

    async def stat(self, path: str) -> StatResult | None:
        if await self._client.exists(self._key(path)):
            return StatResult(is_directory=False)
        if await self.list(path):
            return StatResult(is_directory=True)
        return None

    async def read(self, path: str) -> str:
        """Read every entry of the stream at path, joined with newlines.

        A missing stream reads as an empty string.
        """
        records = await self._client.xrange(self._key(path), "-", "+")
        return "\n".join(
            fields[CONTENT_FIELD] for _, fields in records if CONTENT_FIELD in fields
        )

    async def write(self, path: str, content: str) -> None:
        key = self._key(path)
        await self._client.delete(key)
        await self._add(key, content)
        logger.debug("Wrote %d chars to redis stream %s", len(content), key)

    async def append(self, path: str, content: str) -> None:
        await self._add(self._key(path), content)

    async def _add(self, key: str, content: str) -> None:
        if self.stream_max_len:
            await self._client.xadd(
                key,
                {CONTENT_FIELD: content},
                maxlen=self.stream_max_len,
                approximate=True,
            )
        else:
            await self._client.xadd(key, {CONTENT_FIELD: content})

    async def delete(self, path: str) -> None:
        key = self._key(path)
        await self._client.delete(key)
        logger.debug("Deleted redis stream %s", key)

    def join(self, *segments: str) -> str:
        return "/".join(segment for segment in segments if segment)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
