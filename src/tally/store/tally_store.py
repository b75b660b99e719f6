"""TallyStore: the entry point for reading and writing tally data.

Wraps a storage backend and a base path, and knows the layout below it:

    <base>/conversations/<id>/
        meta.json
        conversation.jsonl
        trajectory.meta.json
        stepTraces.json
        runs/tally/<run-id>.json
        runs/trajectory/<run-id>.json

Callers never need to know which backend is in use; it is selected by
configuration in ``open()``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import Any

from tally.codecs.trajectory import (
    decode_step_traces,
    decode_trajectory_meta,
    encode_step_traces,
    encode_trajectory_meta,
)
from tally.config import resolve_config
from tally.constants import CONVERSATIONS, META, STEP_TRACES, TRAJECTORY_META
from tally.models.config import StorageBackendName
from tally.models.conversation import Conversation
from tally.models.trajectory import StepTrace, TrajectoryMeta
from tally.storage.base import BaseStorage
from tally.storage.registry import create_storage
from tally.store.conversation_ref import ConversationRef

logger = logging.getLogger(__name__)


def normalize_base_path(
    backend: StorageBackendName, cwd: Path, configured_path: str
) -> str:
    """Turn the configured storage path into the store's base path.

    Local paths are resolved to absolute paths against cwd. For stream
    backends the configured path is used as-is, as a key/name prefix.
    """
    if backend != "local":
        return configured_path
    path = Path(configured_path)
    if not path.is_absolute():
        path = cwd / path
    return str(path.resolve())


class TallyStore:
    """Conversations, runs and trajectory documents on one backend.

    Args:
        storage: The backend every read and write goes through.
        base_path: Root path (local) or name prefix (streams) of the store.
    """

    def __init__(self, storage: BaseStorage, base_path: str) -> None:
        self.storage = storage
        self.base_path = base_path

    @classmethod
    async def open(
        cls,
        cwd: Path | str | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> TallyStore:
        """Open the store described by resolved configuration.

        Args:
            cwd: Directory to resolve config and relative paths from.
                Defaults to the current working directory.
            config: Raw config overrides, e.g. ``{"storage": {"path": "out"}}``.

        Returns:
            A ready TallyStore. For local storage with ``auto_create``
            the conversations directory exists afterwards.

        Raises:
            ConfigError: If configuration is invalid or a backend section
                is missing.
            ImportError: If the selected backend's SDK is not installed.
        """
        cwd_path = Path(cwd) if cwd is not None else Path.cwd()
        resolved = resolve_config(cwd=cwd_path, overrides=config)
        storage_config = resolved.storage
        storage = create_storage(storage_config)
        base_path = normalize_base_path(storage_config.backend, cwd_path, storage_config.path)

        if storage_config.backend == "local" and storage_config.auto_create:
            await asyncio.to_thread(
                Path(base_path, CONVERSATIONS).mkdir, parents=True, exist_ok=True
            )

        logger.debug("Opened %s store at %s", storage_config.backend, base_path)
        return cls(storage, base_path)

    def _conversation_path(self, conversation_id: str) -> str:
        return self.storage.join(self.base_path, CONVERSATIONS, conversation_id)

    async def list_conversations(self) -> list[ConversationRef]:
        entries = await self.storage.list(self.storage.join(self.base_path, CONVERSATIONS))
        return [
            ConversationRef(self.storage, entry.path, entry.id)
            for entry in entries
            if entry.is_directory
        ]

    async def get_conversation(self, conversation_id: str) -> ConversationRef | None:
        """Return the conversation with this id, or None if it does not exist."""
        path = self._conversation_path(conversation_id)
        if await self.storage.stat(path) is None:
            return None
        return ConversationRef(self.storage, path, conversation_id)

    async def create_conversation(self, conversation_id: str) -> ConversationRef:
        """Create a conversation by writing its meta.json.

        Creating an existing conversation only rewrites meta.json.
        """
        path = self._conversation_path(conversation_id)
        meta = {
            "id": conversation_id,
            "createdAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        await self.storage.write(self.storage.join(path, META), json.dumps(meta, indent=2))
        return ConversationRef(self.storage, path, conversation_id)

    async def save_conversation(
        self, conversation_id: str, conversation: Conversation
    ) -> ConversationRef:
        """Save a conversation snapshot, creating the conversation if needed."""
        ref = await self.get_conversation(conversation_id)
        if ref is None:
            ref = await self.create_conversation(conversation_id)
        await ref.save(conversation)
        return ref

    async def save_trajectory_meta(self, trajectory_id: str, meta: TrajectoryMeta) -> None:
        path = self.storage.join(self._conversation_path(trajectory_id), TRAJECTORY_META)
        await self.storage.write(path, encode_trajectory_meta(meta))

    async def load_trajectory_meta(self, trajectory_id: str) -> TrajectoryMeta | None:
        """Load the trajectory meta stored next to a conversation, if any."""
        path = self.storage.join(self._conversation_path(trajectory_id), TRAJECTORY_META)
        if await self.storage.stat(path) is None:
            return None
        return decode_trajectory_meta(await self.storage.read(path))

    async def save_trajectory_step_traces(
        self, trajectory_id: str, traces: Sequence[StepTrace]
    ) -> None:
        path = self.storage.join(self._conversation_path(trajectory_id), STEP_TRACES)
        await self.storage.write(path, encode_step_traces(traces))

    async def load_trajectory_step_traces(self, trajectory_id: str) -> list[StepTrace] | None:
        """Load the step traces stored next to a conversation, if any."""
        path = self.storage.join(self._conversation_path(trajectory_id), STEP_TRACES)
        if await self.storage.stat(path) is None:
            return None
        return decode_step_traces(await self.storage.read(path))

    async def close(self) -> None:
        await self.storage.close()

    async def __aenter__(self) -> TallyStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
