"""Handle to a stored conversation and the runs recorded against it."""

from __future__ import annotations

from typing import Any

from tally.codecs.base import parse_json
from tally.codecs.conversation import decode_conversation, encode_conversation
from tally.constants import CONVERSATION_FILE, META, RUN_FILE_SUFFIX, RUNS
from tally.models.conversation import Conversation
from tally.storage.base import BaseStorage
from tally.store.run_ref import RUN_TYPES, RunRef, RunType
from tally.utils.ids import generate_run_id


class ConversationRef:
    """A conversation directory (or key prefix) in the store.

    Owns ``conversation.jsonl``, ``meta.json`` and the ``runs/`` tree
    below its path. RunRefs are only ever created through this class.
    """

    def __init__(self, storage: BaseStorage, path: str, id: str) -> None:
        self._storage = storage
        self.path = path
        self.id = id

    @property
    def conversation_path(self) -> str:
        return self._storage.join(self.path, CONVERSATION_FILE)

    async def load(self) -> Conversation:
        """Read and decode conversation.jsonl.

        Raises:
            FileNotFoundError: On local storage, if nothing was saved yet.
            CodecError: If the file is empty or holds invalid JSON.
        """
        return decode_conversation(await self._storage.read(self.conversation_path))

    async def save(self, conversation: Conversation) -> None:
        """Write a full snapshot of the conversation, replacing the old one."""
        await self._storage.write(self.conversation_path, encode_conversation(conversation))

    async def load_meta(self) -> dict[str, Any] | None:
        """Return the parsed meta.json, or None if it was never written."""
        meta_path = self._storage.join(self.path, META)
        if await self._storage.stat(meta_path) is None:
            return None
        return parse_json(await self._storage.read(meta_path), "conversation meta")

    async def list_runs(self) -> list[RunRef]:
        """List the runs of every type, tally runs first."""
        runs: list[RunRef] = []
        for run_type in RUN_TYPES:
            runs_path = self._storage.join(self.path, RUNS, run_type)
            for entry in await self._storage.list(runs_path):
                if entry.is_directory or not entry.id.endswith(RUN_FILE_SUFFIX):
                    continue
                run_id = entry.id[: -len(RUN_FILE_SUFFIX)]
                runs.append(RunRef(self._storage, entry.path, run_id, run_type))
        return runs

    async def get_run(self, run_id: str) -> RunRef | None:
        """Find a run by id; its type is the subdirectory it was found in."""
        for run_type in RUN_TYPES:
            run_path = self._run_path(run_type, run_id)
            if await self._storage.stat(run_path) is not None:
                return RunRef(self._storage, run_path, run_id, run_type)
        return None

    async def create_run(self, type: RunType, run_id: str | None = None) -> RunRef:
        """Return a ref for a new run. Nothing is written until ``save()``.

        Args:
            type: ``"tally"`` or ``"trajectory"``.
            run_id: Explicit id; a fresh ``run-...`` id is generated if omitted.
        """
        run_id = run_id or generate_run_id()
        return RunRef(self._storage, self._run_path(type, run_id), run_id, type)

    def _run_path(self, run_type: str, run_id: str) -> str:
        return self._storage.join(self.path, RUNS, run_type, f"{run_id}{RUN_FILE_SUFFIX}")

    def __repr__(self) -> str:
        return f"ConversationRef(id={self.id!r}, path={self.path!r})"
