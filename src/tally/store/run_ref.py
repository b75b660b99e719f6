"""Handle to a single stored run."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from tally.codecs.base import Codec
from tally.codecs.run_artifact import RunArtifactCodec
from tally.codecs.trajectory import TrajectoryRunMetaCodec
from tally.constants import TALLY, TRAJECTORY
from tally.models.run_artifact import RunArtifact
from tally.models.trajectory import TrajectoryRunMeta
from tally.storage.base import BaseStorage
from tally.utils.ids import extract_timestamp_from_id

RunType = Literal["tally", "trajectory"]
RunKind = Literal["artifact", "trajectoryMeta"]

RUN_TYPES: tuple[RunType, ...] = (TALLY, TRAJECTORY)

# Each run type stores exactly one document kind, decoded by one codec.
_RUN_KINDS: dict[str, tuple[RunKind, Codec[Any]]] = {
    TALLY: ("artifact", RunArtifactCodec),
    TRAJECTORY: ("trajectoryMeta", TrajectoryRunMetaCodec),
}


class RunRef:
    """A run stored under ``runs/<type>/<run-id>.json``.

    The document kind is fixed by the run type when the ref is built:
    ``tally`` runs hold a RunArtifact and ``trajectory`` runs hold a
    TrajectoryRunMeta.
    """

    def __init__(self, storage: BaseStorage, path: str, id: str, type: RunType) -> None:
        if type not in _RUN_KINDS:
            available = ", ".join(RUN_TYPES)
            raise ValueError(f"Unknown run type '{type}'. Expected one of: {available}.")
        self._storage = storage
        self.path = path
        self.id = id
        self.type: RunType = type
        self.kind: RunKind
        self.kind, self._codec = _RUN_KINDS[type]

    @property
    def created_at(self) -> datetime | None:
        """Creation time embedded in the run id, if it is a generated id."""
        return extract_timestamp_from_id(self.id)

    async def load(self) -> RunArtifact | TrajectoryRunMeta:
        """Read and decode the run document.

        Raises:
            CodecError: If the stored document is invalid.
        """
        return self._codec.decode(await self._storage.read(self.path))

    async def save(self, data: RunArtifact | TrajectoryRunMeta | dict[str, Any]) -> None:
        """Validate, encode and write the run document.

        Raises:
            CodecError: If data does not match this run's document kind.
        """
        await self._storage.write(self.path, self._codec.encode(data))

    def __repr__(self) -> str:
        return f"RunRef(id={self.id!r}, type={self.type!r}, path={self.path!r})"
