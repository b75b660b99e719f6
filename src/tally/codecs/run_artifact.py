"""JSON codec for run artifacts.

Artifacts are whole documents: any schema violation, including a score
outside [0, 1] or a per-step series whose length disagrees with
``stepCount``, fails the document as a whole.
"""

from __future__ import annotations

from typing import Any

from tally.codecs.base import Codec, dump_json, model_validator_for, parse_json, validate_model
from tally.models.run_artifact import RunArtifact


def decode_run_artifact(content: str) -> RunArtifact:
    """Decode a stored run artifact.

    Raises:
        CodecError: If the text is not JSON or does not match the schema.
    """
    return validate_model(RunArtifact, parse_json(content, "run artifact"), "run artifact")


def encode_run_artifact(artifact: RunArtifact | dict[str, Any]) -> str:
    """Validate and encode a run artifact as indented JSON."""
    return dump_json(validate_model(RunArtifact, artifact, "run artifact").to_wire())


validate_run_artifact = model_validator_for(RunArtifact, "run artifact")

RunArtifactCodec: Codec[RunArtifact] = Codec(
    "run-artifact",
    decode=decode_run_artifact,
    encode=encode_run_artifact,
    validate=validate_run_artifact,
)
