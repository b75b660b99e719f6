"""Codecs - text <-> model conversion for every persisted format."""

from tally.codecs.base import Codec, CodecResult
from tally.codecs.conversation import (
    ConversationCodec,
    decode_conversation,
    encode_conversation,
    validate_conversation,
)
from tally.codecs.run_artifact import (
    RunArtifactCodec,
    decode_run_artifact,
    encode_run_artifact,
    validate_run_artifact,
)
from tally.codecs.trajectory import (
    StepTracesCodec,
    TrajectoryMetaCodec,
    TrajectoryRunMetaCodec,
    decode_step_traces,
    decode_trajectory_meta,
    decode_trajectory_run_meta,
    encode_step_traces,
    encode_trajectory_meta,
    encode_trajectory_run_meta,
)

__all__ = [
    "Codec",
    "CodecResult",
    "ConversationCodec",
    "RunArtifactCodec",
    "StepTracesCodec",
    "TrajectoryMetaCodec",
    "TrajectoryRunMetaCodec",
    "decode_conversation",
    "decode_run_artifact",
    "decode_step_traces",
    "decode_trajectory_meta",
    "decode_trajectory_run_meta",
    "encode_conversation",
    "encode_run_artifact",
    "encode_step_traces",
    "encode_trajectory_meta",
    "encode_trajectory_run_meta",
    "validate_conversation",
    "validate_run_artifact",
]
