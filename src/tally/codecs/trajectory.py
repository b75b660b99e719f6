"""JSON codecs for trajectory documents.

Three documents live next to a conversation or under its runs: the
trajectory meta snapshot, the list of step traces, and the per-run
trajectory outcome. Dates are written as ISO-8601 text and revived to
``datetime`` on decode.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from tally.codecs.base import (
    Codec,
    CodecResult,
    dump_json,
    model_validator_for,
    parse_json,
    validate_model,
)
from tally.exceptions import CodecError
from tally.models.trajectory import StepTrace, TrajectoryMeta, TrajectoryRunMeta

_step_traces_adapter = TypeAdapter(list[StepTrace])


def decode_trajectory_meta(content: str) -> TrajectoryMeta:
    return validate_model(
        TrajectoryMeta, parse_json(content, "trajectory meta"), "trajectory meta"
    )


def encode_trajectory_meta(meta: TrajectoryMeta | dict[str, Any]) -> str:
    return dump_json(validate_model(TrajectoryMeta, meta, "trajectory meta").to_wire())


def _validate_step_traces(traces: Any) -> list[StepTrace]:
    if isinstance(traces, Sequence) and not isinstance(traces, (str, bytes)):
        traces = [
            t.model_dump(mode="json", by_alias=True, exclude_unset=True)
            if isinstance(t, BaseModel)
            else t
            for t in traces
        ]
    try:
        return _step_traces_adapter.validate_python(traces)
    except ValidationError as exc:
        raise CodecError(f"Invalid step traces: {exc}") from exc


def decode_step_traces(content: str) -> list[StepTrace]:
    """Decode a JSON array of step traces.

    Raises:
        CodecError: If the text is not JSON or any trace is invalid.
    """
    return _validate_step_traces(parse_json(content, "step traces"))


def encode_step_traces(traces: Sequence[StepTrace | dict[str, Any]]) -> str:
    return dump_json([trace.to_wire() for trace in _validate_step_traces(traces)])


def validate_step_traces(traces: Any) -> CodecResult[list[StepTrace]]:
    try:
        return CodecResult(success=True, data=_validate_step_traces(traces))
    except CodecError as exc:
        return CodecResult(success=False, error=exc)


def decode_trajectory_run_meta(content: str) -> TrajectoryRunMeta:
    return validate_model(
        TrajectoryRunMeta,
        parse_json(content, "trajectory run meta"),
        "trajectory run meta",
    )


def encode_trajectory_run_meta(meta: TrajectoryRunMeta | dict[str, Any]) -> str:
    return dump_json(
        validate_model(TrajectoryRunMeta, meta, "trajectory run meta").to_wire()
    )


TrajectoryMetaCodec: Codec[TrajectoryMeta] = Codec(
    "trajectory-meta",
    decode=decode_trajectory_meta,
    encode=encode_trajectory_meta,
    validate=model_validator_for(TrajectoryMeta, "trajectory meta"),
)

StepTracesCodec: Codec[list[StepTrace]] = Codec(
    "step-traces",
    decode=decode_step_traces,
    encode=encode_step_traces,
    validate=validate_step_traces,
)

TrajectoryRunMetaCodec: Codec[TrajectoryRunMeta] = Codec(
    "trajectory-run-meta",
    decode=decode_trajectory_run_meta,
    encode=encode_trajectory_run_meta,
    validate=model_validator_for(TrajectoryRunMeta, "trajectory run meta"),
)
