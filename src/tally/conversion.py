"""Conversion between trajectory step traces and conversations.

Traces become conversation steps (turnIndex -> stepIndex, userMessage ->
input, agentMessages -> output). The trace-only fields are parked in
each step's metadata so the reverse conversion can recover them.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from tally.models.conversation import Conversation, ConversationStep
from tally.models.trajectory import StepSelectionInfo, StepTrace, StepTraceEnd


def step_traces_to_conversation(
    traces: Sequence[StepTrace],
    conversation_id: str,
    metadata: dict[str, Any] | None = None,
) -> Conversation:
    """Build a Conversation from traces, renumbering steps from 0.

    Args:
        traces: Step traces in turn order.
        conversation_id: ID for the resulting conversation.
        metadata: Optional conversation-level metadata.
    """
    steps = []
    for index, trace in enumerate(traces):
        step_metadata: dict[str, Any] = {
            "originalTurnIndex": trace.turn_index,
            "stepId": trace.step_id,
            "selection": trace.selection.to_wire(),
        }
        if trace.end is not None:
            step_metadata["end"] = trace.end.to_wire()
        steps.append(
            ConversationStep(
                step_index=index,
                input=trace.user_message,
                output=list(trace.agent_messages),
                timestamp=trace.timestamp,
                metadata=step_metadata,
            )
        )
    if metadata:
        return Conversation(id=conversation_id, steps=steps, metadata=metadata)
    return Conversation(id=conversation_id, steps=steps)


def _recover_selection(metadata: dict[str, Any]) -> StepSelectionInfo:
    selection = metadata.get("selection")
    if isinstance(selection, dict):
        try:
            return StepSelectionInfo.model_validate(selection)
        except ValidationError:
            pass
    return StepSelectionInfo(method="none")


def _recover_end(metadata: dict[str, Any]) -> StepTraceEnd | None:
    end = metadata.get("end")
    if isinstance(end, dict):
        try:
            return StepTraceEnd.model_validate(end)
        except ValidationError:
            return None
    return None


def conversation_step_to_step_trace(
    step: ConversationStep, turn_index: int | None = None
) -> StepTrace:
    """Convert one conversation step back into a step trace.

    Trace fields are recovered from step metadata on a best-effort
    basis: a missing selection becomes ``method="none"`` and a missing
    timestamp becomes now.
    """
    metadata = step.metadata or {}
    step_id = metadata.get("stepId")
    end = _recover_end(metadata)
    fields: dict[str, Any] = {
        "turn_index": step.step_index if turn_index is None else turn_index,
        "user_message": step.input,
        "agent_messages": list(step.output),
        "timestamp": step.timestamp or datetime.now(timezone.utc),
        "step_id": step_id if isinstance(step_id, str) else None,
        "selection": _recover_selection(metadata),
    }
    if end is not None:
        fields["end"] = end
    return StepTrace(**fields)


def conversation_to_step_traces(
    conversation: Conversation, preserve_turn_indices: bool = False
) -> list[StepTrace]:
    """Convert every step of a conversation into a step trace.

    Args:
        conversation: Source conversation.
        preserve_turn_indices: Use ``originalTurnIndex`` from step
            metadata when present instead of the step's position.
    """
    traces = []
    for index, step in enumerate(conversation.steps):
        turn_index = index
        original = (step.metadata or {}).get("originalTurnIndex")
        if preserve_turn_indices and isinstance(original, int) and not isinstance(original, bool):
            turn_index = original
        traces.append(conversation_step_to_step_trace(step, turn_index))
    return traces
