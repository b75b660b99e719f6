"""Conversation data models.

A conversation is an ordered list of steps, each pairing one input
message with the agent's output messages. Messages are kept as loose
JSON objects since their shape belongs to whichever agent SDK produced
them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import field_validator

from tally.models.base import OpenWireModel, WireModel

ModelMessage = dict[str, Any]


class ConversationStep(OpenWireModel):
    """A single turn: one input message and the resulting output messages.

    Unknown fields are preserved so newer writers never lose data when
    read by older code.
    """

    step_index: int
    input: ModelMessage
    output: list[ModelMessage]
    id: str | None = None
    timestamp: datetime | None = None
    metadata: dict[str, Any] | None = None


class Conversation(WireModel):
    """A complete multi-turn conversation.

    Steps are always held in ascending ``step_index`` order, and every
    index must be unique within the conversation.
    """

    id: str
    steps: list[ConversationStep]
    metadata: dict[str, Any] | None = None

    @field_validator("steps")
    @classmethod
    def _unique_and_ordered(cls, steps: list[ConversationStep]) -> list[ConversationStep]:
        seen: set[int] = set()
        for step in steps:
            if step.step_index in seen:
                raise ValueError(f"Duplicate stepIndex {step.step_index}")
            seen.add(step.step_index)
        return sorted(steps, key=lambda step: step.step_index)

    @property
    def step_count(self) -> int:
        return len(self.steps)
