"""Trajectory models: declarative meta snapshots and per-turn step traces.

These are JSON-safe snapshots written for debugging and replay. Nothing
here is executable; step graph entries are kept as loose objects.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from tally.models.base import WireModel
from tally.models.conversation import ModelMessage

StepSelectionMethod = Literal["start", "preconditions-ordered", "llm-ranked", "none"]
TrajectoryStopReason = Literal[
    "goal-reached",
    "max-turns",
    "policy-violation",
    "agent-loop",
    "no-step-match",
    "error",
]


class TrajectoryPersonaMeta(WireModel):
    name: str | None = None
    description: str
    guardrails: list[str] | None = None


class TrajectoryLoopDetectionMeta(WireModel):
    max_consecutive_same_step: int | None = None
    max_cycle_length: int | None = None
    max_cycle_repetitions: int | None = None


class TrajectoryStepGraphMeta(WireModel):
    """Loose snapshot of a step graph, for display only."""

    start: str
    terminals: list[str] | None = None
    steps: list[dict[str, Any]]


class TrajectoryMeta(WireModel):
    """Declarative description of a trajectory, saved once per conversation."""

    version: Literal[1]
    trajectory_id: str
    created_at: datetime
    goal: str
    persona: TrajectoryPersonaMeta
    max_turns: int | None = None
    loop_detection: TrajectoryLoopDetectionMeta | None = None
    step_graph: TrajectoryStepGraphMeta | None = None
    metadata: dict[str, Any] | None = None


class StepSelectionCandidate(WireModel):
    step_id: str
    score: float
    reasons: list[str] | None = None


class StepSelectionInfo(WireModel):
    method: StepSelectionMethod
    candidates: list[StepSelectionCandidate] | None = None


class StepTraceEnd(WireModel):
    """End marker carried by the last trace a trajectory emits."""

    is_final: Literal[True]
    reason: TrajectoryStopReason
    completed: bool
    summary: str | None = None


class StepTrace(WireModel):
    """One simulated turn: the generated user message and the agent's replies.

    ``step_id`` is None when no step in the graph matched the turn.
    """

    turn_index: int
    user_message: ModelMessage
    agent_messages: list[ModelMessage]
    timestamp: datetime
    step_id: str | None
    selection: StepSelectionInfo
    end: StepTraceEnd | None = None


class TrajectoryRunPersona(WireModel):
    name: str | None = None
    description: str


class TrajectoryRunMeta(WireModel):
    """Outcome of one trajectory run, stored under ``runs/trajectory/``."""

    run_id: str
    conversation_id: str
    timestamp: datetime
    goal: str
    persona: TrajectoryRunPersona
    completed: bool
    reason: TrajectoryStopReason
    total_turns: int = Field(ge=0)
    step_count: int | None = None
    steps_completed: int | None = None
    metadata: dict[str, Any] | None = None
