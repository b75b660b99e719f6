"""Run artifact models: the persisted result of one evaluation run.

A run artifact is a schema-versioned, self-describing snapshot of a
single evaluation pass over one conversation. Definitions (metrics,
evals, scorers) live once in ``defs`` keyed by name; results refer to
them by name only.

Every object tolerates unknown fields so that artifacts written by a
newer version still load here. The schema version itself is strict.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, model_validator

from tally.models.base import OpenWireModel

# Current schema version for stored run artifacts.
RUN_ARTIFACT_SCHEMA_VERSION = 1

Score = Annotated[float, Field(ge=0.0, le=1.0)]
MetricScalar = Union[int, float, bool, str, None]
Verdict = Literal["pass", "fail", "unknown"]
EvalKind = Literal["singleTurn", "multiTurn", "scorer"]
OutputShape = Literal["seriesByStepIndex", "scalar"]


# ---------------------------------------------------------------------------
# Measurement vs outcome
# ---------------------------------------------------------------------------


class Measurement(OpenWireModel):
    """What was measured: a raw value, its normalized score, debug info."""

    metric_ref: str
    score: Score | None = None
    raw_value: MetricScalar = None
    confidence: float | None = None
    reasoning: str | None = None
    execution_time_ms: float | None = None
    timestamp: str | None = None
    metadata: dict[str, Any] | None = None


class NonePolicy(OpenWireModel):
    kind: Literal["none"]


class BooleanPolicy(OpenWireModel):
    kind: Literal["boolean"]
    pass_when: bool


class ThresholdPolicy(OpenWireModel):
    kind: Literal["number"]
    type: Literal["threshold"]
    pass_at: float
    inclusive: Literal[True] | None = None


class RangePolicy(OpenWireModel):
    kind: Literal["number"]
    type: Literal["range"]
    min: float | None = None
    max: float | None = None
    inclusive: Literal[True] | None = None


class OrdinalPolicy(OpenWireModel):
    kind: Literal["ordinal"]
    pass_when_in: list[str]


class CustomPolicy(OpenWireModel):
    """A verdict function that cannot be serialized."""

    kind: Literal["custom"]
    note: Literal["not-serializable"]


# Plain union rather than a discriminator on ``kind``: "number" has two shapes.
VerdictPolicyInfo = Union[
    NonePolicy,
    BooleanPolicy,
    ThresholdPolicy,
    RangePolicy,
    OrdinalPolicy,
    CustomPolicy,
]


class ObservedValues(OpenWireModel):
    raw_value: MetricScalar = None
    score: Score | None = None


class EvalOutcome(OpenWireModel):
    """Verdict computed from a policy and a measurement."""

    verdict: Verdict
    policy: VerdictPolicyInfo
    observed: ObservedValues | None = None


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


class StepEvalResult(OpenWireModel):
    eval_ref: str
    measurement: Measurement
    outcome: EvalOutcome | None = None


class ConversationEvalResult(StepEvalResult):
    pass


class SingleTurnEvalSeries(OpenWireModel):
    """Per-step results; list index is the step index, None = not evaluated."""

    by_step_index: list[StepEvalResult | None]


class ScorerSeriesResult(OpenWireModel):
    shape: Literal["seriesByStepIndex"]
    series: SingleTurnEvalSeries


class ScorerScalarResult(OpenWireModel):
    shape: Literal["scalar"]
    result: ConversationEvalResult


ScorerResult = Annotated[
    Union[ScorerSeriesResult, ScorerScalarResult],
    Field(discriminator="shape"),
]

AggregationValue = Union[float, dict[str, float]]
Aggregations = dict[str, AggregationValue]


class SummaryAggregations(OpenWireModel):
    score: Aggregations
    raw: Aggregations | None = None


class VerdictSummary(OpenWireModel):
    pass_rate: Score
    fail_rate: Score
    unknown_rate: Score
    pass_count: int
    fail_count: int
    unknown_count: int
    total_count: int


class EvalSummarySnap(OpenWireModel):
    eval: str
    kind: EvalKind
    count: int
    aggregations: SummaryAggregations | None = None
    verdict_summary: VerdictSummary | None = None


class Summaries(OpenWireModel):
    by_eval: dict[str, EvalSummarySnap]


class ConversationResult(OpenWireModel):
    """All results of a run over a single conversation.

    Every per-step series holds exactly ``step_count`` entries.
    """

    step_count: int = Field(ge=0)
    single_turn: dict[str, SingleTurnEvalSeries]
    multi_turn: dict[str, ConversationEvalResult]
    scorers: dict[str, ScorerResult]
    summaries: Summaries | None = None

    @model_validator(mode="after")
    def _series_match_step_count(self) -> ConversationResult:
        series: list[tuple[str, SingleTurnEvalSeries]] = list(self.single_turn.items())
        series.extend(
            (name, scorer.series)
            for name, scorer in self.scorers.items()
            if isinstance(scorer, ScorerSeriesResult)
        )
        for name, entry in series:
            if len(entry.by_step_index) != self.step_count:
                raise ValueError(
                    f"Series '{name}' has {len(entry.by_step_index)} entries "
                    f"but stepCount is {self.step_count}"
                )
        return self


# ---------------------------------------------------------------------------
# Deduplicated definitions
# ---------------------------------------------------------------------------


class MetricPromptSnap(OpenWireModel):
    instruction: str
    variables: list[str] | None = None


class MetricLlmSnap(OpenWireModel):
    provider: dict[str, Any] | None = None
    prompt: MetricPromptSnap | None = None
    rubric: dict[str, Any] | None = None


class AggregatorSnap(OpenWireModel):
    kind: str
    name: str
    description: str | None = None
    config: Any = None


class MetricDefSnap(OpenWireModel):
    name: str
    scope: Literal["single", "multi"]
    value_type: Literal["number", "boolean", "string", "ordinal"]
    description: str | None = None
    metadata: dict[str, Any] | None = None
    llm: MetricLlmSnap | None = None
    aggregators: list[AggregatorSnap] | None = None
    normalization: Any = None


class EvalDefSnap(OpenWireModel):
    name: str
    kind: EvalKind
    output_shape: OutputShape
    metric: str
    scorer_ref: str | None = None
    verdict: VerdictPolicyInfo | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None


class ScorerInputSnap(OpenWireModel):
    metric_ref: str
    weight: float
    required: bool | None = None
    has_normalizer_override: bool | None = None


class ScorerCombineSnap(OpenWireModel):
    kind: Literal["weightedAverage", "identity", "custom", "unknown"]
    note: str | None = None


class ScorerDefSnap(OpenWireModel):
    name: str
    inputs: list[ScorerInputSnap]
    normalize_weights: bool | None = None
    fallback_score: Score | None = None
    combine: ScorerCombineSnap | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None


class RunDefs(OpenWireModel):
    metrics: dict[str, MetricDefSnap]
    evals: dict[str, EvalDefSnap]
    scorers: dict[str, ScorerDefSnap]


# ---------------------------------------------------------------------------
# Stored artifact
# ---------------------------------------------------------------------------


class StoreLocator(OpenWireModel):
    backend: Literal["local", "s2", "redis"]
    base_path: str


class ArtifactsLocator(OpenWireModel):
    conversation_id: str
    run_path: str | None = None
    conversation_jsonl_path: str | None = None
    step_traces_path: str | None = None


class RunArtifact(OpenWireModel):
    """The canonical stored shape of one tally run."""

    schema_version: Literal[1]
    run_id: str
    created_at: str
    store: StoreLocator | None = None
    artifacts: ArtifactsLocator | None = None
    defs: RunDefs
    result: ConversationResult
    metadata: dict[str, Any] | None = None
