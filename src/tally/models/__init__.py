"""tally data models - re-exports all public model classes."""

from tally.models.config import TallyConfig
from tally.models.conversation import Conversation, ConversationStep, ModelMessage
from tally.models.run_artifact import (
    RUN_ARTIFACT_SCHEMA_VERSION,
    ConversationResult,
    EvalOutcome,
    Measurement,
    RunArtifact,
    RunDefs,
    SingleTurnEvalSeries,
    StepEvalResult,
)
from tally.models.trajectory import (
    StepTrace,
    TrajectoryMeta,
    TrajectoryRunMeta,
)

__all__ = [
    "RUN_ARTIFACT_SCHEMA_VERSION",
    "Conversation",
    "ConversationResult",
    "ConversationStep",
    "EvalOutcome",
    "Measurement",
    "ModelMessage",
    "RunArtifact",
    "RunDefs",
    "SingleTurnEvalSeries",
    "StepEvalResult",
    "StepTrace",
    "TallyConfig",
    "TrajectoryMeta",
    "TrajectoryRunMeta",
]
