"""tally - storage, codecs and run bookkeeping for agent evaluations.

Open a store from configuration and work with conversations and runs::

    async with await TallyStore.open() as store:
        ref = await store.save_conversation(conversation.id, conversation)
        run = await ref.create_run("tally")
        await run.save(artifact)
"""

__version__ = "0.1.0"

from tally.codecs import (  # noqa: E402
    CodecResult,
    ConversationCodec,
    RunArtifactCodec,
    StepTracesCodec,
    TrajectoryMetaCodec,
    TrajectoryRunMetaCodec,
)
from tally.config import clear_config_cache, get_config, resolve_config  # noqa: E402
from tally.exceptions import CodecError, ConfigError, TallyError  # noqa: E402
from tally.models import (  # noqa: E402
    Conversation,
    ConversationStep,
    RunArtifact,
    StepTrace,
    TallyConfig,
    TrajectoryMeta,
    TrajectoryRunMeta,
)
from tally.storage import BaseStorage, LocalStorage, create_storage  # noqa: E402
from tally.store import ConversationRef, RunRef, TallyStore  # noqa: E402

__all__ = [
    "BaseStorage",
    "CodecError",
    "CodecResult",
    "ConfigError",
    "Conversation",
    "ConversationCodec",
    "ConversationRef",
    "ConversationStep",
    "LocalStorage",
    "RunArtifact",
    "RunArtifactCodec",
    "RunRef",
    "StepTrace",
    "StepTracesCodec",
    "TallyConfig",
    "TallyError",
    "TallyStore",
    "TrajectoryMeta",
    "TrajectoryMetaCodec",
    "TrajectoryRunMeta",
    "TrajectoryRunMetaCodec",
    "__version__",
    "clear_config_cache",
    "create_storage",
    "get_config",
    "resolve_config",
]
