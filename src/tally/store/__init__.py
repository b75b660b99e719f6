"""Store - conversation and run bookkeeping on top of a storage backend."""

from tally.store.conversation_ref import ConversationRef
from tally.store.run_ref import RUN_TYPES, RunKind, RunRef, RunType
from tally.store.tally_store import TallyStore, normalize_base_path

__all__ = [
    "RUN_TYPES",
    "ConversationRef",
    "RunKind",
    "RunRef",
    "RunType",
    "TallyStore",
    "normalize_base_path",
]
