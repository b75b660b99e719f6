"""Names that make up the on-disk (or key-prefix) layout of a tally store.

    <base>/
        conversations/
            <conversation-id>/
                meta.json
                conversation.jsonl
                trajectory.meta.json
                stepTraces.json
                runs/
                    tally/<run-id>.json
                    trajectory/<run-id>.json
"""

CONVERSATIONS = "conversations"
CONVERSATION = "conversation"
CONVERSATION_FILE = f"{CONVERSATION}.jsonl"
RUNS = "runs"
TALLY = "tally"
TRAJECTORY = "trajectory"
META = "meta.json"
TRAJECTORY_META = "trajectory.meta.json"
STEP_TRACES = "stepTraces.json"
RUN_FILE_SUFFIX = ".json"

DEFAULT_STORAGE_DIR = ".tally"
