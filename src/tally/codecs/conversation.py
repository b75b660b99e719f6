"""JSONL codec for conversations.

Each line holds one step plus a duplicated ``conversationId``; the first
line also carries ``conversationMetadata`` when the conversation has
metadata. Decoding is tolerant per line: a line that is valid JSON but
not a valid step is logged and skipped, while text that is not JSON at
all fails the whole document.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from tally.codecs.base import Codec, model_validator_for, validate_model
from tally.exceptions import CodecError
from tally.models.conversation import Conversation, ConversationStep

logger = logging.getLogger(__name__)

UNKNOWN_CONVERSATION_ID = "unknown"


def decode_conversation(content: str) -> Conversation:
    """Decode JSONL text into a Conversation.

    Args:
        content: Raw file content. Blank lines are ignored.

    Returns:
        The decoded conversation, steps in ascending stepIndex order.

    Raises:
        CodecError: If the content is empty or any line is not valid JSON.
    """
    lines = [
        (number, line)
        for number, line in enumerate(content.split("\n"), start=1)
        if line.strip()
    ]
    if not lines:
        raise CodecError("Conversation file is empty")

    conversation_id = UNKNOWN_CONVERSATION_ID
    metadata: dict[str, Any] | None = None
    steps: list[ConversationStep] = []
    seen: set[int] = set()

    for position, (number, line) in enumerate(lines):
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError as exc:
            raise CodecError(f"Invalid JSON at line {number}: {exc}") from exc

        if not isinstance(parsed, dict):
            logger.warning("Line %d: expected a JSON object, skipping", number)
            continue

        if position == 0:
            if isinstance(parsed.get("conversationId"), str):
                conversation_id = parsed["conversationId"]
            if isinstance(parsed.get("conversationMetadata"), dict):
                metadata = parsed["conversationMetadata"]

        parsed.pop("conversationId", None)
        parsed.pop("conversationMetadata", None)

        try:
            step = ConversationStep.model_validate(parsed)
        except ValidationError as exc:
            logger.warning("Line %d: invalid step format, skipping: %s", number, exc)
            continue

        if step.step_index in seen:
            logger.warning(
                "Line %d: duplicate stepIndex %d, skipping", number, step.step_index
            )
            continue
        seen.add(step.step_index)
        steps.append(step)

    if metadata is not None:
        return Conversation(id=conversation_id, steps=steps, metadata=metadata)
    return Conversation(id=conversation_id, steps=steps)


def encode_conversation(conversation: Conversation | dict[str, Any]) -> str:
    """Encode a Conversation as JSONL, one line per step.

    Raises:
        CodecError: If the conversation fails validation.
    """
    wire = validate_model(Conversation, conversation, "conversation").to_wire()
    lines = []
    for index, step in enumerate(wire["steps"]):
        line = {**step, "conversationId": wire["id"]}
        if index == 0 and wire.get("metadata") is not None:
            line["conversationMetadata"] = wire["metadata"]
        lines.append(json.dumps(line, ensure_ascii=False))
    return "\n".join(lines)


validate_conversation = model_validator_for(Conversation, "conversation")

ConversationCodec: Codec[Conversation] = Codec(
    "conversation",
    decode=decode_conversation,
    encode=encode_conversation,
    validate=validate_conversation,
)
