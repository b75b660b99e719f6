"""Text extraction from loosely-typed model messages.

Messages carry either a plain string ``content`` or a list of content
parts (``{"type": "text", "text": ...}``, tool-call parts, and so on).
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from tally.models.conversation import ModelMessage


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def extract_text_from_message(message: ModelMessage) -> str:
    """Return the text of a message, ignoring tool calls and other parts."""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text" and "text" in part:
                parts.append(str(part["text"]))
        return " ".join(parts).strip()
    return ""


def extract_text_from_messages(messages: Iterable[ModelMessage]) -> str:
    """Join the non-empty text of several messages with blank lines."""
    texts = (extract_text_from_message(message) for message in messages)
    return "\n\n".join(text for text in texts if text)


def extract_tool_result_content(message: ModelMessage) -> str:
    """Render the content of a ``tool`` message as text.

    Structured results are JSON-encoded. Messages with any other role
    yield an empty string.
    """
    if message.get("role") != "tool":
        return ""

    if "content" in message:
        content = message["content"]
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for part in content:
                if isinstance(part, str):
                    parts.append(part)
                elif isinstance(part, dict):
                    if part.get("type") == "text" and "text" in part:
                        parts.append(str(part["text"]))
                    elif part.get("type") == "tool-result" and "result" in part:
                        parts.append(_to_text(part["result"]))
            return "\n".join(parts)
        if content is None:
            return ""
        return _to_text(content)

    if "result" in message:
        return _to_text(message["result"])
    return ""


def has_text_content(message: ModelMessage) -> bool:
    return bool(extract_text_from_message(message))


def get_first_text_content(message: ModelMessage) -> str | None:
    return extract_text_from_message(message) or None
