"""Tool call extraction from model messages.

Assistant messages report tool calls in one of two shapes:

- a ``toolCalls`` array of ``{toolCallId, toolName, args}`` objects
- ``content`` parts of ``type: "tool-call"`` carrying ``input`` or ``args``

Both are read, and a call id seen once is never reported twice. Results
come from ``tool`` messages, matched back to calls by id.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from tally.models.conversation import Conversation, ConversationStep, ModelMessage


@dataclass
class ExtractedToolCall:
    """A tool call found in an assistant message.

    ``has_result`` tells a matched call whose result is None apart from
    a call that never got a result.
    """

    tool_call_id: str
    tool_name: str
    args: Any
    result: Any = None
    has_result: bool = False


@dataclass
class ExtractedToolResult:
    tool_call_id: str
    output: Any
    tool_name: str | None = None


def extract_tool_calls_from_message(message: ModelMessage) -> list[ExtractedToolCall]:
    """Return the tool calls of a single assistant message."""
    if message.get("role") != "assistant":
        return []

    calls: list[ExtractedToolCall] = []
    seen: set[str] = set()

    tool_calls = message.get("toolCalls")
    if isinstance(tool_calls, list):
        for call in tool_calls:
            if not isinstance(call, dict) or "toolCallId" not in call or "toolName" not in call:
                continue
            call_id = str(call["toolCallId"])
            if call_id in seen:
                continue
            seen.add(call_id)
            calls.append(
                ExtractedToolCall(
                    tool_call_id=call_id,
                    tool_name=str(call["toolName"]),
                    args=call.get("args", {}),
                )
            )

    content = message.get("content")
    if isinstance(content, list):
        for part in content:
            if (
                not isinstance(part, dict)
                or part.get("type") != "tool-call"
                or "toolCallId" not in part
                or "toolName" not in part
            ):
                continue
            call_id = str(part["toolCallId"])
            if call_id in seen:
                continue
            seen.add(call_id)
            if "input" in part:
                args = part["input"]
            else:
                args = part.get("args", {})
            calls.append(
                ExtractedToolCall(
                    tool_call_id=call_id, tool_name=str(part["toolName"]), args=args
                )
            )

    return calls


def extract_tool_calls_from_messages(
    messages: Iterable[ModelMessage],
) -> list[ExtractedToolCall]:
    """Return the tool calls across messages, first occurrence of each id."""
    calls: list[ExtractedToolCall] = []
    seen: set[str] = set()
    for message in messages:
        for call in extract_tool_calls_from_message(message):
            if call.tool_call_id not in seen:
                seen.add(call.tool_call_id)
                calls.append(call)
    return calls


def _tool_message_output(message: ModelMessage) -> Any:
    if "content" in message:
        content = message["content"]
        if isinstance(content, list):
            texts: list[str] = []
            for part in content:
                if isinstance(part, str):
                    texts.append(part)
                elif isinstance(part, dict):
                    if part.get("type") == "text" and "text" in part:
                        texts.append(str(part["text"]))
                    elif part.get("type") == "tool-result" and "result" in part:
                        return part["result"]
            return "\n".join(texts) if texts else content
        return content
    return message.get("result")


def extract_tool_results_from_messages(
    messages: Iterable[ModelMessage],
) -> list[ExtractedToolResult]:
    """Return the results carried by ``tool`` messages.

    A tool message either names its call at the top level
    (``toolCallId``) or holds ``tool-result`` content parts that each
    name their own call.
    """
    results: list[ExtractedToolResult] = []
    for message in messages:
        if message.get("role") != "tool":
            continue
        if "toolCallId" in message:
            tool_name = message.get("toolName")
            results.append(
                ExtractedToolResult(
                    tool_call_id=str(message["toolCallId"]),
                    output=_tool_message_output(message),
                    tool_name=str(tool_name) if tool_name is not None else None,
                )
            )
            continue
        content = message.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if (
                isinstance(part, dict)
                and part.get("type") == "tool-result"
                and "toolCallId" in part
            ):
                output = part["output"] if "output" in part else part.get("result")
                tool_name = part.get("toolName")
                results.append(
                    ExtractedToolResult(
                        tool_call_id=str(part["toolCallId"]),
                        output=output,
                        tool_name=str(tool_name) if tool_name is not None else None,
                    )
                )
    return results


def match_tool_calls_with_results(
    tool_calls: list[ExtractedToolCall],
    tool_results: list[ExtractedToolResult],
) -> list[ExtractedToolCall]:
    """Return copies of tool_calls with results filled in by call id."""
    outputs = {result.tool_call_id: result.output for result in tool_results}
    return [
        replace(call, result=outputs[call.tool_call_id], has_result=True)
        if call.tool_call_id in outputs
        else call
        for call in tool_calls
    ]


def extract_tool_calls_from_step(step: ConversationStep) -> list[ExtractedToolCall]:
    """Return a step's tool calls matched with the results in its output."""
    return match_tool_calls_with_results(
        extract_tool_calls_from_messages(step.output),
        extract_tool_results_from_messages(step.output),
    )


def has_tool_calls(step: ConversationStep) -> bool:
    return bool(extract_tool_calls_from_messages(step.output))


def has_tool_call(step: ConversationStep, tool_name: str) -> bool:
    return any(
        call.tool_name == tool_name
        for call in extract_tool_calls_from_messages(step.output)
    )


def get_tool_names(step: ConversationStep) -> list[str]:
    """Return the distinct tool names used in a step, in call order."""
    names = (call.tool_name for call in extract_tool_calls_from_messages(step.output))
    return list(dict.fromkeys(names))


def count_tool_calls_by_type(conversation: Conversation) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for step in conversation.steps:
        counts.update(
            call.tool_name for call in extract_tool_calls_from_messages(step.output)
        )
    return dict(counts)


def assert_tool_call_sequence(step: ConversationStep) -> None:
    """Check that every tool call in a step has a matching result.

    Raises:
        AssertionError: Naming the first call without a result.
    """
    for call in extract_tool_calls_from_step(step):
        if not call.has_result:
            raise AssertionError(
                f"Tool call '{call.tool_name}' ({call.tool_call_id}) has no matching result"
            )
