"""Tests for tally.utils.tool_calls."""

import pytest

from tally.models.conversation import Conversation, ConversationStep
from tally.utils.tool_calls import (
    ExtractedToolResult,
    assert_tool_call_sequence,
    count_tool_calls_by_type,
    extract_tool_calls_from_message,
    extract_tool_calls_from_messages,
    extract_tool_calls_from_step,
    extract_tool_results_from_messages,
    get_tool_names,
    has_tool_call,
    has_tool_calls,
    match_tool_calls_with_results,
)


def _step(output, step_index=0):
    return ConversationStep(step_index=step_index, input={"role": "user"}, output=output)


class TestExtractToolCalls:
    def test_tool_calls_array(self):
        message = {
            "role": "assistant",
            "toolCalls": [{"toolCallId": "a", "toolName": "search", "args": {"q": "x"}}],
        }
        [call] = extract_tool_calls_from_message(message)
        assert call.tool_call_id == "a"
        assert call.tool_name == "search"
        assert call.args == {"q": "x"}
        assert call.has_result is False

    def test_content_parts_input_and_args(self):
        message = {
            "role": "assistant",
            "content": [
                {"type": "tool-call", "toolCallId": "a", "toolName": "t1", "input": {"i": 1}},
                {"type": "tool-call", "toolCallId": "b", "toolName": "t2", "args": {"a": 2}},
                {"type": "tool-call", "toolCallId": "c", "toolName": "t3"},
            ],
        }
        calls = extract_tool_calls_from_message(message)
        assert [(c.tool_name, c.args) for c in calls] == [
            ("t1", {"i": 1}),
            ("t2", {"a": 2}),
            ("t3", {}),
        ]

    def test_same_id_in_both_shapes_reported_once(self):
        message = {
            "role": "assistant",
            "toolCalls": [{"toolCallId": "a", "toolName": "t", "args": {}}],
            "content": [{"type": "tool-call", "toolCallId": "a", "toolName": "t", "input": {}}],
        }
        assert len(extract_tool_calls_from_message(message)) == 1

    def test_non_assistant_ignored(self):
        message = {"role": "user", "toolCalls": [{"toolCallId": "a", "toolName": "t"}]}
        assert extract_tool_calls_from_message(message) == []

    def test_incomplete_calls_skipped(self):
        message = {"role": "assistant", "toolCalls": [{"toolName": "t"}, "junk"]}
        assert extract_tool_calls_from_message(message) == []

    def test_dedupe_across_messages(self):
        message = {"role": "assistant", "toolCalls": [{"toolCallId": "a", "toolName": "t"}]}
        assert len(extract_tool_calls_from_messages([message, message])) == 1


class TestToolResults:
    def test_top_level_tool_call_id(self):
        messages = [{"role": "tool", "toolCallId": "a", "toolName": "t", "content": "ok"}]
        assert extract_tool_results_from_messages(messages) == [
            ExtractedToolResult(tool_call_id="a", output="ok", tool_name="t")
        ]

    def test_tool_result_parts(self):
        messages = [
            {
                "role": "tool",
                "content": [
                    {"type": "tool-result", "toolCallId": "a", "toolName": "t", "output": 1},
                    {"type": "tool-result", "toolCallId": "b", "result": 2},
                ],
            }
        ]
        results = extract_tool_results_from_messages(messages)
        assert [(r.tool_call_id, r.output, r.tool_name) for r in results] == [
            ("a", 1, "t"),
            ("b", 2, None),
        ]

    def test_match_fills_results(self):
        calls = extract_tool_calls_from_messages(
            [
                {
                    "role": "assistant",
                    "toolCalls": [
                        {"toolCallId": "a", "toolName": "t"},
                        {"toolCallId": "b", "toolName": "t"},
                    ],
                }
            ]
        )
        matched = match_tool_calls_with_results(
            calls, [ExtractedToolResult(tool_call_id="a", output=None)]
        )
        assert matched[0].has_result is True
        assert matched[0].result is None
        assert matched[1].has_result is False
        assert calls[0].has_result is False


class TestStepHelpers:
    """Step-level helpers over the shared conversation fixture."""

    def test_extract_from_step(self, conversation: Conversation):
        [call] = extract_tool_calls_from_step(conversation.steps[0])
        assert call.tool_name == "getWeather"
        assert call.args == {"city": "Paris"}
        assert call.result == "18C and sunny"

    def test_has_tool_calls(self, conversation: Conversation):
        assert has_tool_calls(conversation.steps[0]) is True
        assert has_tool_calls(conversation.steps[1]) is False
        assert has_tool_call(conversation.steps[0], "getWeather") is True
        assert has_tool_call(conversation.steps[0], "book") is False

    def test_tool_names_ordered_unique(self):
        step = _step(
            [
                {
                    "role": "assistant",
                    "toolCalls": [
                        {"toolCallId": "1", "toolName": "b"},
                        {"toolCallId": "2", "toolName": "a"},
                        {"toolCallId": "3", "toolName": "b"},
                    ],
                }
            ]
        )
        assert get_tool_names(step) == ["b", "a"]

    def test_count_by_type(self, conversation: Conversation):
        assert count_tool_calls_by_type(conversation) == {"getWeather": 1}

    def test_sequence_complete(self, conversation: Conversation):
        assert_tool_call_sequence(conversation.steps[0])

    def test_sequence_missing_result(self):
        step = _step([{"role": "assistant", "toolCalls": [{"toolCallId": "x", "toolName": "t"}]}])
        with pytest.raises(AssertionError, match="Tool call 't' \\(x\\) has no matching result"):
            assert_tool_call_sequence(step)
