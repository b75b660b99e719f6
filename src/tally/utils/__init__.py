"""Utilities - ids, directory discovery, and message helpers."""

from tally.utils.ids import (
    extract_timestamp_from_id,
    generate_conversation_id,
    generate_run_id,
    generate_trajectory_id,
)
from tally.utils.scan import (
    get_conversation_path,
    get_conversations_path,
    get_runs_path,
    has_tally_directory,
    scan_tally_directory,
)
from tally.utils.text import (
    extract_text_from_message,
    extract_text_from_messages,
    extract_tool_result_content,
    get_first_text_content,
    has_text_content,
)
from tally.utils.tool_calls import (
    ExtractedToolCall,
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

__all__ = [
    "ExtractedToolCall",
    "ExtractedToolResult",
    "assert_tool_call_sequence",
    "count_tool_calls_by_type",
    "extract_text_from_message",
    "extract_text_from_messages",
    "extract_timestamp_from_id",
    "extract_tool_calls_from_message",
    "extract_tool_calls_from_messages",
    "extract_tool_calls_from_step",
    "extract_tool_result_content",
    "extract_tool_results_from_messages",
    "generate_conversation_id",
    "generate_run_id",
    "generate_trajectory_id",
    "get_conversation_path",
    "get_conversations_path",
    "get_first_text_content",
    "get_runs_path",
    "get_tool_names",
    "has_tally_directory",
    "has_text_content",
    "has_tool_call",
    "has_tool_calls",
    "match_tool_calls_with_results",
    "scan_tally_directory",
]
