"""Tests for the text, tool-call and reasoning accumulators."""

from __future__ import annotations

import pytest

from agui_sdk.builders import (
    ReasoningBuilder,
    TextMessageBuilder,
    ToolCallBuilder,
    format_result_content,
    parse_result_content,
)
from agui_sdk.errors import DecodeError, ProtocolViolationError
from agui_sdk.events import ToolCallResultEvent
from agui_sdk.updates import FunctionCall, FunctionResult, ReasoningDelta, TextDelta


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def test_text_builder_cycle():
    builder = TextMessageBuilder()
    builder.start("m1", "assistant")
    assert builder.is_open
    assert builder.content("m1", "Hel") == TextDelta("Hel", "m1", "assistant")
    builder.end("m1")
    assert not builder.is_open
    builder.start("m2", "user")
    assert builder.content("m2", "x").role == "user"


def test_text_builder_rejects_double_start():
    builder = TextMessageBuilder()
    builder.start("m1")
    with pytest.raises(ProtocolViolationError):
        builder.start("m2")


def test_text_builder_rejects_content_without_start():
    with pytest.raises(ProtocolViolationError, match="without a start"):
        TextMessageBuilder().content("m1", "hi")


def test_text_builder_rejects_wrong_ids():
    builder = TextMessageBuilder()
    builder.start("m1")
    with pytest.raises(ProtocolViolationError):
        builder.content("m2", "hi")
    with pytest.raises(ProtocolViolationError):
        builder.end("m2")


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


def test_tool_call_builder_joins_fragments():
    builder = ToolCallBuilder()
    builder.start("c1", "lookup", "m1")
    builder.append("c1", '{"q":')
    builder.append("c1", '"x"}')
    assert builder.finish("c1") == FunctionCall("c1", "lookup", {"q": "x"}, "m1")
    assert not builder.is_open


def test_tool_call_builder_empty_buffer_means_no_arguments():
    builder = ToolCallBuilder()
    builder.start("c1", "ping")
    assert builder.finish("c1").arguments is None


def test_tool_call_builder_rejects_bad_arguments():
    builder = ToolCallBuilder()
    builder.start("c1", "ping")
    builder.append("c1", "[1, 2]")
    with pytest.raises(DecodeError):
        builder.finish("c1")

    builder = ToolCallBuilder()
    builder.start("c2", "ping")
    builder.append("c2", '{"unterminated')
    with pytest.raises(DecodeError):
        builder.finish("c2")


def test_tool_call_builder_rejects_out_of_order_calls():
    builder = ToolCallBuilder()
    with pytest.raises(ProtocolViolationError):
        builder.append("c1", "{}")
    with pytest.raises(ProtocolViolationError):
        builder.finish("c1")
    builder.start("c1", "ping")
    with pytest.raises(ProtocolViolationError):
        builder.start("c2", "ping")
    with pytest.raises(ProtocolViolationError):
        builder.append("c2", "{}")


def test_tool_result_does_not_need_an_open_call():
    result = ToolCallBuilder.result(ToolCallResultEvent("r1", "c1", '{"rows":3}'))
    assert result == FunctionResult("c1", {"rows": 3}, "r1")


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ('{"a":1}', {"a": 1}),
        ("42", 42),
        ("plain words", "plain words"),
        ("", None),
    ],
)
def test_parse_result_content(content, expected):
    assert parse_result_content(content) == expected


def test_format_result_content():
    assert format_result_content(None) == ""
    assert format_result_content("done") == "done"
    assert format_result_content({"a": [1, 2]}) == '{"a":[1,2]}'


# ---------------------------------------------------------------------------
# Reasoning
# ---------------------------------------------------------------------------


def test_reasoning_builder_explicit_session():
    builder = ReasoningBuilder()
    builder.begin("s1")
    builder.start("r1")
    assert builder.content("r1", "think") == ReasoningDelta("think", "r1")
    builder.end("r1")
    assert builder.in_session
    builder.start("r2")
    builder.end("r2")
    builder.finish("s1")
    assert not builder.in_session


def test_reasoning_builder_implicit_session_closes_with_message():
    builder = ReasoningBuilder()
    builder.start("r1")
    assert builder.in_session
    builder.end("r1")
    assert not builder.in_session


def test_reasoning_builder_violations():
    builder = ReasoningBuilder()
    with pytest.raises(ProtocolViolationError):
        builder.content("r1", "x")
    with pytest.raises(ProtocolViolationError):
        builder.finish("s1")
    builder.begin("s1")
    with pytest.raises(ProtocolViolationError):
        builder.begin("s2")
    builder.start("r1")
    with pytest.raises(ProtocolViolationError):
        builder.start("r2")
    with pytest.raises(ProtocolViolationError):
        builder.finish("s1")
    builder.end("r1")
    with pytest.raises(ProtocolViolationError):
        builder.finish("s2")
