"""Tests for rebuilding chat updates from wire events."""

from __future__ import annotations

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from agui_sdk.errors import DecodeError, ProtocolViolationError, StateSyncError
from agui_sdk.events import (
    CustomEvent,
    ReasoningEndEvent,
    ReasoningMessageChunkEvent,
    ReasoningMessageContentEvent,
    ReasoningMessageEndEvent,
    ReasoningMessageStartEvent,
    ReasoningStartEvent,
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    StateDeltaEvent,
    StateSnapshotEvent,
    StepStartedEvent,
    TextMessageChunkEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ThinkingEndEvent,
    ThinkingStartEvent,
    ThinkingTextMessageContentEvent,
    ThinkingTextMessageEndEvent,
    ThinkingTextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallChunkEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from agui_sdk.inbound import UpdateStreamReader, to_chat_updates
from agui_sdk.types import Interrupt
from agui_sdk.updates import (
    ApprovalRequest,
    FunctionCall,
    FunctionResult,
    InputRequest,
    Passthrough,
    ReasoningDelta,
    RunFailed,
    RunFinished,
    RunStarted,
    StatePatch,
    StateSnapshot,
    TextDelta,
)

from helpers import aiter_of, chat_updates, translate

STARTED = RunStartedEvent("t1", "r1")
FINISHED = RunFinishedEvent("t1", "r1")


async def rebuild(events, state=None) -> list:
    return [u async for u in to_chat_updates(aiter_of(events), state=state)]


def content_only(updates: list) -> list:
    return [u for u in updates if not isinstance(u, (RunStarted, RunFinished))]


# ---------------------------------------------------------------------------
# Reconstruction
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_text_and_tool_call_reconstruction():
    updates = await rebuild(
        [
            STARTED,
            TextMessageStartEvent("m1"),
            TextMessageContentEvent("m1", "Hel"),
            TextMessageContentEvent("m1", "lo"),
            TextMessageEndEvent("m1"),
            ToolCallStartEvent("c1", "lookup", parent_message_id="m1"),
            ToolCallArgsEvent("c1", '{"q":'),
            ToolCallArgsEvent("c1", '"x"}'),
            ToolCallEndEvent("c1"),
            ToolCallResultEvent("res1", "c1", "found it"),
            FINISHED,
        ]
    )
    assert updates == [
        RunStarted("t1", "r1"),
        TextDelta("Hel", "m1"),
        TextDelta("lo", "m1"),
        FunctionCall("c1", "lookup", {"q": "x"}, "m1"),
        FunctionResult("c1", "found it", "res1"),
        RunFinished("t1", "r1"),
    ]


@pytest.mark.asyncio
async def test_reasoning_and_legacy_thinking():
    updates = await rebuild(
        [
            STARTED,
            ReasoningStartEvent("s1"),
            ReasoningMessageStartEvent("x1"),
            ReasoningMessageContentEvent("x1", "plan"),
            ReasoningMessageEndEvent("x1"),
            ReasoningEndEvent("s1"),
            ThinkingStartEvent(),
            ThinkingTextMessageStartEvent("x2"),
            ThinkingTextMessageContentEvent("x2", "more"),
            ThinkingTextMessageEndEvent("x2"),
            ThinkingEndEvent(),
            FINISHED,
        ]
    )
    assert content_only(updates) == [ReasoningDelta("plan", "x1"), ReasoningDelta("more", "x2")]


@pytest.mark.asyncio
async def test_chunks_expand_into_framed_units():
    updates = await rebuild(
        [
            STARTED,
            TextMessageChunkEvent(message_id="m1", role="assistant", delta="Hi"),
            TextMessageChunkEvent(delta=" there"),
            ToolCallChunkEvent(tool_call_id="c1", tool_call_name="lookup", delta='{"q":'),
            ToolCallChunkEvent(delta='"x"}'),
            ToolCallChunkEvent(tool_call_id="c2", tool_call_name="ping"),
            ReasoningMessageChunkEvent(message_id="x1", delta="hmm"),
            FINISHED,
        ]
    )
    assert content_only(updates) == [
        TextDelta("Hi", "m1"),
        TextDelta(" there", "m1"),
        FunctionCall("c1", "lookup", {"q": "x"}),
        FunctionCall("c2", "ping"),
        ReasoningDelta("hmm", "x1"),
    ]


@pytest.mark.asyncio
async def test_first_chunk_needs_an_id():
    with pytest.raises(ProtocolViolationError):
        await rebuild([STARTED, TextMessageChunkEvent(delta="orphan")])


@pytest.mark.asyncio
async def test_passthrough_events():
    step = StepStartedEvent("search")
    custom = CustomEvent("ping", 1)
    updates = await rebuild([STARTED, step, custom, FINISHED])
    assert content_only(updates) == [Passthrough(step), Passthrough(custom)]


@pytest.mark.asyncio
async def test_run_error_becomes_run_failed():
    updates = await rebuild(
        [STARTED, TextMessageStartEvent("m1"), RunErrorEvent("boom", code="E1")]
    )
    assert updates[-1] == RunFailed("boom", "E1")


# ---------------------------------------------------------------------------
# Interrupts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_interrupt_outcome_becomes_approval_request():
    interrupt = Interrupt(
        "int_1", {"functionName": "delete_file", "functionArguments": {"path": "/a"}}
    )
    updates = await rebuild(
        [STARTED, RunFinishedEvent("t1", "r1", outcome="interrupt", interrupt=interrupt)]
    )
    assert updates[-1] == ApprovalRequest(
        "int_1", FunctionCall("int_1", "delete_file", {"path": "/a"})
    )


@pytest.mark.asyncio
async def test_interrupt_detection_is_case_insensitive_and_implicit():
    interrupt = Interrupt("int_2", {"ask": "city"})
    for outcome in ("INTERRUPT", None):
        updates = await rebuild(
            [STARTED, RunFinishedEvent("t1", "r1", outcome=outcome, interrupt=interrupt)]
        )
        assert updates[-1] == InputRequest("int_2", {"ask": "city"})


@pytest.mark.asyncio
async def test_success_outcome_ignores_interrupt():
    updates = await rebuild(
        [
            STARTED,
            RunFinishedEvent(
                "t1", "r1", result=5, outcome="success", interrupt=Interrupt("int_3")
            ),
        ]
    )
    assert updates[-1] == RunFinished("t1", "r1", 5)


# ---------------------------------------------------------------------------
# Ordering violations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_content_before_start_is_rejected():
    with pytest.raises(ProtocolViolationError):
        await rebuild([STARTED, TextMessageContentEvent("X", "early"), TextMessageStartEvent("X")])


@pytest.mark.asyncio
async def test_events_before_run_started_are_rejected():
    with pytest.raises(ProtocolViolationError, match="before RUN_STARTED"):
        await rebuild([TextMessageStartEvent("m1")])


@pytest.mark.asyncio
async def test_events_after_terminal_are_rejected():
    with pytest.raises(ProtocolViolationError, match="after the run finished"):
        await rebuild([STARTED, FINISHED, CustomEvent("late")])


@pytest.mark.asyncio
async def test_missing_terminal_event_is_rejected():
    with pytest.raises(ProtocolViolationError, match="ended without"):
        await rebuild([STARTED, TextMessageStartEvent("m1"), TextMessageEndEvent("m1")])


@pytest.mark.asyncio
async def test_duplicate_run_started_is_rejected():
    with pytest.raises(ProtocolViolationError):
        await rebuild([STARTED, STARTED])


@pytest.mark.parametrize(
    "terminal",
    [RunFinishedEvent("t1", "other"), RunFinishedEvent("t2", "r1")],
)
@pytest.mark.asyncio
async def test_terminal_event_for_another_run_is_rejected(terminal):
    with pytest.raises(ProtocolViolationError):
        await rebuild([STARTED, terminal])


@pytest.mark.asyncio
async def test_finish_with_open_bracket_is_rejected():
    with pytest.raises(ProtocolViolationError, match="is open"):
        await rebuild([STARTED, ToolCallStartEvent("c1", "lookup"), FINISHED])


@pytest.mark.asyncio
async def test_malformed_tool_arguments_are_rejected():
    with pytest.raises(DecodeError):
        await rebuild(
            [STARTED, ToolCallStartEvent("c1", "x"), ToolCallArgsEvent("c1", "{oops"), ToolCallEndEvent("c1")]
        )


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_state_snapshot_and_delta_are_applied():
    reader = UpdateStreamReader()
    reader.read(STARTED)
    reader.read(StateSnapshotEvent({"items": []}))
    ops = [{"op": "add", "path": "/items/0", "value": {"name": "a"}}]
    assert reader.read(StateDeltaEvent(ops)) == [StatePatch(ops)]
    assert reader.tracker.state == {"items": [{"name": "a"}]}


@pytest.mark.asyncio
async def test_delta_applies_to_initial_state():
    updates = await rebuild(
        [STARTED, StateDeltaEvent([{"op": "replace", "path": "/n", "value": 2}]), FINISHED],
        state={"n": 1},
    )
    assert StatePatch([{"op": "replace", "path": "/n", "value": 2}]) in updates


@pytest.mark.asyncio
async def test_delta_without_snapshot_is_rejected():
    with pytest.raises(StateSyncError):
        await rebuild([STARTED, StateDeltaEvent([{"op": "add", "path": "/a", "value": 1}])])


@pytest.mark.asyncio
async def test_out_of_order_deltas_are_surfaced():
    first = [{"op": "add", "path": "/items/0", "value": {"name": "a"}}]
    second = [{"op": "replace", "path": "/items/0/name", "value": "b"}]
    reader = UpdateStreamReader()
    reader.read(STARTED)
    assert reader.read(StateSnapshotEvent({"items": []})) == [StateSnapshot({"items": []})]
    with pytest.raises(StateSyncError):
        reader.read(StateDeltaEvent(second))
    assert not reader.tracker.known
    # a fresh snapshot recovers
    reader.read(StateSnapshotEvent({"items": []}))
    reader.read(StateDeltaEvent(first))
    reader.read(StateDeltaEvent(second))
    assert reader.tracker.state == {"items": [{"name": "b"}]}


# ---------------------------------------------------------------------------
# Inverse property
# ---------------------------------------------------------------------------


@settings(max_examples=75, deadline=None)
@given(updates=st.lists(chat_updates, max_size=12))
def test_rebuilt_updates_match_the_originals(updates):
    async def round_trip():
        return await rebuild(await translate(updates))

    assert content_only(asyncio.run(round_trip())) == updates
