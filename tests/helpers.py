"""Shared helpers for the translator tests."""

from __future__ import annotations

import itertools

from hypothesis import strategies as st

from agui_sdk.outbound import to_event_stream
from agui_sdk.updates import (
    FunctionCall,
    FunctionResult,
    ReasoningDelta,
    RunContext,
    StateSnapshot,
    TextDelta,
)

CONTEXT = RunContext(thread_id="t1", run_id="r1")


def counter_ids():
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}_{next(counter)}"


async def aiter_of(items):
    for item in items:
        yield item


async def translate(updates, context: RunContext = CONTEXT) -> list:
    source = updates if hasattr(updates, "__aiter__") else aiter_of(updates)
    return [e async for e in to_event_stream(source, context, new_id=counter_ids())]


json_objects = st.dictionaries(st.text(max_size=3), st.integers(), max_size=2)

chat_updates = st.one_of(
    st.builds(
        TextDelta,
        text=st.text(min_size=1, max_size=5),
        message_id=st.sampled_from(["m1", "m2", "m3"]),
    ),
    st.builds(
        ReasoningDelta,
        text=st.text(min_size=1, max_size=5),
        message_id=st.sampled_from(["x1", "x2"]),
    ),
    st.builds(
        FunctionCall,
        call_id=st.sampled_from(["c1", "c2"]),
        name=st.just("lookup"),
        arguments=st.none() | json_objects,
    ),
    st.builds(
        FunctionResult,
        call_id=st.sampled_from(["c1", "c2"]),
        result=json_objects,
        message_id=st.just("res"),
    ),
    st.builds(StateSnapshot, state=json_objects),
)
