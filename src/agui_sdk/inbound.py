"""Client side translation: AG-UI wire events -> chat updates.

The reader validates the ordering rules of a run while it rebuilds the
updates, and raises ProtocolViolationError as soon as the peer breaks them.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

from .builders import ReasoningBuilder, TextMessageBuilder, ToolCallBuilder
from .errors import ProtocolViolationError
from .events import (
    BaseEvent,
    EventType,
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
    TextMessageChunkEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ThinkingTextMessageContentEvent,
    ThinkingTextMessageEndEvent,
    ThinkingTextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallChunkEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from .interrupts import from_interrupt
from .state import StateTracker
from .updates import (
    ChatUpdate,
    Passthrough,
    RunFailed,
    RunFinished,
    RunStarted,
    StatePatch,
    StateSnapshot,
)

_log = logging.getLogger(__name__)

Handler = Callable[[Any], list[ChatUpdate]]


class UpdateStreamReader:
    """Rebuilds chat updates from the wire events of a single run."""

    def __init__(self, *, state: Any = None) -> None:
        self.thread_id: str | None = None
        self.run_id: str | None = None
        self.started = False
        self.finished = False
        self.tracker = StateTracker(state)
        self._text = TextMessageBuilder()
        self._tool = ToolCallBuilder()
        self._reasoning = ReasoningBuilder()
        # brackets opened by *_CHUNK events close on the next event of another type
        self._chunked: set[EventType] = set()
        self._handlers: dict[EventType, Handler] = {
            EventType.RUN_STARTED: self._run_started,
            EventType.RUN_FINISHED: self._run_finished,
            EventType.RUN_ERROR: self._run_error,
            EventType.STEP_STARTED: self._passthrough,
            EventType.STEP_FINISHED: self._passthrough,
            EventType.TEXT_MESSAGE_START: self._text_start,
            EventType.TEXT_MESSAGE_CONTENT: self._text_content,
            EventType.TEXT_MESSAGE_END: self._text_end,
            EventType.TEXT_MESSAGE_CHUNK: self._text_chunk,
            EventType.TOOL_CALL_START: self._tool_start,
            EventType.TOOL_CALL_ARGS: self._tool_args,
            EventType.TOOL_CALL_END: self._tool_end,
            EventType.TOOL_CALL_RESULT: self._tool_result,
            EventType.TOOL_CALL_CHUNK: self._tool_chunk,
            EventType.REASONING_START: self._reasoning_start,
            EventType.REASONING_MESSAGE_START: self._reasoning_message_start,
            EventType.REASONING_MESSAGE_CONTENT: self._reasoning_content,
            EventType.REASONING_MESSAGE_END: self._reasoning_message_end,
            EventType.REASONING_END: self._reasoning_end,
            EventType.REASONING_MESSAGE_CHUNK: self._reasoning_chunk,
            EventType.THINKING_START: self._thinking_start,
            EventType.THINKING_END: self._thinking_end,
            EventType.THINKING_TEXT_MESSAGE_START: self._reasoning_message_start,
            EventType.THINKING_TEXT_MESSAGE_CONTENT: self._reasoning_content,
            EventType.THINKING_TEXT_MESSAGE_END: self._reasoning_message_end,
            EventType.STATE_SNAPSHOT: self._state_snapshot,
            EventType.STATE_DELTA: self._state_delta,
            EventType.MESSAGES_SNAPSHOT: self._passthrough,
            EventType.ACTIVITY_SNAPSHOT: self._passthrough,
            EventType.ACTIVITY_DELTA: self._passthrough,
            EventType.RAW: self._passthrough,
            EventType.CUSTOM: self._passthrough,
        }

    def read(self, event: BaseEvent) -> list[ChatUpdate]:
        if self.finished:
            raise ProtocolViolationError(f"{event.type.value} after the run finished")
        if not self.started and event.type is not EventType.RUN_STARTED:
            raise ProtocolViolationError(f"{event.type.value} before RUN_STARTED")
        updates = self._close_chunks(event.type)
        updates += self._handlers[event.type](event)
        return updates

    def close(self) -> None:
        if not self.finished:
            raise ProtocolViolationError("event stream ended without RUN_FINISHED or RUN_ERROR")

    # --- Lifecycle ---

    def _run_started(self, event: RunStartedEvent) -> list[ChatUpdate]:
        if self.started:
            raise ProtocolViolationError(f"duplicate RUN_STARTED for run {event.run_id!r}")
        self.started = True
        self.thread_id = event.thread_id
        self.run_id = event.run_id
        return [RunStarted(event.thread_id, event.run_id, event.parent_run_id)]

    def _run_finished(self, event: RunFinishedEvent) -> list[ChatUpdate]:
        if (event.thread_id, event.run_id) != (self.thread_id, self.run_id):
            raise ProtocolViolationError(
                f"RUN_FINISHED for {event.thread_id}/{event.run_id} "
                f"in run {self.thread_id}/{self.run_id}"
            )
        for name, open_id in (
            ("text message", self._text.message_id),
            ("tool call", self._tool.call_id),
            ("reasoning message", self._reasoning.message_id),
        ):
            if open_id is not None:
                raise ProtocolViolationError(f"run finished while {name} {open_id!r} is open")
        if self._reasoning.in_session:
            raise ProtocolViolationError("run finished while reasoning is open")
        self.finished = True
        if event.is_interrupt:
            if event.interrupt is None:
                raise ProtocolViolationError("interrupt outcome without an interrupt")
            return [from_interrupt(event.interrupt)]
        return [RunFinished(event.thread_id, event.run_id, event.result)]

    def _run_error(self, event: RunErrorEvent) -> list[ChatUpdate]:
        self.finished = True
        _log.debug("run %s failed: %s", self.run_id, event.message)
        return [RunFailed(event.message, event.code)]

    # --- Text ---

    def _text_start(self, event: TextMessageStartEvent) -> list[ChatUpdate]:
        self._text.start(event.message_id, event.role)
        return []

    def _text_content(self, event: TextMessageContentEvent) -> list[ChatUpdate]:
        return [self._text.content(event.message_id, event.delta)]

    def _text_end(self, event: TextMessageEndEvent) -> list[ChatUpdate]:
        self._text.end(event.message_id)
        return []

    def _text_chunk(self, event: TextMessageChunkEvent) -> list[ChatUpdate]:
        current = self._text.message_id
        if EventType.TEXT_MESSAGE_CHUNK in self._chunked and event.message_id not in (None, current):
            self._text.end(current)
            self._chunked.discard(EventType.TEXT_MESSAGE_CHUNK)
        if not self._text.is_open:
            if not event.message_id:
                raise ProtocolViolationError("first TEXT_MESSAGE_CHUNK of a message needs a messageId")
            self._text.start(event.message_id, event.role or "assistant")
            self._chunked.add(EventType.TEXT_MESSAGE_CHUNK)
        if not event.delta:
            return []
        return [self._text.content(event.message_id or self._text.message_id, event.delta)]

    # --- Tool calls ---

    def _tool_start(self, event: ToolCallStartEvent) -> list[ChatUpdate]:
        self._tool.start(event.tool_call_id, event.tool_call_name, event.parent_message_id)
        return []

    def _tool_args(self, event: ToolCallArgsEvent) -> list[ChatUpdate]:
        self._tool.append(event.tool_call_id, event.delta)
        return []

    def _tool_end(self, event: ToolCallEndEvent) -> list[ChatUpdate]:
        return [self._tool.finish(event.tool_call_id)]

    def _tool_result(self, event: ToolCallResultEvent) -> list[ChatUpdate]:
        return [ToolCallBuilder.result(event)]

    def _tool_chunk(self, event: ToolCallChunkEvent) -> list[ChatUpdate]:
        updates: list[ChatUpdate] = []
        current = self._tool.call_id
        if EventType.TOOL_CALL_CHUNK in self._chunked and event.tool_call_id not in (None, current):
            updates.append(self._tool.finish(current))
            self._chunked.discard(EventType.TOOL_CALL_CHUNK)
        if not self._tool.is_open:
            if not event.tool_call_id or not event.tool_call_name:
                raise ProtocolViolationError(
                    "first TOOL_CALL_CHUNK of a call needs toolCallId and toolCallName"
                )
            self._tool.start(event.tool_call_id, event.tool_call_name, event.parent_message_id)
            self._chunked.add(EventType.TOOL_CALL_CHUNK)
        if event.delta:
            self._tool.append(event.tool_call_id or self._tool.call_id, event.delta)
        return updates

    # --- Reasoning ---

    def _reasoning_start(self, event: ReasoningStartEvent) -> list[ChatUpdate]:
        self._reasoning.begin(event.message_id)
        return []

    def _thinking_start(self, event: BaseEvent) -> list[ChatUpdate]:
        self._reasoning.begin(None)
        return []

    def _reasoning_message_start(
        self, event: ReasoningMessageStartEvent | ThinkingTextMessageStartEvent
    ) -> list[ChatUpdate]:
        self._reasoning.start(event.message_id)
        return []

    def _reasoning_content(
        self, event: ReasoningMessageContentEvent | ThinkingTextMessageContentEvent
    ) -> list[ChatUpdate]:
        return [self._reasoning.content(event.message_id, event.delta)]

    def _reasoning_message_end(
        self, event: ReasoningMessageEndEvent | ThinkingTextMessageEndEvent
    ) -> list[ChatUpdate]:
        self._reasoning.end(event.message_id)
        return []

    def _reasoning_end(self, event: ReasoningEndEvent) -> list[ChatUpdate]:
        self._reasoning.finish(event.message_id)
        return []

    def _thinking_end(self, event: BaseEvent) -> list[ChatUpdate]:
        self._reasoning.finish(None)
        return []

    def _reasoning_chunk(self, event: ReasoningMessageChunkEvent) -> list[ChatUpdate]:
        current = self._reasoning.message_id
        if (
            EventType.REASONING_MESSAGE_CHUNK in self._chunked
            and event.message_id not in (None, current)
        ):
            self._reasoning.end(current)
            self._chunked.discard(EventType.REASONING_MESSAGE_CHUNK)
        if not self._reasoning.is_open:
            if not event.message_id:
                raise ProtocolViolationError(
                    "first REASONING_MESSAGE_CHUNK of a message needs a messageId"
                )
            self._reasoning.start(event.message_id)
            self._chunked.add(EventType.REASONING_MESSAGE_CHUNK)
        if not event.delta:
            return []
        return [self._reasoning.content(event.message_id or self._reasoning.message_id, event.delta)]

    def _close_chunks(self, event_type: EventType) -> list[ChatUpdate]:
        updates: list[ChatUpdate] = []
        for chunk_type in list(self._chunked):
            if chunk_type is event_type:
                continue
            self._chunked.discard(chunk_type)
            if chunk_type is EventType.TEXT_MESSAGE_CHUNK:
                self._text.end(self._text.message_id)
            elif chunk_type is EventType.TOOL_CALL_CHUNK:
                updates.append(self._tool.finish(self._tool.call_id))
            else:
                self._reasoning.end(self._reasoning.message_id)
        return updates

    # --- State and passthrough ---

    def _state_snapshot(self, event: StateSnapshotEvent) -> list[ChatUpdate]:
        self.tracker.replace(event.snapshot)
        return [StateSnapshot(event.snapshot)]

    def _state_delta(self, event: StateDeltaEvent) -> list[ChatUpdate]:
        self.tracker.apply(event.delta)
        return [StatePatch(list(event.delta))]

    def _passthrough(self, event: BaseEvent) -> list[ChatUpdate]:
        return [Passthrough(event)]


async def to_chat_updates(
    events: AsyncIterable[BaseEvent],
    *,
    state: Any = None,
) -> AsyncIterator[ChatUpdate]:
    """Rebuild chat updates from the events of one run.

    ``state`` is the state the run was started with; deltas that arrive
    before any snapshot are applied to it.
    """
    reader = UpdateStreamReader(state=state)
    async for event in events:
        for update in reader.read(event):
            yield update
    reader.close()
