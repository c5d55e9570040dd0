"""Server side translation: chat updates -> ordered AG-UI wire events."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import replace
from typing import Any

from .builders import (
    ReasoningBuilder,
    TextMessageBuilder,
    ToolCallBuilder,
    format_result_content,
)
from .events import (
    TERMINAL_EVENTS,
    BaseEvent,
    Outcome,
    ReasoningEndEvent,
    ReasoningMessageContentEvent,
    ReasoningMessageEndEvent,
    ReasoningMessageStartEvent,
    ReasoningStartEvent,
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    StateDeltaEvent,
    StateSnapshotEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from .ids import IdFactory, new_id
from .interrupts import to_interrupt
from .updates import (
    ApprovalRequest,
    ChatUpdate,
    FunctionCall,
    FunctionResult,
    InputRequest,
    Passthrough,
    PauseRequest,
    ReasoningDelta,
    RunContext,
    RunFailed,
    RunFinished,
    RunStarted,
    StatePatch,
    StateSnapshot,
    TextDelta,
)

_log = logging.getLogger(__name__)


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class EventStreamWriter:
    """Turns chat updates into wire events for a single run.

    ``write`` returns the events for one update; ``complete`` and ``fail``
    close the run. Once ``finished`` is set the run has emitted its
    terminal event and nothing more belongs to it.
    """

    def __init__(self, context: RunContext, *, new_id: IdFactory = new_id) -> None:
        self.context = context
        self._new_id = new_id
        self._text = TextMessageBuilder()
        self._tool = ToolCallBuilder()
        self._reasoning = ReasoningBuilder()
        self.started = False
        self.finished = False

    # --- Units ---

    def assign_ids(self, update: ChatUpdate) -> ChatUpdate:
        """Fill in the message id ``write`` would pick for an update that has none."""
        if isinstance(update, TextDelta) and not update.message_id:
            return replace(update, message_id=self._text.message_id or self._new_id("msg"))
        if isinstance(update, ReasoningDelta) and not update.message_id:
            return replace(update, message_id=self._reasoning.message_id or self._new_id("msg"))
        if isinstance(update, FunctionResult) and not update.message_id:
            return replace(update, message_id=self._new_id("result"))
        return update

    def write(self, update: ChatUpdate) -> list[BaseEvent]:
        if self.finished:
            _log.debug("dropping %s after the run finished", type(update).__name__)
            return []
        update = self.assign_ids(update)
        if isinstance(update, Passthrough):
            return self._passthrough(update.event)
        if isinstance(update, RunStarted):
            return self._start(update.parent_run_id)

        events = self._start()
        if isinstance(update, TextDelta):
            events += self._text_delta(update)
        elif isinstance(update, FunctionCall):
            events += self._function_call(update)
        elif isinstance(update, FunctionResult):
            events.append(
                ToolCallResultEvent(
                    message_id=update.message_id,
                    tool_call_id=update.call_id,
                    content=format_result_content(update.result),
                    role="tool",
                )
            )
        elif isinstance(update, ReasoningDelta):
            events += self._reasoning_delta(update)
        elif isinstance(update, StateSnapshot):
            events.append(StateSnapshotEvent(snapshot=update.state))
        elif isinstance(update, StatePatch):
            events.append(StateDeltaEvent(delta=list(update.operations)))
        elif isinstance(update, (ApprovalRequest, InputRequest)):
            events += self._pause(update)
        elif isinstance(update, RunFinished):
            events += self._finish(update.result)
        elif isinstance(update, RunFailed):
            events += self._error(update.message, update.code)
        else:
            raise TypeError(f"unsupported chat update {type(update).__name__}")
        return events

    def complete(self) -> list[BaseEvent]:
        if self.finished:
            return []
        return self._start() + self._finish(None)

    def fail(self, exc: Exception) -> list[BaseEvent]:
        if self.finished:
            return []
        code = getattr(exc, "code", None)
        if not isinstance(code, str):
            code = type(exc).__name__
        return self._start() + self._error(str(exc) or type(exc).__name__, code)

    # --- Lifecycle ---

    def _start(self, parent_run_id: str | None = None) -> list[BaseEvent]:
        if self.started:
            return []
        self.started = True
        return [
            RunStartedEvent(
                thread_id=self.context.thread_id,
                run_id=self.context.run_id,
                parent_run_id=parent_run_id or self.context.parent_run_id,
            )
        ]

    def _finish(self, result: Any) -> list[BaseEvent]:
        events = self._close_framing()
        events.append(
            RunFinishedEvent(
                thread_id=self.context.thread_id,
                run_id=self.context.run_id,
                result=result,
            )
        )
        self.finished = True
        return events

    def _error(self, message: str, code: str | None) -> list[BaseEvent]:
        events = self._close_framing()
        events.append(RunErrorEvent(message=message, code=code))
        self.finished = True
        return events

    def _pause(self, request: PauseRequest) -> list[BaseEvent]:
        events = self._close_framing()
        events.append(
            RunFinishedEvent(
                thread_id=self.context.thread_id,
                run_id=self.context.run_id,
                outcome=Outcome.INTERRUPT,
                interrupt=to_interrupt(request),
            )
        )
        self.finished = True
        return events

    def _passthrough(self, event: BaseEvent) -> list[BaseEvent]:
        if isinstance(event, RunStartedEvent):
            if self.started:
                _log.warning("dropping duplicate RUN_STARTED for run %s", event.run_id)
                return []
            self.started = True
            return [event]
        events = self._start()
        if event.type in TERMINAL_EVENTS:
            events += self._close_framing()
            self.finished = True
        events.append(event)
        return events

    # --- Framing ---

    def _text_delta(self, update: TextDelta) -> list[BaseEvent]:
        events: list[BaseEvent] = []
        message_id = update.message_id
        if self._text.message_id != message_id:
            events += self._close_reasoning()
            events += self._close_text()
            self._text.start(message_id, update.role)
            events.append(TextMessageStartEvent(message_id=message_id, role=update.role))
        if update.text:
            self._text.content(message_id, update.text)
            events.append(TextMessageContentEvent(message_id=message_id, delta=update.text))
        return events

    def _function_call(self, call: FunctionCall) -> list[BaseEvent]:
        # Producers hand over complete calls, so arguments go out as one fragment.
        self._tool.start(call.call_id, call.name, call.message_id)
        events: list[BaseEvent] = [
            ToolCallStartEvent(
                tool_call_id=call.call_id,
                tool_call_name=call.name,
                parent_message_id=call.message_id,
            )
        ]
        if call.arguments is not None:
            delta = _compact(call.arguments)
            self._tool.append(call.call_id, delta)
            events.append(ToolCallArgsEvent(tool_call_id=call.call_id, delta=delta))
        self._tool.finish(call.call_id)
        events.append(ToolCallEndEvent(tool_call_id=call.call_id))
        return events

    def _reasoning_delta(self, update: ReasoningDelta) -> list[BaseEvent]:
        events: list[BaseEvent] = []
        if not self._reasoning.in_session:
            session_id = self._new_id("reasoning")
            self._reasoning.begin(session_id)
            events.append(ReasoningStartEvent(message_id=session_id))
        message_id = update.message_id
        current = self._reasoning.message_id
        if current != message_id:
            if current is not None:
                self._reasoning.end(current)
                events.append(ReasoningMessageEndEvent(message_id=current))
            self._reasoning.start(message_id)
            events.append(ReasoningMessageStartEvent(message_id=message_id))
        if update.text:
            self._reasoning.content(message_id, update.text)
            events.append(ReasoningMessageContentEvent(message_id=message_id, delta=update.text))
        return events

    def _close_text(self) -> list[BaseEvent]:
        message_id = self._text.message_id
        if message_id is None:
            return []
        self._text.end(message_id)
        return [TextMessageEndEvent(message_id=message_id)]

    def _close_reasoning(self) -> list[BaseEvent]:
        events: list[BaseEvent] = []
        message_id = self._reasoning.message_id
        if message_id is not None:
            self._reasoning.end(message_id)
            events.append(ReasoningMessageEndEvent(message_id=message_id))
        if self._reasoning.in_session:
            session_id = self._reasoning.session_id
            self._reasoning.finish(session_id)
            events.append(ReasoningEndEvent(message_id=session_id or ""))
        return events

    def _close_framing(self) -> list[BaseEvent]:
        return self._close_reasoning() + self._close_text()


async def to_event_stream(
    updates: AsyncIterable[ChatUpdate],
    context: RunContext,
    *,
    new_id: IdFactory = new_id,
    on_update: Callable[[ChatUpdate], None] | None = None,
) -> AsyncIterator[BaseEvent]:
    """Translate a producer's chat updates into the wire events of one run.

    A producer exception ends the run with RUN_ERROR. Cancellation is not
    caught. The producer is closed once the run has a terminal event.

    ``on_update`` sees each update with the message ids its events carry.
    """
    writer = EventStreamWriter(context, new_id=new_id)
    iterator = aiter(updates)
    try:
        while not writer.finished:
            try:
                update = await anext(iterator)
            except StopAsyncIteration:
                break
            except Exception as exc:
                _log.warning("producer failed in run %s: %s", context.run_id, exc, exc_info=True)
                for event in writer.fail(exc):
                    yield event
                return
            update = writer.assign_ids(update)
            if on_update is not None:
                on_update(update)
            for event in writer.write(update):
                yield event
        for event in writer.complete():
            yield event
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
