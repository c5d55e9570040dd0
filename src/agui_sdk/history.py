"""Folds the chat updates of a run into session history."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from .builders import format_result_content
from .errors import StateSyncError
from .events import BaseEvent, RunErrorEvent, RunFinishedEvent
from .interrupts import to_interrupt
from .session import Session
from .state import StateTracker
from .types import AssistantMessage, FunctionSpec, Interrupt, Message, ToolCall, ToolMessage
from .updates import (
    ApprovalRequest,
    ChatUpdate,
    FunctionCall,
    FunctionResult,
    InputRequest,
    Passthrough,
    RunFailed,
    StatePatch,
    StateSnapshot,
    TextDelta,
)

_log = logging.getLogger(__name__)


@dataclass
class _AssistantDraft:
    id: str | None
    text: list[str] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)

    def build(self) -> AssistantMessage:
        return AssistantMessage(
            content="".join(self.text) or None,
            id=self.id,
            tool_calls=list(self.tool_calls),
        )


class HistoryRecorder:
    """Records what a producer says during one run.

    Nothing reaches the session until :meth:`apply_to` is called, which the
    runner only does once the run's event stream has been fully drained.
    """

    def __init__(self, run_id: str, *, state: Any = None) -> None:
        self.run_id = run_id
        self.failed = False
        self.interrupts: list[Interrupt] = []
        self.tracker = StateTracker(state)
        self._entries: list[_AssistantDraft | ToolMessage] = []
        self._drafts: dict[str, _AssistantDraft] = {}

    async def observe(self, updates: AsyncIterable[ChatUpdate]) -> AsyncIterator[ChatUpdate]:
        """Forward a producer's updates, noting whether it fails.

        Recording is left to :meth:`record` so that it sees the updates with
        the message ids the outbound writer assigns.
        """
        try:
            async for update in updates:
                yield update
        except Exception:
            self.failed = True
            raise
        finally:
            aclose = getattr(updates, "aclose", None)
            if aclose is not None:
                await aclose()

    def record(self, update: ChatUpdate) -> None:
        if isinstance(update, TextDelta):
            if update.role == "assistant":
                self._draft(update.message_id).text.append(update.text)
        elif isinstance(update, FunctionCall):
            self._draft(update.message_id).tool_calls.append(
                ToolCall(
                    id=update.call_id,
                    function=FunctionSpec(
                        name=update.name,
                        arguments=json.dumps(update.arguments or {}),
                    ),
                )
            )
        elif isinstance(update, FunctionResult):
            self._entries.append(
                ToolMessage(
                    content=format_result_content(update.result),
                    tool_call_id=update.call_id,
                    id=update.message_id,
                )
            )
        elif isinstance(update, (ApprovalRequest, InputRequest)):
            self.interrupts.append(to_interrupt(update))
        elif isinstance(update, StateSnapshot):
            self.tracker.replace(update.state)
        elif isinstance(update, StatePatch):
            self._patch(update.operations)
        elif isinstance(update, RunFailed):
            self.failed = True
        elif isinstance(update, Passthrough):
            self._passthrough(update.event)

    def messages(self) -> list[Message]:
        return [e.build() if isinstance(e, _AssistantDraft) else e for e in self._entries]

    def apply_to(self, session: Session) -> None:
        session.messages.extend(self.messages())
        for interrupt in self.interrupts:
            session.add_interrupt(interrupt, self.run_id)
        session.state = self.tracker.state if self.tracker.known else None

    def _draft(self, message_id: str | None) -> _AssistantDraft:
        if message_id is None:
            last = self._entries[-1] if self._entries else None
            if isinstance(last, _AssistantDraft):
                return last
        elif message_id in self._drafts:
            return self._drafts[message_id]
        draft = _AssistantDraft(id=message_id)
        self._entries.append(draft)
        if message_id is not None:
            self._drafts[message_id] = draft
        return draft

    def _passthrough(self, event: BaseEvent) -> None:
        if isinstance(event, RunErrorEvent):
            self.failed = True
        elif isinstance(event, RunFinishedEvent) and event.is_interrupt and event.interrupt is not None:
            self.interrupts.append(event.interrupt)

    def _patch(self, operations: list[dict[str, Any]]) -> None:
        try:
            self.tracker.apply(operations)
        except StateSyncError as exc:
            _log.warning("run %s: dropping tracked state, %s", self.run_id, exc)
