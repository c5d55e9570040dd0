"""Accumulators for the start/content/end framed content families.

Each builder is a small state machine that is either idle or open on one id.
Calls that do not fit the current state raise ProtocolViolationError.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import DecodeError, ProtocolViolationError
from .events import ToolCallResultEvent
from .updates import FunctionCall, FunctionResult, ReasoningDelta, TextDelta


class TextMessageBuilder:
    def __init__(self) -> None:
        self.message_id: str | None = None
        self.role = "assistant"

    @property
    def is_open(self) -> bool:
        return self.message_id is not None

    def start(self, message_id: str, role: str = "assistant") -> None:
        if self.message_id is not None:
            raise ProtocolViolationError(
                f"text message {message_id!r} started while {self.message_id!r} is open"
            )
        self.message_id = message_id
        self.role = role

    def content(self, message_id: str, delta: str) -> TextDelta:
        self._expect(message_id, "content")
        return TextDelta(text=delta, message_id=message_id, role=self.role)

    def end(self, message_id: str) -> None:
        self._expect(message_id, "end")
        self.message_id = None
        self.role = "assistant"

    def _expect(self, message_id: str, what: str) -> None:
        if self.message_id is None:
            raise ProtocolViolationError(
                f"text message {what} for {message_id!r} without a start"
            )
        if message_id != self.message_id:
            raise ProtocolViolationError(
                f"text message {what} for {message_id!r} while {self.message_id!r} is open"
            )


class ToolCallBuilder:
    """Collects streamed argument fragments into a complete FunctionCall."""

    def __init__(self) -> None:
        self.call_id: str | None = None
        self.name: str | None = None
        self.parent_message_id: str | None = None
        self._buffer: list[str] = []

    @property
    def is_open(self) -> bool:
        return self.call_id is not None

    def start(self, call_id: str, name: str, parent_message_id: str | None = None) -> None:
        if self.call_id is not None:
            raise ProtocolViolationError(
                f"tool call {call_id!r} started while {self.call_id!r} is open"
            )
        self.call_id = call_id
        self.name = name
        self.parent_message_id = parent_message_id

    def append(self, call_id: str, delta: str) -> None:
        self._expect(call_id, "args")
        self._buffer.append(delta)

    def finish(self, call_id: str) -> FunctionCall:
        self._expect(call_id, "end")
        call = FunctionCall(
            call_id=call_id,
            name=self.name or "",
            arguments=_parse_arguments(call_id, "".join(self._buffer)),
            message_id=self.parent_message_id,
        )
        self.call_id = None
        self.name = None
        self.parent_message_id = None
        self._buffer.clear()
        return call

    @staticmethod
    def result(event: ToolCallResultEvent) -> FunctionResult:
        return FunctionResult(
            call_id=event.tool_call_id,
            result=parse_result_content(event.content),
            message_id=event.message_id,
        )

    def _expect(self, call_id: str, what: str) -> None:
        if self.call_id is None:
            raise ProtocolViolationError(f"tool call {what} for {call_id!r} without a start")
        if call_id != self.call_id:
            raise ProtocolViolationError(
                f"tool call {what} for {call_id!r} while {self.call_id!r} is open"
            )


def _parse_arguments(call_id: str, raw: str) -> dict[str, Any] | None:
    if not raw.strip():
        return None
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"tool call {call_id!r}: arguments are not valid JSON ({exc})") from exc
    if not isinstance(arguments, dict):
        raise DecodeError(f"tool call {call_id!r}: arguments must be a JSON object")
    return arguments


def parse_result_content(content: str) -> Any:
    """JSON results come back structured, anything else stays a string."""
    if not content:
        return None
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        return content


class ReasoningBuilder:
    """Reasoning session with one inner message open at a time.

    Starting a message outside a session opens an implicit session that
    ends together with the message.
    """

    def __init__(self) -> None:
        self.session_id: str | None = None
        self.message_id: str | None = None
        self._in_session = False
        self._implicit = False

    @property
    def in_session(self) -> bool:
        return self._in_session

    @property
    def is_open(self) -> bool:
        return self.message_id is not None

    def begin(self, session_id: str | None) -> None:
        if self._in_session:
            raise ProtocolViolationError(
                f"reasoning {session_id!r} started while {self.session_id!r} is open"
            )
        self.session_id = session_id
        self._in_session = True
        self._implicit = False

    def start(self, message_id: str) -> None:
        if self.message_id is not None:
            raise ProtocolViolationError(
                f"reasoning message {message_id!r} started while {self.message_id!r} is open"
            )
        if not self._in_session:
            self.begin(message_id)
            self._implicit = True
        self.message_id = message_id

    def content(self, message_id: str, delta: str) -> ReasoningDelta:
        self._expect(message_id, "content")
        return ReasoningDelta(text=delta, message_id=message_id)

    def end(self, message_id: str) -> None:
        self._expect(message_id, "end")
        self.message_id = None
        if self._implicit:
            self._close_session()

    def finish(self, session_id: str | None) -> None:
        if not self._in_session:
            raise ProtocolViolationError(f"reasoning end for {session_id!r} without a start")
        if self.message_id is not None:
            raise ProtocolViolationError(
                f"reasoning ended while message {self.message_id!r} is open"
            )
        if session_id is not None and self.session_id is not None and session_id != self.session_id:
            raise ProtocolViolationError(
                f"reasoning end for {session_id!r} while {self.session_id!r} is open"
            )
        self._close_session()

    def _close_session(self) -> None:
        self.session_id = None
        self._in_session = False
        self._implicit = False

    def _expect(self, message_id: str, what: str) -> None:
        if self.message_id is None:
            raise ProtocolViolationError(
                f"reasoning {what} for {message_id!r} without a start"
            )
        if message_id != self.message_id:
            raise ProtocolViolationError(
                f"reasoning {what} for {message_id!r} while {self.message_id!r} is open"
            )


def format_result_content(result: Any) -> str:
    """Inverse of :func:`parse_result_content` for everything but JSON-looking strings."""
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    return json.dumps(result, separators=(",", ":"), ensure_ascii=False)
