"""Wire events of the AG-UI protocol.

Each event is a frozen dataclass whose class-level ``type`` is the wire
discriminator. The registry at the bottom maps wire tags back to classes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar

from .types import Interrupt, Message, RunAgentInput


class EventType(str, enum.Enum):
    RUN_STARTED = "RUN_STARTED"
    RUN_FINISHED = "RUN_FINISHED"
    RUN_ERROR = "RUN_ERROR"
    STEP_STARTED = "STEP_STARTED"
    STEP_FINISHED = "STEP_FINISHED"

    TEXT_MESSAGE_START = "TEXT_MESSAGE_START"
    TEXT_MESSAGE_CONTENT = "TEXT_MESSAGE_CONTENT"
    TEXT_MESSAGE_END = "TEXT_MESSAGE_END"
    TEXT_MESSAGE_CHUNK = "TEXT_MESSAGE_CHUNK"

    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_CALL_ARGS = "TOOL_CALL_ARGS"
    TOOL_CALL_END = "TOOL_CALL_END"
    TOOL_CALL_RESULT = "TOOL_CALL_RESULT"
    TOOL_CALL_CHUNK = "TOOL_CALL_CHUNK"

    REASONING_START = "REASONING_START"
    REASONING_MESSAGE_START = "REASONING_MESSAGE_START"
    REASONING_MESSAGE_CONTENT = "REASONING_MESSAGE_CONTENT"
    REASONING_MESSAGE_END = "REASONING_MESSAGE_END"
    REASONING_END = "REASONING_END"
    REASONING_MESSAGE_CHUNK = "REASONING_MESSAGE_CHUNK"

    THINKING_START = "THINKING_START"
    THINKING_END = "THINKING_END"
    THINKING_TEXT_MESSAGE_START = "THINKING_TEXT_MESSAGE_START"
    THINKING_TEXT_MESSAGE_CONTENT = "THINKING_TEXT_MESSAGE_CONTENT"
    THINKING_TEXT_MESSAGE_END = "THINKING_TEXT_MESSAGE_END"

    STATE_SNAPSHOT = "STATE_SNAPSHOT"
    STATE_DELTA = "STATE_DELTA"
    MESSAGES_SNAPSHOT = "MESSAGES_SNAPSHOT"

    ACTIVITY_SNAPSHOT = "ACTIVITY_SNAPSHOT"
    ACTIVITY_DELTA = "ACTIVITY_DELTA"

    RAW = "RAW"
    CUSTOM = "CUSTOM"


class Outcome:
    SUCCESS = "success"
    INTERRUPT = "interrupt"


@dataclass(frozen=True)
class BaseEvent:
    type: ClassVar[EventType]

    timestamp: int | None = field(default=None, kw_only=True)
    raw_event: Any = field(default=None, kw_only=True)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunStartedEvent(BaseEvent):
    thread_id: str
    run_id: str
    parent_run_id: str | None = None
    input: RunAgentInput | None = None

    type: ClassVar[EventType] = EventType.RUN_STARTED


@dataclass(frozen=True)
class RunFinishedEvent(BaseEvent):
    thread_id: str
    run_id: str
    result: Any = None
    outcome: str | None = None
    interrupt: Interrupt | None = None

    type: ClassVar[EventType] = EventType.RUN_FINISHED

    def __post_init__(self) -> None:
        outcome = self.outcome.lower() if isinstance(self.outcome, str) else self.outcome
        if outcome not in (None, Outcome.SUCCESS, Outcome.INTERRUPT):
            raise ValueError(f"unknown run outcome {self.outcome!r}")
        if outcome == Outcome.INTERRUPT and self.interrupt is None:
            raise ValueError("an interrupt outcome requires an interrupt")

    @property
    def is_interrupt(self) -> bool:
        if self.outcome is None:
            return self.interrupt is not None
        return self.outcome.lower() == Outcome.INTERRUPT


@dataclass(frozen=True)
class RunErrorEvent(BaseEvent):
    message: str
    code: str | None = None

    type: ClassVar[EventType] = EventType.RUN_ERROR


@dataclass(frozen=True)
class StepStartedEvent(BaseEvent):
    step_name: str

    type: ClassVar[EventType] = EventType.STEP_STARTED


@dataclass(frozen=True)
class StepFinishedEvent(BaseEvent):
    step_name: str

    type: ClassVar[EventType] = EventType.STEP_FINISHED


# ---------------------------------------------------------------------------
# Text messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextMessageStartEvent(BaseEvent):
    message_id: str
    role: str = "assistant"

    type: ClassVar[EventType] = EventType.TEXT_MESSAGE_START


@dataclass(frozen=True)
class TextMessageContentEvent(BaseEvent):
    message_id: str
    delta: str

    type: ClassVar[EventType] = EventType.TEXT_MESSAGE_CONTENT

    def __post_init__(self) -> None:
        if not self.delta:
            raise ValueError("text message content delta must not be empty")


@dataclass(frozen=True)
class TextMessageEndEvent(BaseEvent):
    message_id: str

    type: ClassVar[EventType] = EventType.TEXT_MESSAGE_END


@dataclass(frozen=True)
class TextMessageChunkEvent(BaseEvent):
    message_id: str | None = None
    role: str | None = None
    delta: str | None = None

    type: ClassVar[EventType] = EventType.TEXT_MESSAGE_CHUNK


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCallStartEvent(BaseEvent):
    tool_call_id: str
    tool_call_name: str
    parent_message_id: str | None = None

    type: ClassVar[EventType] = EventType.TOOL_CALL_START


@dataclass(frozen=True)
class ToolCallArgsEvent(BaseEvent):
    tool_call_id: str
    delta: str  # JSON fragment

    type: ClassVar[EventType] = EventType.TOOL_CALL_ARGS


@dataclass(frozen=True)
class ToolCallEndEvent(BaseEvent):
    tool_call_id: str

    type: ClassVar[EventType] = EventType.TOOL_CALL_END


@dataclass(frozen=True)
class ToolCallResultEvent(BaseEvent):
    message_id: str
    tool_call_id: str
    content: str
    role: str | None = None

    type: ClassVar[EventType] = EventType.TOOL_CALL_RESULT


@dataclass(frozen=True)
class ToolCallChunkEvent(BaseEvent):
    tool_call_id: str | None = None
    tool_call_name: str | None = None
    parent_message_id: str | None = None
    delta: str | None = None

    type: ClassVar[EventType] = EventType.TOOL_CALL_CHUNK


# ---------------------------------------------------------------------------
# Reasoning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReasoningStartEvent(BaseEvent):
    message_id: str
    encrypted_content: str | None = None

    type: ClassVar[EventType] = EventType.REASONING_START


@dataclass(frozen=True)
class ReasoningMessageStartEvent(BaseEvent):
    message_id: str
    role: str = "assistant"

    type: ClassVar[EventType] = EventType.REASONING_MESSAGE_START


@dataclass(frozen=True)
class ReasoningMessageContentEvent(BaseEvent):
    message_id: str
    delta: str

    type: ClassVar[EventType] = EventType.REASONING_MESSAGE_CONTENT


@dataclass(frozen=True)
class ReasoningMessageEndEvent(BaseEvent):
    message_id: str

    type: ClassVar[EventType] = EventType.REASONING_MESSAGE_END


@dataclass(frozen=True)
class ReasoningEndEvent(BaseEvent):
    message_id: str

    type: ClassVar[EventType] = EventType.REASONING_END


@dataclass(frozen=True)
class ReasoningMessageChunkEvent(BaseEvent):
    message_id: str | None = None
    delta: str | None = None

    type: ClassVar[EventType] = EventType.REASONING_MESSAGE_CHUNK


# Older peers still send the THINKING_* family; readers treat it as reasoning.


@dataclass(frozen=True)
class ThinkingStartEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.THINKING_START


@dataclass(frozen=True)
class ThinkingEndEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.THINKING_END


@dataclass(frozen=True)
class ThinkingTextMessageStartEvent(BaseEvent):
    message_id: str

    type: ClassVar[EventType] = EventType.THINKING_TEXT_MESSAGE_START


@dataclass(frozen=True)
class ThinkingTextMessageContentEvent(BaseEvent):
    message_id: str
    delta: str

    type: ClassVar[EventType] = EventType.THINKING_TEXT_MESSAGE_CONTENT


@dataclass(frozen=True)
class ThinkingTextMessageEndEvent(BaseEvent):
    message_id: str

    type: ClassVar[EventType] = EventType.THINKING_TEXT_MESSAGE_END


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StateSnapshotEvent(BaseEvent):
    snapshot: Any

    type: ClassVar[EventType] = EventType.STATE_SNAPSHOT


@dataclass(frozen=True)
class StateDeltaEvent(BaseEvent):
    delta: list[dict[str, Any]]  # RFC 6902 operations

    type: ClassVar[EventType] = EventType.STATE_DELTA


@dataclass(frozen=True)
class MessagesSnapshotEvent(BaseEvent):
    messages: list[Message]

    type: ClassVar[EventType] = EventType.MESSAGES_SNAPSHOT


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActivitySnapshotEvent(BaseEvent):
    activity_id: str
    activity_type: str
    state: Any
    metadata: Any = None

    type: ClassVar[EventType] = EventType.ACTIVITY_SNAPSHOT


@dataclass(frozen=True)
class ActivityDeltaEvent(BaseEvent):
    activity_id: str
    delta: list[dict[str, Any]]

    type: ClassVar[EventType] = EventType.ACTIVITY_DELTA


# ---------------------------------------------------------------------------
# Escape hatches
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawEvent(BaseEvent):
    event: Any
    source: str | None = None

    type: ClassVar[EventType] = EventType.RAW


@dataclass(frozen=True)
class CustomEvent(BaseEvent):
    name: str
    value: Any = None

    type: ClassVar[EventType] = EventType.CUSTOM


EVENT_TYPES: dict[EventType, type[BaseEvent]] = {
    cls.type: cls
    for cls in (
        RunStartedEvent,
        RunFinishedEvent,
        RunErrorEvent,
        StepStartedEvent,
        StepFinishedEvent,
        TextMessageStartEvent,
        TextMessageContentEvent,
        TextMessageEndEvent,
        TextMessageChunkEvent,
        ToolCallStartEvent,
        ToolCallArgsEvent,
        ToolCallEndEvent,
        ToolCallResultEvent,
        ToolCallChunkEvent,
        ReasoningStartEvent,
        ReasoningMessageStartEvent,
        ReasoningMessageContentEvent,
        ReasoningMessageEndEvent,
        ReasoningEndEvent,
        ReasoningMessageChunkEvent,
        ThinkingStartEvent,
        ThinkingEndEvent,
        ThinkingTextMessageStartEvent,
        ThinkingTextMessageContentEvent,
        ThinkingTextMessageEndEvent,
        StateSnapshotEvent,
        StateDeltaEvent,
        MessagesSnapshotEvent,
        ActivitySnapshotEvent,
        ActivityDeltaEvent,
        RawEvent,
        CustomEvent,
    )
}

TERMINAL_EVENTS = frozenset({EventType.RUN_FINISHED, EventType.RUN_ERROR})
