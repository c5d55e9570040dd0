"""Core data types for the AG-UI protocol: messages, tools and run input."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal, Union


Role = Literal["developer", "system", "user", "assistant", "tool"]


# ---------------------------------------------------------------------------
# User input segments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextInput:
    text: str

    type: ClassVar[str] = "text"


@dataclass(frozen=True)
class BinaryInput:
    """Non-text user content referenced inline, by url or by an opaque id."""

    mime_type: str
    data: str | None = None
    url: str | None = None
    id: str | None = None
    filename: str | None = None

    type: ClassVar[str] = "binary"

    def __post_init__(self) -> None:
        if self.data is None and self.url is None and self.id is None:
            raise ValueError("binary input needs at least one of data, url or id")


InputContent = Union[TextInput, BinaryInput]


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    arguments: str  # JSON-encoded argument object


@dataclass(frozen=True)
class ToolCall:
    id: str
    function: FunctionSpec
    type: Literal["function"] = "function"

    def __post_init__(self) -> None:
        if self.type != "function":
            raise ValueError(f"unsupported tool call type {self.type!r}")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeveloperMessage:
    content: str
    id: str | None = None
    name: str | None = None

    role: ClassVar[str] = "developer"


@dataclass(frozen=True)
class SystemMessage:
    content: str
    id: str | None = None
    name: str | None = None

    role: ClassVar[str] = "system"


@dataclass(frozen=True)
class UserMessage:
    """A user turn.

    ``content`` is always a list of segments in memory. On the wire a single
    text segment is written as a plain string.
    """

    content: list[InputContent]
    id: str | None = None
    name: str | None = None

    role: ClassVar[str] = "user"

    @classmethod
    def text(cls, text: str, id: str | None = None) -> UserMessage:
        return cls(content=[TextInput(text)], id=id)


@dataclass(frozen=True)
class AssistantMessage:
    content: str | None = None
    id: str | None = None
    name: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    role: ClassVar[str] = "assistant"


@dataclass(frozen=True)
class ToolMessage:
    content: str
    tool_call_id: str
    id: str | None = None
    error: str | None = None

    role: ClassVar[str] = "tool"


Message = Union[DeveloperMessage, SystemMessage, UserMessage, AssistantMessage, ToolMessage]

MESSAGE_TYPES: dict[str, type] = {
    cls.role: cls
    for cls in (DeveloperMessage, SystemMessage, UserMessage, AssistantMessage, ToolMessage)
}


# ---------------------------------------------------------------------------
# Interrupt / resume envelopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Interrupt:
    """Pause marker carried by a ``RUN_FINISHED`` with an interrupt outcome."""

    id: str
    payload: Any = None


@dataclass(frozen=True)
class Resume:
    """Answer to a previously emitted interrupt, sent with a new run."""

    interrupt_id: str
    payload: Any = None


# ---------------------------------------------------------------------------
# Run input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Tool:
    name: str
    description: str | None = None
    parameters: Any = None  # JSON schema


@dataclass(frozen=True)
class ContextItem:
    description: str
    value: str


@dataclass(frozen=True)
class RunAgentInput:
    """Request body of one run."""

    thread_id: str
    run_id: str
    messages: list[Message] = field(default_factory=list)
    tools: list[Tool] = field(default_factory=list)
    context: list[ContextItem] = field(default_factory=list)
    state: Any = None
    parent_run_id: str | None = None
    forwarded_props: Any = None
    resume: Resume | None = None
