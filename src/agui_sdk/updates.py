"""Generic chat updates exchanged with agent producers and UI consumers.

Producers yield these units into :func:`agui_sdk.outbound.to_event_stream`;
:func:`agui_sdk.inbound.to_chat_updates` yields them back on the client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .events import BaseEvent
from .types import ContextItem, RunAgentInput, Tool


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextDelta:
    text: str
    message_id: str | None = None
    role: str = "assistant"


@dataclass(frozen=True)
class FunctionCall:
    call_id: str
    name: str
    arguments: dict[str, Any] | None = None
    message_id: str | None = None  # message the call belongs to


@dataclass(frozen=True)
class FunctionResult:
    call_id: str
    result: Any = None
    message_id: str | None = None


@dataclass(frozen=True)
class ReasoningDelta:
    text: str
    message_id: str | None = None


@dataclass(frozen=True)
class StateSnapshot:
    state: Any


@dataclass(frozen=True)
class StatePatch:
    operations: list[dict[str, Any]]  # RFC 6902


@dataclass(frozen=True)
class Passthrough:
    """An already framed wire event forwarded as is."""

    event: BaseEvent


# ---------------------------------------------------------------------------
# Pause requests and their answers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalRequest:
    """Ask a human to approve a function call before it runs.

    ``request_id`` becomes the interrupt id and the pending call id.
    """

    request_id: str
    call: FunctionCall


@dataclass(frozen=True)
class InputRequest:
    """Ask a human for free-form input described by ``payload``."""

    request_id: str
    payload: Any = None


@dataclass(frozen=True)
class ApprovalResponse:
    request_id: str
    approved: bool
    call: FunctionCall | None = None


@dataclass(frozen=True)
class InputResponse:
    request_id: str
    payload: Any = None


PauseRequest = Union[ApprovalRequest, InputRequest]
ResumeResponse = Union[ApprovalResponse, InputResponse]


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunStarted:
    thread_id: str
    run_id: str
    parent_run_id: str | None = None


@dataclass(frozen=True)
class RunFinished:
    thread_id: str | None = None
    run_id: str | None = None
    result: Any = None


@dataclass(frozen=True)
class RunFailed:
    message: str
    code: str | None = None


ChatUpdate = Union[
    TextDelta,
    FunctionCall,
    FunctionResult,
    ReasoningDelta,
    StateSnapshot,
    StatePatch,
    Passthrough,
    ApprovalRequest,
    InputRequest,
    RunStarted,
    RunFinished,
    RunFailed,
]


# ---------------------------------------------------------------------------
# Run context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunContext:
    """Per-run settings handed to the producer alongside the message history."""

    thread_id: str
    run_id: str
    parent_run_id: str | None = None
    state: Any = None
    tools: list[Tool] = field(default_factory=list)
    context: list[ContextItem] = field(default_factory=list)
    forwarded_props: Any = None
    resume: ResumeResponse | None = None

    @classmethod
    def from_input(
        cls,
        run_input: RunAgentInput,
        *,
        state: Any = None,
        resume: ResumeResponse | None = None,
    ) -> RunContext:
        return cls(
            thread_id=run_input.thread_id,
            run_id=run_input.run_id,
            parent_run_id=run_input.parent_run_id,
            state=run_input.state if run_input.state is not None else state,
            tools=list(run_input.tools),
            context=list(run_input.context),
            forwarded_props=run_input.forwarded_props,
            resume=resume,
        )
