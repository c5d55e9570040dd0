"""Error types raised by the AG-UI SDK."""

from __future__ import annotations

from typing import Any


class AguiError(Exception):
    """Base class for every error raised by this package."""


class DecodeError(AguiError, ValueError):
    """Raised when a wire payload is malformed or carries an unknown discriminator."""


class ProtocolViolationError(AguiError):
    """Raised when a peer breaks the event ordering rules of a run.

    The stream that raised it cannot be reconstructed any further.
    """


class StateSyncError(ProtocolViolationError):
    """Raised when a state delta cannot be applied to the known state.

    The remedy is a fresh ``STATE_SNAPSHOT``.
    """


class UnknownInterruptError(AguiError):
    """Raised when a resume names an interrupt that is not pending for the thread."""

    def __init__(self, thread_id: str, interrupt_id: str) -> None:
        self.thread_id = thread_id
        self.interrupt_id = interrupt_id
        super().__init__(
            f"interrupt {interrupt_id!r} is not pending on thread {thread_id!r}"
        )


class AguiApiError(AguiError):
    """Raised when an AG-UI endpoint returns a non-2xx response."""

    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self.body = body
        super().__init__(f"AG-UI API error {status}: {body}")
