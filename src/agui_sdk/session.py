"""Per-thread sessions and the stores that keep them between runs.

A session holds the message history of a thread, the interrupts that are
waiting for an answer and the last known shared state. Stores hand out
copies, so a run that is abandoned before ``save`` leaves no trace.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

from .codec import interrupt_from_dict, message_from_dict, message_to_dict, to_wire
from .errors import DecodeError, UnknownInterruptError
from .interrupts import from_interrupt
from .persistence import atomic_write
from .types import Interrupt, Message
from .updates import PauseRequest

_log = logging.getLogger(__name__)

_FORMAT_VERSION = 1


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PendingInterrupt:
    """An interrupt emitted by a run that has not been answered yet."""

    interrupt: Interrupt
    run_id: str
    created_at: str = field(default_factory=_now)

    @property
    def request(self) -> PauseRequest:
        return from_interrupt(self.interrupt)


@dataclass
class Session:
    thread_id: str
    messages: list[Message] = field(default_factory=list)
    pending_interrupts: dict[str, PendingInterrupt] = field(default_factory=dict)
    state: Any = None
    created_at: str = field(default_factory=_now)
    updated_at: str | None = None

    def merge_messages(self, messages: list[Message]) -> int:
        """Append the messages history does not know yet; returns how many."""
        known = {m.id for m in self.messages if m.id is not None}
        added = 0
        for message in messages:
            if message.id is not None and message.id in known:
                continue
            self.messages.append(message)
            if message.id is not None:
                known.add(message.id)
            added += 1
        return added

    def add_interrupt(self, interrupt: Interrupt, run_id: str) -> PendingInterrupt:
        pending = PendingInterrupt(interrupt=interrupt, run_id=run_id)
        self.pending_interrupts[interrupt.id] = pending
        return pending

    def resolve_interrupt(self, interrupt_id: str) -> PendingInterrupt:
        try:
            return self.pending_interrupts.pop(interrupt_id)
        except KeyError:
            raise UnknownInterruptError(self.thread_id, interrupt_id) from None


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def session_to_dict(session: Session) -> dict[str, Any]:
    return {
        "version": _FORMAT_VERSION,
        "thread_id": session.thread_id,
        "messages": [message_to_dict(m) for m in session.messages],
        "pending_interrupts": {
            key: {
                "interrupt": to_wire(p.interrupt),
                "run_id": p.run_id,
                "created_at": p.created_at,
            }
            for key, p in session.pending_interrupts.items()
        },
        "state": session.state,
        "created_at": session.created_at,
        "updated_at": session.updated_at,
    }


def session_from_dict(data: Any) -> Session:
    try:
        return Session(
            thread_id=data["thread_id"],
            messages=[message_from_dict(m) for m in data.get("messages", [])],
            pending_interrupts={
                key: PendingInterrupt(
                    interrupt=interrupt_from_dict(p["interrupt"]),
                    run_id=p["run_id"],
                    created_at=p["created_at"],
                )
                for key, p in data.get("pending_interrupts", {}).items()
            },
            state=data.get("state"),
            created_at=data["created_at"],
            updated_at=data.get("updated_at"),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise DecodeError(f"session: malformed document ({exc!r})") from exc


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class SessionStore(Protocol):
    async def get(self, thread_id: str) -> Session:
        """Return the session of a thread, creating an empty one on first access."""
        ...

    async def save(self, thread_id: str, session: Session) -> None:
        """Persist ``session``; later ``get`` calls observe it."""
        ...


def _check_thread(thread_id: str, session: Session) -> None:
    if session.thread_id != thread_id:
        raise ValueError(
            f"session of thread {session.thread_id!r} saved under {thread_id!r}"
        )


class InMemorySessionStore:
    """Process-local store. Sessions are copied on the way in and out."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def get(self, thread_id: str) -> Session:
        session = self._sessions.get(thread_id)
        if session is None:
            session = self._sessions[thread_id] = Session(thread_id=thread_id)
        return copy.deepcopy(session)

    async def save(self, thread_id: str, session: Session) -> None:
        _check_thread(thread_id, session)
        session.updated_at = _now()
        self._sessions[thread_id] = copy.deepcopy(session)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._sessions


class FileSessionStore:
    """One JSON document per thread under ``root``, replaced atomically on save."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    def path_for(self, thread_id: str) -> Path:
        return self._root / f"{quote(thread_id, safe='')}.json"

    async def get(self, thread_id: str) -> Session:
        return await asyncio.to_thread(self._load, thread_id)

    async def save(self, thread_id: str, session: Session) -> None:
        _check_thread(thread_id, session)
        session.updated_at = _now()
        data = json.dumps(session_to_dict(session), indent=2).encode()
        await asyncio.to_thread(atomic_write, self.path_for(thread_id), data)
        _log.debug("saved session %s (%d messages)", thread_id, len(session.messages))

    def _load(self, thread_id: str) -> Session:
        path = self.path_for(thread_id)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return Session(thread_id=thread_id)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"session file {path} is not valid JSON") from exc
        return session_from_dict(data)
