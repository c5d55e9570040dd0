"""Server side run pipeline, independent of any web framework.

A hosting layer decodes the request body into a :class:`RunAgentInput`,
iterates :meth:`AgentRunner.run_sse` and writes each frame to the response.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Protocol

from .codec import format_sse
from .events import BaseEvent
from .history import HistoryRecorder
from .ids import IdFactory, new_id
from .interrupts import from_resume
from .outbound import to_event_stream
from .session import InMemorySessionStore, Session, SessionStore
from .types import Message, Resume, RunAgentInput
from .updates import ChatUpdate, ResumeResponse, RunContext

_log = logging.getLogger(__name__)


class Agent(Protocol):
    """Producer of chat updates for one run."""

    def run(self, messages: list[Message], context: RunContext) -> AsyncIterator[ChatUpdate]:
        """Yield the updates of a run given the thread history so far."""
        ...


class ThreadLocks:
    """One lock per thread id, dropped once nobody holds or waits for it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, thread_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(thread_id, asyncio.Lock())
        self._users[thread_id] = self._users.get(thread_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[thread_id] -= 1
            if not self._users[thread_id]:
                del self._users[thread_id]
                del self._locks[thread_id]

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._locks


class AgentRunner:
    """Runs an agent for AG-UI requests and keeps the thread sessions.

    Runs on the same thread id are serialized. A resume is checked against
    the session's pending interrupts before the agent is called, and the
    session is saved only after the run's events have all been consumed.
    """

    def __init__(
        self,
        agent: Agent,
        store: SessionStore | None = None,
        *,
        new_id: IdFactory = new_id,
    ) -> None:
        self.agent = agent
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self.locks = ThreadLocks()
        self._new_id = new_id

    async def run(self, run_input: RunAgentInput) -> AsyncIterator[BaseEvent]:
        """Yield the wire events of one run.

        Raises UnknownInterruptError on the first iteration when the input
        resumes an interrupt the thread is not waiting on.
        """
        thread_id = run_input.thread_id
        async with self.locks.hold(thread_id):
            session = await self.store.get(thread_id)
            answer = self._resolve(session, run_input.resume)
            session.merge_messages(run_input.messages)
            context = RunContext.from_input(run_input, state=session.state, resume=answer)
            recorder = HistoryRecorder(context.run_id, state=context.state)

            _log.info("run %s started on thread %s", context.run_id, thread_id)
            updates = recorder.observe(self.agent.run(list(session.messages), context))
            events = to_event_stream(
                updates, context, new_id=self._new_id, on_update=recorder.record
            )
            async with contextlib.aclosing(events):
                async for event in events:
                    yield event

            if recorder.failed:
                _log.info("run %s failed, thread %s left unchanged", context.run_id, thread_id)
                return
            recorder.apply_to(session)
            await self.store.save(thread_id, session)
            _log.info(
                "run %s finished, thread %s has %d pending interrupt(s)",
                context.run_id,
                thread_id,
                len(session.pending_interrupts),
            )

    async def run_sse(self, run_input: RunAgentInput) -> AsyncIterator[str]:
        async with contextlib.aclosing(self.run(run_input)) as events:
            async for event in events:
                yield format_sse(event)

    @staticmethod
    def _resolve(session: Session, resume: Resume | None) -> ResumeResponse | None:
        if resume is None:
            return None
        pending = session.resolve_interrupt(resume.interrupt_id)
        return from_resume(resume, pending.request)
