"""
AG-UI Python client: async-first with a sync wrapper.

Posts a run input to an AG-UI endpoint and consumes the server-sent event
stream of that run, either as raw wire events or as rebuilt chat updates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, AsyncIterator

import httpx

from .codec import decode_event, run_input_to_dict
from .errors import AguiApiError
from .events import BaseEvent
from .ids import new_run_id
from .inbound import to_chat_updates
from .interrupts import to_resume
from .types import Message, RunAgentInput
from .updates import ChatUpdate, ResumeResponse

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Async client
# ---------------------------------------------------------------------------


class AguiAsyncClient:
    """Async client for a single AG-UI agent endpoint."""

    def __init__(
        self,
        base_url: str,
        path: str = "",
        token: str | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = path or "/"
        self.token = token
        merged: dict[str, str] = {"Accept": "text/event-stream"}
        if token:
            merged["Authorization"] = f"Bearer {token}"
        if headers:
            merged.update(headers)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=merged,
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> AguiAsyncClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # --- Runs ---

    async def stream_events(self, run_input: RunAgentInput) -> AsyncIterator[BaseEvent]:
        """Start a run and yield its wire events as they arrive."""
        _log.info("starting run %s on thread %s", run_input.run_id, run_input.thread_id)
        async with self._http.stream(
            "POST", self.path, json=run_input_to_dict(run_input)
        ) as resp:
            if resp.status_code >= 400:
                await resp.aread()
                raise AguiApiError(resp.status_code, _response_body(resp))
            async for payload in _iter_sse_data(resp.aiter_lines()):
                event = decode_event(payload)
                _log.debug("run %s: %s", run_input.run_id, event.type.value)
                yield event

    async def run(self, run_input: RunAgentInput) -> AsyncIterator[ChatUpdate]:
        """Start a run and yield the chat updates rebuilt from its events."""
        async for update in to_chat_updates(
            self.stream_events(run_input), state=run_input.state
        ):
            yield update

    async def resume(
        self,
        thread_id: str,
        response: ResumeResponse,
        *,
        run_id: str | None = None,
        messages: Iterable[Message] = (),
        state: Any = None,
    ) -> AsyncIterator[ChatUpdate]:
        """Answer a pending interrupt by starting a new run on the thread."""
        run_input = RunAgentInput(
            thread_id=thread_id,
            run_id=run_id or new_run_id(),
            messages=list(messages),
            state=state,
            resume=to_resume(response),
        )
        async for update in self.run(run_input):
            yield update


async def _iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    data_buffer: list[str] = []
    async for line in lines:
        if line.startswith("data:"):
            data_buffer.append(line[5:].strip())
        elif line == "" and data_buffer:
            yield "\n".join(data_buffer)
            data_buffer.clear()
    if data_buffer:
        yield "\n".join(data_buffer)


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


# ---------------------------------------------------------------------------
# Sync wrapper
# ---------------------------------------------------------------------------


class AguiClient:
    """Synchronous wrapper around AguiAsyncClient.

    Streams are collected into lists since there is no event loop to hand
    them back on.
    """

    def __init__(
        self,
        base_url: str,
        path: str = "",
        token: str | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._args: dict[str, Any] = dict(
            base_url=base_url, path=path, token=token, timeout=timeout, headers=headers
        )

    def _run(self, coro: Any) -> Any:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor() as pool:
                return pool.submit(asyncio.run, coro).result()
        return asyncio.run(coro)

    async def _collect(self, method: str, *args: Any, **kwargs: Any) -> list[Any]:
        # httpx clients are bound to the loop that created them.
        async with AguiAsyncClient(**self._args) as client:
            return [item async for item in getattr(client, method)(*args, **kwargs)]

    def stream_events(self, run_input: RunAgentInput) -> list[BaseEvent]:
        return self._run(self._collect("stream_events", run_input))

    def run(self, run_input: RunAgentInput) -> list[ChatUpdate]:
        return self._run(self._collect("run", run_input))

    def resume(self, thread_id: str, response: ResumeResponse, **kwargs: Any) -> list[ChatUpdate]:
        return self._run(self._collect("resume", thread_id, response, **kwargs))
