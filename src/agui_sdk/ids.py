"""Identifier helpers."""

from __future__ import annotations

import uuid
from collections.abc import Callable

IdFactory = Callable[[str], str]


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def new_message_id() -> str:
    return new_id("msg")


def new_tool_call_id() -> str:
    return new_id("call")


def new_run_id() -> str:
    return new_id("run")


def new_thread_id() -> str:
    return new_id("thread")
