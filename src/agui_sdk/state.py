"""Client-side view of the shared agent state."""

from __future__ import annotations

import copy
from typing import Any

import jsonpatch
import jsonpointer

from .errors import StateSyncError


class StateTracker:
    """Applies STATE_SNAPSHOT and STATE_DELTA events in arrival order.

    A delta is only applied on top of a known state. When there is none, or
    the patch does not fit, the tracker forgets the state and raises
    StateSyncError so the caller asks for a fresh snapshot.
    """

    def __init__(self, state: Any = None, *, known: bool | None = None) -> None:
        self._state = copy.deepcopy(state)
        self._known = state is not None if known is None else known

    @property
    def known(self) -> bool:
        return self._known

    @property
    def state(self) -> Any:
        return self._state

    def replace(self, snapshot: Any) -> Any:
        self._state = copy.deepcopy(snapshot)
        self._known = True
        return self._state

    def apply(self, operations: list[dict[str, Any]]) -> Any:
        if not self._known:
            raise StateSyncError("state delta received before any snapshot")
        try:
            patched = jsonpatch.apply_patch(self._state, operations)
        except (
            jsonpatch.JsonPatchException,
            jsonpointer.JsonPointerException,
            KeyError,
            IndexError,
            TypeError,
        ) as exc:
            self._state = None
            self._known = False
            raise StateSyncError(f"state delta does not apply: {exc}") from exc
        self._state = patched
        return patched

    def forget(self) -> None:
        self._state = None
        self._known = False
