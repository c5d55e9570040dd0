"""Mapping between pause requests / resume answers and the wire envelopes.

A function-approval interrupt carries ``{"functionName", "functionArguments"}``
in its payload and its id doubles as the pending call id. Any other payload is
a free-form input request. Approvals are answered with ``{"approved": bool}``.

Both approval keys are always present: a call without arguments is sent with
an empty ``functionArguments`` object and reads back with ``{}`` as its
arguments.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from .errors import DecodeError
from .types import Interrupt, Resume
from .updates import (
    ApprovalRequest,
    ApprovalResponse,
    FunctionCall,
    InputRequest,
    InputResponse,
    PauseRequest,
    ResumeResponse,
)

FUNCTION_NAME = "functionName"
FUNCTION_ARGUMENTS = "functionArguments"
APPROVED = "approved"


def is_approval_payload(payload: Any) -> bool:
    return isinstance(payload, Mapping) and FUNCTION_NAME in payload


def to_interrupt(request: PauseRequest) -> Interrupt:
    if isinstance(request, ApprovalRequest):
        return Interrupt(
            id=request.request_id,
            payload={
                FUNCTION_NAME: request.call.name,
                FUNCTION_ARGUMENTS: request.call.arguments or {},
            },
        )
    return Interrupt(id=request.request_id, payload=request.payload)


def from_interrupt(interrupt: Interrupt) -> PauseRequest:
    payload = interrupt.payload
    if not is_approval_payload(payload):
        return InputRequest(request_id=interrupt.id, payload=payload)
    name = payload[FUNCTION_NAME]
    if not isinstance(name, str):
        raise DecodeError(f"interrupt {interrupt.id!r}: {FUNCTION_NAME} must be a string")
    call = FunctionCall(
        call_id=interrupt.id,
        name=name,
        arguments=_arguments(interrupt.id, payload.get(FUNCTION_ARGUMENTS)),
    )
    return ApprovalRequest(request_id=interrupt.id, call=call)


def _arguments(interrupt_id: str, value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise DecodeError(
                f"interrupt {interrupt_id!r}: {FUNCTION_ARGUMENTS} is not valid JSON"
            ) from exc
    if not isinstance(value, dict):
        raise DecodeError(f"interrupt {interrupt_id!r}: {FUNCTION_ARGUMENTS} must be an object")
    return value


def to_resume(response: ResumeResponse) -> Resume:
    if isinstance(response, ApprovalResponse):
        return Resume(interrupt_id=response.request_id, payload={APPROVED: response.approved})
    return Resume(interrupt_id=response.request_id, payload=response.payload)


def from_resume(resume: Resume, request: PauseRequest | None = None) -> ResumeResponse:
    """Decode a resume against the request it answers.

    Without a known request the answer is taken as free-form input.
    """
    if request is not None and request.request_id != resume.interrupt_id:
        raise DecodeError(
            f"resume for {resume.interrupt_id!r} does not answer {request.request_id!r}"
        )
    if not isinstance(request, ApprovalRequest):
        return InputResponse(request_id=resume.interrupt_id, payload=resume.payload)

    payload = resume.payload if resume.payload is not None else {}
    if not isinstance(payload, Mapping):
        raise DecodeError(f"resume {resume.interrupt_id!r}: approval payload must be an object")
    approved = payload.get(APPROVED, False)
    if not isinstance(approved, bool):
        raise DecodeError(f"resume {resume.interrupt_id!r}: {APPROVED} must be a boolean")
    return ApprovalResponse(request_id=resume.interrupt_id, approved=approved, call=request.call)
