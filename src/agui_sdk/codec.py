"""JSON encoding and decoding of AG-UI events, messages and run inputs.

Python field names are snake_case and map one-to-one onto camelCase wire
names. Absent optional fields are left out of the encoded object; unknown
keys are ignored when decoding. Anything else that does not fit the closed
unions raises :class:`~agui_sdk.errors.DecodeError`.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Callable, Mapping
from dataclasses import MISSING, fields, is_dataclass
from typing import Any

from .errors import DecodeError
from .events import (
    EVENT_TYPES,
    ActivityDeltaEvent,
    BaseEvent,
    EventType,
    MessagesSnapshotEvent,
    RunFinishedEvent,
    RunStartedEvent,
    StateDeltaEvent,
)
from .types import (
    MESSAGE_TYPES,
    AssistantMessage,
    BinaryInput,
    ContextItem,
    FunctionSpec,
    InputContent,
    Interrupt,
    Message,
    Resume,
    RunAgentInput,
    TextInput,
    Tool,
    ToolCall,
    UserMessage,
)

Payload = bytes | str | Mapping[str, Any]

_STRING_TYPES = {"str", "str | None"}
_INT_TYPES = {"int", "int | None"}


def _wire_name(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _dumps(obj: Any) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _loads(payload: Payload, what: str) -> Any:
    if isinstance(payload, Mapping):
        return payload
    try:
        return json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(f"{what}: invalid JSON ({exc})") from exc


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _has_default(f: Any) -> bool:
    return f.default is not MISSING or f.default_factory is not MISSING


def _fields_to_dict(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None and _has_default(f):
            continue
        out[_wire_name(f.name)] = to_wire(value)
    return out


def to_wire(value: Any) -> Any:
    """Convert a model value into plain JSON-compatible data."""
    if isinstance(value, BaseEvent):
        return event_to_dict(value)
    if isinstance(value, tuple(MESSAGE_TYPES.values())):
        return message_to_dict(value)
    if isinstance(value, (TextInput, BinaryInput)):
        return {"type": value.type, **_fields_to_dict(value)}
    if is_dataclass(value) and not isinstance(value, type):
        return _fields_to_dict(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    return value


def event_to_dict(event: BaseEvent) -> dict[str, Any]:
    return {"type": event.type.value, **_fields_to_dict(event)}


def message_to_dict(message: Message) -> dict[str, Any]:
    data = {"role": message.role, **_fields_to_dict(message)}
    if isinstance(message, UserMessage):
        data["content"] = _user_content_to_wire(message.content)
    if isinstance(message, AssistantMessage) and not message.tool_calls:
        data.pop("toolCalls", None)
    return data


def _user_content_to_wire(content: list[InputContent]) -> str | list[dict[str, Any]]:
    # Other implementations expect a bare string for plain text turns.
    if len(content) == 1 and isinstance(content[0], TextInput):
        return content[0].text
    return [to_wire(part) for part in content]


def run_input_to_dict(run_input: RunAgentInput) -> dict[str, Any]:
    return _fields_to_dict(run_input)


def encode_event(event: BaseEvent) -> bytes:
    return _dumps(event_to_dict(event))


def encode_message(message: Message) -> bytes:
    return _dumps(message_to_dict(message))


def encode_run_input(run_input: RunAgentInput) -> bytes:
    return _dumps(run_input_to_dict(run_input))


def format_sse(event: BaseEvent) -> str:
    """Render one event as a server-sent-events frame."""
    return f"data: {encode_event(event).decode('utf-8')}\n\n"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _build(
    cls: type,
    data: Any,
    what: str,
    nested: Mapping[str, Callable[[Any], Any]] | None = None,
) -> Any:
    if not isinstance(data, Mapping):
        raise DecodeError(f"{what}: expected a JSON object, got {type(data).__name__}")
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = _wire_name(f.name)
        if key not in data:
            if not _has_default(f):
                raise DecodeError(f"{what}: missing required property {key!r}")
            continue
        value = data[key]
        if value is None and _has_default(f):
            continue
        if f.type in _STRING_TYPES and not isinstance(value, str):
            raise DecodeError(f"{what}: property {key!r} must be a string")
        if f.type in _INT_TYPES and (not isinstance(value, int) or isinstance(value, bool)):
            raise DecodeError(f"{what}: property {key!r} must be an integer")
        convert = nested.get(f.name) if nested else None
        kwargs[f.name] = convert(value) if convert else value
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{what}: {exc}") from exc


def _expect_list(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise DecodeError(f"{what}: expected a JSON array, got {type(value).__name__}")
    return value


def _ops(what: str) -> Callable[[Any], list[Any]]:
    return lambda value: _expect_list(value, what)


def interrupt_from_dict(data: Any) -> Interrupt:
    return _build(Interrupt, data, "interrupt")


def resume_from_dict(data: Any) -> Resume:
    return _build(Resume, data, "resume")


def _input_segment_from_dict(data: Any) -> InputContent:
    if not isinstance(data, Mapping):
        raise DecodeError("user content segment: expected a JSON object")
    kind = data.get("type")
    if kind == TextInput.type:
        return _build(TextInput, data, "text segment")
    if kind == BinaryInput.type:
        return _build(BinaryInput, data, "binary segment")
    if kind is None:
        raise DecodeError("user content segment: missing discriminator 'type'")
    raise DecodeError(f"user content segment: unknown type {kind!r}")


def _user_content_from_wire(value: Any) -> list[InputContent]:
    if isinstance(value, str):
        return [TextInput(value)]
    return [_input_segment_from_dict(part) for part in _expect_list(value, "user content")]


def _tool_call_from_dict(data: Any) -> ToolCall:
    return _build(
        ToolCall,
        data,
        "tool call",
        {"function": lambda value: _build(FunctionSpec, value, "tool call function")},
    )


_MESSAGE_FIELDS: dict[type, dict[str, Callable[[Any], Any]]] = {
    UserMessage: {"content": _user_content_from_wire},
    AssistantMessage: {
        "tool_calls": lambda value: [
            _tool_call_from_dict(c) for c in _expect_list(value, "toolCalls")
        ],
    },
}


def message_from_dict(data: Any) -> Message:
    if not isinstance(data, Mapping):
        raise DecodeError("message: expected a JSON object")
    role = data.get("role")
    if role is None:
        raise DecodeError("message: missing discriminator 'role'")
    cls = MESSAGE_TYPES.get(role)
    if cls is None:
        raise DecodeError(f"message: unknown role {role!r}")
    return _build(cls, data, f"{role} message", _MESSAGE_FIELDS.get(cls))


def _messages_from_list(value: Any) -> list[Message]:
    return [message_from_dict(m) for m in _expect_list(value, "messages")]


def run_input_from_dict(data: Any) -> RunAgentInput:
    return _build(
        RunAgentInput,
        data,
        "run input",
        {
            "messages": _messages_from_list,
            "tools": lambda value: [
                _build(Tool, t, "tool") for t in _expect_list(value, "tools")
            ],
            "context": lambda value: [
                _build(ContextItem, c, "context item")
                for c in _expect_list(value, "context")
            ],
            "resume": resume_from_dict,
        },
    )


_EVENT_FIELDS: dict[type, dict[str, Callable[[Any], Any]]] = {
    RunStartedEvent: {"input": run_input_from_dict},
    RunFinishedEvent: {"interrupt": interrupt_from_dict},
    MessagesSnapshotEvent: {"messages": _messages_from_list},
    StateDeltaEvent: {"delta": _ops("state delta")},
    ActivityDeltaEvent: {"delta": _ops("activity delta")},
}


def event_from_dict(data: Any) -> BaseEvent:
    if not isinstance(data, Mapping):
        raise DecodeError("event: expected a JSON object")
    tag = data.get("type")
    if tag is None:
        raise DecodeError("event: missing discriminator 'type'")
    try:
        cls = EVENT_TYPES[EventType(tag)]
    except ValueError:
        raise DecodeError(f"event: unknown type {tag!r}") from None
    return _build(cls, data, tag, _EVENT_FIELDS.get(cls))


def decode_event(payload: Payload) -> BaseEvent:
    return event_from_dict(_loads(payload, "event"))


def decode_message(payload: Payload) -> Message:
    return message_from_dict(_loads(payload, "message"))


def decode_run_input(payload: Payload) -> RunAgentInput:
    return run_input_from_dict(_loads(payload, "run input"))
