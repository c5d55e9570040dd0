"""AG-UI Python SDK: event wire protocol, translators, sessions and an httpx client."""

from .client import AguiAsyncClient, AguiClient
from .codec import (
    decode_event,
    decode_message,
    decode_run_input,
    encode_event,
    encode_message,
    encode_run_input,
    format_sse,
)
from .errors import (
    AguiApiError,
    AguiError,
    DecodeError,
    ProtocolViolationError,
    StateSyncError,
    UnknownInterruptError,
)
from .events import BaseEvent, EventType
from .inbound import UpdateStreamReader, to_chat_updates
from .outbound import EventStreamWriter, to_event_stream
from .runner import Agent, AgentRunner
from .session import FileSessionStore, InMemorySessionStore, Session, SessionStore
from .state import StateTracker
from .types import (
    AssistantMessage,
    BinaryInput,
    ContextItem,
    DeveloperMessage,
    Interrupt,
    Message,
    Resume,
    RunAgentInput,
    SystemMessage,
    TextInput,
    Tool,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from .updates import (
    ApprovalRequest,
    ApprovalResponse,
    ChatUpdate,
    FunctionCall,
    FunctionResult,
    InputRequest,
    InputResponse,
    Passthrough,
    ReasoningDelta,
    RunContext,
    RunFailed,
    RunFinished,
    RunStarted,
    StatePatch,
    StateSnapshot,
    TextDelta,
)

__all__ = [
    "AguiAsyncClient",
    "AguiClient",
    "decode_event",
    "decode_message",
    "decode_run_input",
    "encode_event",
    "encode_message",
    "encode_run_input",
    "format_sse",
    "AguiApiError",
    "AguiError",
    "DecodeError",
    "ProtocolViolationError",
    "StateSyncError",
    "UnknownInterruptError",
    "BaseEvent",
    "EventType",
    "UpdateStreamReader",
    "to_chat_updates",
    "EventStreamWriter",
    "to_event_stream",
    "Agent",
    "AgentRunner",
    "FileSessionStore",
    "InMemorySessionStore",
    "Session",
    "SessionStore",
    "StateTracker",
    "AssistantMessage",
    "BinaryInput",
    "ContextItem",
    "DeveloperMessage",
    "Interrupt",
    "Message",
    "Resume",
    "RunAgentInput",
    "SystemMessage",
    "TextInput",
    "Tool",
    "ToolCall",
    "ToolMessage",
    "UserMessage",
    "ApprovalRequest",
    "ApprovalResponse",
    "ChatUpdate",
    "FunctionCall",
    "FunctionResult",
    "InputRequest",
    "InputResponse",
    "Passthrough",
    "ReasoningDelta",
    "RunContext",
    "RunFailed",
    "RunFinished",
    "RunStarted",
    "StatePatch",
    "StateSnapshot",
    "TextDelta",
]
