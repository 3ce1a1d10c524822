"""LLM-related data models and types (provider-agnostic)."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant"]
FeatureLevel = Literal["v1", "v2"]


class Message(BaseModel):
    """A plain-text conversation turn, understood by every provider."""

    role: Role
    content: str


@dataclass(frozen=True)
class VendorMessage:
    """A vendor-shaped transcript entry produced by a provider adapter.

    Raw assistant replies and tool results are carried in the exact shape
    the vendor expects to see again on the next request. Only the adapter
    whose ``family`` matches ``vendor`` may look inside ``payload``.
    """

    vendor: str
    payload: dict[str, Any]


TranscriptEntry = Message | VendorMessage


class ToolDefinition(BaseModel):
    """Definition of a tool the model may call."""

    name: str
    description: str
    parameters: dict[str, Any]
    requires_confirmation: bool = False

    class Config:
        frozen = True


class ToolCall(BaseModel):
    """One request from the model to run a tool."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class PendingConfirmation:
    """A tool call waiting for the user to approve or reject it."""

    tool_call: ToolCall
    tool_definition: ToolDefinition


@dataclass
class LLMRequest:
    """HTTP request descriptor built by a provider adapter."""

    url: str
    headers: dict[str, str]
    body: dict[str, Any]


@dataclass
class ParsedResponse:
    """Provider-agnostic view of one model reply."""

    raw_assistant_message: VendorMessage
    text: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)


@dataclass(frozen=True)
class Credentials:
    """TickTick credentials used by tool executions.

    ``access_token`` is the OAuth token for the open API. ``session_token``
    unlocks the extended (v2) API and is optional.
    """

    access_token: str
    session_token: str | None = None


class LoopState(StrEnum):
    """States of the tool loop state machine."""

    BUILDING_REQUEST = "building_request"
    AWAITING_RESPONSE = "awaiting_response"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    CANCELLED = "cancelled"
    ERROR = "error"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"


@dataclass
class ToolLoopResult:
    """Result from running one assistant turn."""

    text: str
    messages: list[TranscriptEntry]
    state: LoopState
    iterations: int


ConfirmationHandler = Callable[[PendingConfirmation], Awaitable[bool]]


@dataclass
class ToolLoopCallbacks:
    """Optional observers and the confirmation hook for a turn."""

    on_tool_call: Callable[[ToolCall], None] | None = None
    on_tool_result: Callable[[str, str, str], None] | None = None
    on_text: Callable[[str], None] | None = None
    on_confirmation_needed: ConfirmationHandler | None = None
