"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from tickassist.models.llm import FeatureLevel, LoopState, ToolDefinition
from tickassist.models.session import StoredMessage


class ConversationRequest(BaseModel):
    """Request model for conversation endpoint."""

    message: str
    conversation_id: str | None = None
    provider: str | None = None
    model: str | None = None


class ConversationResponse(BaseModel):
    """Response model for conversation endpoint."""

    response: str
    conversation_id: str
    state: LoopState


class ConversationCreatedResponse(BaseModel):
    """Identifier of a newly started conversation."""

    conversation_id: str


class ConversationSummary(BaseModel):
    """One row of the conversation list."""

    conversation_id: str
    title: str
    message_count: int
    transcript_vendor: str | None = None
    created_at: datetime
    last_activity: datetime


class ConversationHistoryResponse(BaseModel):
    """Stored messages of a conversation."""

    conversation_id: str
    title: str
    messages: list[StoredMessage]


class PendingConfirmationResponse(BaseModel):
    """A tool call waiting for the user's decision."""

    conversation_id: str
    tool_call_id: str
    tool_name: str
    arguments: dict[str, Any]
    description: str


class ConfirmationDecision(BaseModel):
    """The user's answer to a pending confirmation."""

    tool_call_id: str
    confirmed: bool


class ToolListResponse(BaseModel):
    """Tools offered to the model at a feature level."""

    feature_level: FeatureLevel
    tools: list[ToolDefinition]


class ProviderInfo(BaseModel):
    """A model provider and the models it offers."""

    name: str
    default_model: str
    models: list[str]
    configured: bool
    active: bool


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
