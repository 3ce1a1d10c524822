"""Conversation history models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from tickassist.models.llm import TranscriptEntry
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)

ConfirmationStatus = Literal["pending", "confirmed", "cancelled"]

TITLE_LENGTH = 50
DEFAULT_TITLE = "New conversation"


class ToolCallRecord(BaseModel):
    """A tool call made during an assistant turn, with its result once known."""

    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: str | None = None


class ConfirmationRecord(BaseModel):
    """A confirmation the user was asked for during an assistant turn."""

    id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    status: ConfirmationStatus = "pending"


class StoredMessage(BaseModel):
    """A human-facing chat message."""

    id: str
    role: Literal["user", "assistant"]
    content: str
    provider: str | None = None
    model: str | None = None
    error: bool = False
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    confirmations: list[ConfirmationRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def record_tool_result(self, tool_call_id: str, result: str) -> None:
        for record in self.tool_calls:
            if record.id == tool_call_id:
                record.result = result
                return

    def resolve_confirmation(self, confirmation_id: str, status: ConfirmationStatus) -> None:
        for record in self.confirmations:
            if record.id == confirmation_id:
                record.status = status
                return


@dataclass
class Conversation:
    """A conversation with its display history and live LLM transcript.

    ``messages`` is what the user sees. ``transcript`` is the vendor-shaped
    context sent to the model; it is only valid for the vendor family in ``transcript_vendor``
    and is rebuilt from ``messages`` whenever the vendor family changes.
    """

    conversation_id: str
    title: str = DEFAULT_TITLE
    messages: list[StoredMessage] = field(default_factory=list)
    transcript: list[TranscriptEntry] = field(default_factory=list)
    transcript_vendor: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    def as_dict(self) -> dict[str, Any]:
        """Return the conversation as a dictionary."""
        return {
            "conversation_id": self.conversation_id,
            "title": self.title,
            "message_count": len(self.messages),
            "transcript_vendor": self.transcript_vendor,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)

    def add_message(self, message: StoredMessage) -> None:
        """Append a message, titling the conversation after its first user message."""
        if message.role == "user" and self.title == DEFAULT_TITLE:
            self.title = message.content[:TITLE_LENGTH]
        self.messages.append(message)
        self.update_activity()

    def reset_transcript(self) -> None:
        """Forget the LLM transcript so it is rebuilt on the next turn."""
        logger.debug(f"Resetting transcript of conversation {self.conversation_id}")
        self.transcript = []
        self.transcript_vendor = None
