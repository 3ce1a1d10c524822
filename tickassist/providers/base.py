"""Provider adapter interface shared by all LLM vendors."""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from tickassist.models.llm import (
    LLMRequest,
    Message,
    ParsedResponse,
    ToolDefinition,
    TranscriptEntry,
    VendorMessage,
)
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModelOptions:
    """Models offered for a provider."""

    default: str
    options: tuple[str, ...]


class LLMProvider(ABC):
    """Translates between the internal transcript and one vendor wire format.

    Subclasses are pure: no method performs I/O or mutates its arguments.
    """

    name: str
    family: str
    default_base_url: str
    proxy_path: str
    models: ModelOptions

    # Some vendors correlate tool results by tool name rather than call id
    correlate_results_by_name: bool = False

    def __init__(self, base_url: str | None = None):
        """Initialize the adapter.

        Args:
            base_url: Vendor base URL; defaults to the vendor's public endpoint
        """
        self.base_url = (base_url or self.default_base_url).rstrip("/")

    @abstractmethod
    def format_tools(self, tools: list[ToolDefinition]) -> Any:
        """Map tool definitions to the vendor's request shape."""

    @abstractmethod
    def build_request(
        self,
        messages: list[TranscriptEntry],
        tools: list[ToolDefinition],
        model: str,
        api_key: str,
    ) -> LLMRequest:
        """Build the HTTP request for the next model call."""

    @abstractmethod
    def parse_response(self, response: Any) -> ParsedResponse:
        """Extract text, tool calls and the raw assistant message from a reply.

        Raises:
            MalformedResponseError: If the reply lacks the fields this vendor returns
        """

    @abstractmethod
    def format_tool_result(self, correlation_id: str, result: str) -> VendorMessage:
        """Build the message carrying a tool's JSON result back to the model."""

    def vendor_payload(self, message: VendorMessage) -> dict[str, Any]:
        """Return a copy of a vendor blob, refusing blobs from another family."""
        if message.vendor != self.family:
            raise ValueError(
                f"Cannot send a '{message.vendor}' message to the '{self.family}' provider; "
                "rebuild the transcript when switching providers"
            )
        return copy.deepcopy(message.payload)

    @staticmethod
    def split_system(messages: list[TranscriptEntry]) -> tuple[str | None, list[TranscriptEntry]]:
        """Separate the first system message from the rest of the transcript.

        Later system messages are dropped with a warning.
        """
        system_prompt: str | None = None
        rest: list[TranscriptEntry] = []
        for message in messages:
            if isinstance(message, Message) and message.role == "system":
                if system_prompt is None:
                    system_prompt = message.content
                else:
                    logger.warning(f"Dropping extra system message ({len(message.content)} chars)")
                continue
            rest.append(message)
        return system_prompt, rest

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self.base_url!r})"
