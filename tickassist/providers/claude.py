"""Anthropic Messages API adapter (content blocks with inline tool_use)."""

from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from tickassist.errors import MalformedResponseError
from tickassist.models.llm import (
    LLMRequest,
    Message,
    ParsedResponse,
    ToolCall,
    ToolDefinition,
    TranscriptEntry,
    VendorMessage,
)
from tickassist.providers.base import LLMProvider, ModelOptions

ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 4096


class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] | None = None

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str


class ClaudeProvider(LLMProvider):
    """Adapter for Anthropic's Messages API."""

    name = "claude"
    family = "anthropic"
    default_base_url = "https://api.anthropic.com"
    proxy_path = "/api/llm/anthropic"
    models = ModelOptions(
        default="claude-sonnet-4-6",
        options=("claude-sonnet-4-6", "claude-haiku-4-5-20251001", "claude-opus-4-6"),
    )

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters,
            }
            for tool in tools
        ]

    def build_request(
        self,
        messages: list[TranscriptEntry],
        tools: list[ToolDefinition],
        model: str,
        api_key: str,
    ) -> LLMRequest:
        system_prompt, rest = self.split_system(messages)

        body: dict[str, Any] = {"model": model, "max_tokens": MAX_TOKENS}
        if system_prompt is not None:
            body["system"] = system_prompt
        body["messages"] = [self._to_wire(message) for message in rest]
        body["tools"] = self.format_tools(tools)

        return LLMRequest(
            url=f"{self.base_url}/v1/messages",
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body=body,
        )

    def _to_wire(self, message: TranscriptEntry) -> dict[str, Any]:
        if isinstance(message, Message):
            return {"role": message.role, "content": message.content}
        return self.vendor_payload(message)

    def parse_response(self, response: Any) -> ParsedResponse:
        content = response.get("content") if isinstance(response, dict) else None
        if not isinstance(content, list):
            raise MalformedResponseError("Anthropic response has no 'content' block list")

        text = ""
        tool_calls: list[ToolCall] = []
        try:
            for block in content:
                block_type = block.get("type") if isinstance(block, dict) else None
                if block_type == "text":
                    text += TextBlock.model_validate(block).text
                elif block_type == "tool_use":
                    tool_use = ToolUseBlock.model_validate(block)
                    tool_calls.append(ToolCall(id=tool_use.id, name=tool_use.name, arguments=tool_use.input or {}))
        except ValidationError as e:
            raise MalformedResponseError(f"Malformed Anthropic content block: {e}") from e

        return ParsedResponse(
            text=text or None,
            tool_calls=tool_calls,
            raw_assistant_message=VendorMessage(
                vendor=self.family,
                payload={"role": "assistant", "content": content},
            ),
        )

    def format_tool_result(self, correlation_id: str, result: str) -> VendorMessage:
        block = ToolResultBlock(tool_use_id=correlation_id, content=result)
        return VendorMessage(
            vendor=self.family,
            payload={"role": "user", "content": [block.model_dump()]},
        )
