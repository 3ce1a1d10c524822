"""OpenAI-compatible chat completions adapter (OpenAI and xAI Grok)."""

import json
from typing import Any

from pydantic import ValidationError

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


class OpenAIProvider(LLMProvider):
    """Adapter for the OpenAI chat completions wire format."""

    name = "openai"
    family = "openai"
    default_base_url = "https://api.openai.com"
    proxy_path = "/api/llm/openai"
    models = ModelOptions(
        default="gpt-4.1",
        options=("gpt-4.1", "gpt-4.1-mini", "o3", "o4-mini"),
    )

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
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
        # System messages are accepted inline by this vendor
        return LLMRequest(
            url=f"{self.base_url}/v1/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            body={
                "model": model,
                "messages": [self._to_wire(message) for message in messages],
                "tools": self.format_tools(tools),
            },
        )

    def _to_wire(self, message: TranscriptEntry) -> dict[str, Any]:
        if isinstance(message, Message):
            return {"role": message.role, "content": message.content}
        return self.vendor_payload(message)

    def parse_response(self, response: Any) -> ParsedResponse:
        choices = response.get("choices") if isinstance(response, dict) else None
        if not isinstance(choices, list) or not choices:
            raise MalformedResponseError("Chat completion response has no 'choices'")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise MalformedResponseError("Chat completion choice has no 'message'")

        tool_calls: list[ToolCall] = []
        raw_calls = message.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise MalformedResponseError(f"Chat completion 'tool_calls' is not a list: {raw_calls!r}")

        for raw_call in raw_calls:
            function = raw_call.get("function") if isinstance(raw_call, dict) else None
            if not isinstance(function, dict):
                raise MalformedResponseError(f"Malformed tool call in chat completion: {raw_call!r}")
            try:
                arguments = json.loads(function.get("arguments") or "{}")
            except (TypeError, json.JSONDecodeError) as e:
                raise MalformedResponseError(f"Tool call arguments are not valid JSON: {raw_call!r}") from e
            if not isinstance(arguments, dict):
                raise MalformedResponseError(f"Tool call arguments are not an object: {raw_call!r}")
            try:
                tool_calls.append(ToolCall(id=raw_call["id"], name=function["name"], arguments=arguments))
            except (KeyError, ValidationError) as e:
                raise MalformedResponseError(f"Malformed tool call in chat completion: {raw_call!r}") from e

        return ParsedResponse(
            text=message.get("content") or None,
            tool_calls=tool_calls,
            raw_assistant_message=VendorMessage(
                vendor=self.family,
                payload={**message, "role": "assistant"},
            ),
        )

    def format_tool_result(self, correlation_id: str, result: str) -> VendorMessage:
        return VendorMessage(
            vendor=self.family,
            payload={"role": "tool", "tool_call_id": correlation_id, "content": result},
        )


class GrokProvider(OpenAIProvider):
    """xAI Grok, which speaks the OpenAI chat completions format."""

    name = "grok"
    default_base_url = "https://api.x.ai"
    proxy_path = "/api/llm/grok"
    models = ModelOptions(
        default="grok-4-fast-non-reasoning",
        options=("grok-4-fast-non-reasoning", "grok-4-1-fast-non-reasoning", "grok-3"),
    )
