"""Google Gemini generateContent adapter."""

import json
from typing import Any

from cuid2 import cuid_wrapper

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

cuid = cuid_wrapper()


def convert_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Rewrite JSON Schema nullable unions into Gemini's ``nullable`` flag.

    ``{"type": ["string", "null"]}`` becomes ``{"type": "string", "nullable": true}``.
    Nested objects and lists of objects are converted recursively; the input is
    left untouched.
    """
    result: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, list):
            types = [t for t in value if t != "null"]
            result["type"] = types[0] if len(types) == 1 else types
            if "null" in value:
                result["nullable"] = True
        elif isinstance(value, dict):
            result[key] = convert_schema(value)
        elif isinstance(value, list):
            result[key] = [convert_schema(item) if isinstance(item, dict) else item for item in value]
        else:
            result[key] = value
    return result


class GeminiProvider(LLMProvider):
    """Adapter for the Gemini generateContent API."""

    name = "gemini"
    family = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com"
    proxy_path = "/api/llm/gemini"
    models = ModelOptions(
        default="gemini-2.5-flash",
        options=(
            "gemini-2.5-flash",
            "gemini-2.5-pro",
            "gemini-2.5-flash-lite",
            "gemini-3-flash-preview",
            "gemini-3-pro-preview",
        ),
    )

    # functionResponse has no call id field, only the function name
    correlate_results_by_name = True

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "function_declarations": [
                    {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": convert_schema(tool.parameters),
                    }
                    for tool in tools
                ]
            }
        ]

    def build_request(
        self,
        messages: list[TranscriptEntry],
        tools: list[ToolDefinition],
        model: str,
        api_key: str,
    ) -> LLMRequest:
        system_prompt, rest = self.split_system(messages)

        body: dict[str, Any] = {
            "contents": [self._to_wire(message) for message in rest],
            "tools": self.format_tools(tools),
        }
        if system_prompt is not None:
            body["system_instruction"] = {"parts": [{"text": system_prompt}]}

        return LLMRequest(
            url=f"{self.base_url}/v1beta/models/{model}:generateContent",
            headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
            body=body,
        )

    def _to_wire(self, message: TranscriptEntry) -> dict[str, Any]:
        if isinstance(message, Message):
            role = "model" if message.role == "assistant" else "user"
            return {"role": role, "parts": [{"text": message.content}]}
        return self.vendor_payload(message)

    def parse_response(self, response: Any) -> ParsedResponse:
        candidates = response.get("candidates") if isinstance(response, dict) else None
        if not isinstance(candidates, list) or not candidates:
            feedback = response.get("promptFeedback") if isinstance(response, dict) else None
            raise MalformedResponseError(f"Gemini response has no candidates (promptFeedback: {feedback})")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise MalformedResponseError(f"Gemini candidate is not an object: {candidate!r}")

        # A candidate blocked by safety filters has no content at all
        content = candidate.get("content") or {"role": "model", "parts": []}
        if not isinstance(content, dict):
            raise MalformedResponseError(f"Gemini candidate content is not an object: {content!r}")
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise MalformedResponseError("Gemini candidate 'parts' is not a list")

        text = ""
        tool_calls: list[ToolCall] = []
        for part in parts:
            if not isinstance(part, dict):
                raise MalformedResponseError(f"Gemini part is not an object: {part!r}")
            if isinstance(part.get("text"), str) and not part.get("thought"):
                text += part["text"]
            function_call = part.get("functionCall")
            if function_call:
                if not isinstance(function_call, dict) or not isinstance(function_call.get("name"), str):
                    raise MalformedResponseError(f"Gemini functionCall without a name: {function_call!r}")
                arguments = function_call.get("args") or {}
                if not isinstance(arguments, dict):
                    raise MalformedResponseError(f"Gemini functionCall args are not an object: {function_call!r}")
                tool_calls.append(ToolCall(id=cuid(), name=function_call["name"], arguments=arguments))

        return ParsedResponse(
            text=text or None,
            tool_calls=tool_calls,
            raw_assistant_message=VendorMessage(
                vendor=self.family,
                payload={**content, "role": content.get("role", "model")},
            ),
        )

    def format_tool_result(self, correlation_id: str, result: str) -> VendorMessage:
        """Build a functionResponse; ``correlation_id`` must be the tool name."""
        try:
            decoded: Any = json.loads(result)
        except json.JSONDecodeError:
            decoded = result

        return VendorMessage(
            vendor=self.family,
            payload={
                "role": "user",
                "parts": [
                    {
                        "functionResponse": {
                            "name": correlation_id,
                            "response": {"result": decoded},
                        }
                    }
                ],
            },
        )
