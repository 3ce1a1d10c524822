"""Tests for the LLM provider adapters."""

import copy
import json
import logging

import pytest

from tickassist.errors import MalformedResponseError, ProviderNotConfiguredError
from tickassist.models.llm import Message, ToolDefinition, VendorMessage
from tickassist.providers import ClaudeProvider, GeminiProvider, GrokProvider, OpenAIProvider, get_provider
from tickassist.providers.gemini import convert_schema
from tests.fakes import claude_tool_use, gemini_function_call

TOOLS = [
    ToolDefinition(
        name="update_task",
        description="Update a task",
        parameters={
            "type": "object",
            "properties": {
                "taskId": {"type": "string"},
                "dueDate": {"type": ["string", "null"]},
                "items": {
                    "type": "array",
                    "items": {"type": "object", "properties": {"title": {"type": ["string", "null"]}}},
                },
            },
            "required": ["taskId"],
        },
    )
]

TRANSCRIPT = [
    Message(role="system", content="You are a task assistant."),
    Message(role="user", content="What projects do I have?"),
]


class TestProviderLookup:
    """Tests for building adapters by name."""

    def test_unknown_provider_raises(self):
        """Test that an unknown provider name is rejected."""
        with pytest.raises(ProviderNotConfiguredError):
            get_provider("mistral")

    def test_proxy_url_uses_vendor_path(self):
        """Test that a relay origin is combined with the vendor path."""
        provider = get_provider("grok", proxy_url="https://relay.example.com/")
        assert isinstance(provider, GrokProvider)
        assert provider.base_url == "https://relay.example.com/api/llm/grok"

    def test_default_base_url(self):
        """Test that adapters default to the vendor endpoint."""
        assert get_provider("claude").base_url == "https://api.anthropic.com"


class TestClaudeProvider:
    """Tests for the Anthropic Messages adapter."""

    def test_build_request_lifts_system_prompt(self):
        """Test that the system message moves to the top-level field."""
        request = ClaudeProvider().build_request(TRANSCRIPT, TOOLS, "claude-sonnet-4-6", "sk-test")

        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert request.body["system"] == "You are a task assistant."
        assert request.body["messages"] == [{"role": "user", "content": "What projects do I have?"}]
        assert request.body["tools"][0]["input_schema"] == TOOLS[0].parameters

    def test_extra_system_messages_are_logged(self, caplog):
        """Test that only the first system message is sent and later ones are reported."""
        transcript = [*TRANSCRIPT, Message(role="system", content="Be terse.")]

        with caplog.at_level(logging.WARNING, logger="tickassist.providers.base"):
            request = ClaudeProvider().build_request(transcript, TOOLS, "claude-sonnet-4-6", "sk-test")

        assert request.body["system"] == "You are a task assistant."
        assert all(message["role"] != "system" for message in request.body["messages"])
        assert "Dropping extra system message" in caplog.text

    def test_build_request_does_not_mutate_input(self):
        """Test that building a request leaves the transcript untouched."""
        messages = [*TRANSCRIPT, VendorMessage("anthropic", {"role": "assistant", "content": [{"type": "text"}]})]
        snapshot = copy.deepcopy(messages)

        request = ClaudeProvider().build_request(messages, TOOLS, "claude-sonnet-4-6", "sk-test")
        request.body["messages"][-1]["content"].append({"type": "text", "text": "changed"})

        assert messages == snapshot

    def test_parse_text_and_tool_use(self):
        """Test parsing a reply with text and a tool call."""
        response = claude_tool_use(("toolu_1", "list_projects", {}), text="Let me check.")
        parsed = ClaudeProvider().parse_response(response)

        assert parsed.text == "Let me check."
        assert len(parsed.tool_calls) == 1
        assert parsed.tool_calls[0].id == "toolu_1"
        assert parsed.tool_calls[0].name == "list_projects"
        assert parsed.raw_assistant_message.vendor == "anthropic"
        assert parsed.raw_assistant_message.payload["content"] == response["content"]

    def test_parse_without_content_raises(self):
        """Test that a reply without content blocks is malformed."""
        with pytest.raises(MalformedResponseError):
            ClaudeProvider().parse_response({"type": "error"})

    def test_format_tool_result(self):
        """Test the tool_result block shape."""
        message = ClaudeProvider().format_tool_result("toolu_1", '{"ok": true}')
        assert message.payload == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "toolu_1", "content": '{"ok": true}'}],
        }

    def test_rejects_other_vendor_messages(self):
        """Test that a blob from another vendor family is refused."""
        messages = [*TRANSCRIPT, VendorMessage("openai", {"role": "tool", "content": "{}"})]
        with pytest.raises(ValueError):
            ClaudeProvider().build_request(messages, TOOLS, "claude-sonnet-4-6", "sk-test")


class TestOpenAIProvider:
    """Tests for the chat completions adapter."""

    def test_build_request_keeps_system_inline(self):
        """Test that system messages stay in the message list."""
        request = OpenAIProvider().build_request(TRANSCRIPT, TOOLS, "gpt-4.1", "sk-test")

        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.body["messages"][0] == {"role": "system", "content": "You are a task assistant."}
        assert request.body["tools"][0]["type"] == "function"
        assert request.body["tools"][0]["function"]["name"] == "update_task"

    def test_parse_decodes_arguments(self):
        """Test that JSON-encoded tool arguments are decoded."""
        response = {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_1",
                                "type": "function",
                                "function": {"name": "get_task", "arguments": '{"taskId": "t1"}'},
                            }
                        ],
                    }
                }
            ]
        }
        parsed = OpenAIProvider().parse_response(response)

        assert parsed.text is None
        assert parsed.tool_calls[0].id == "call_1"
        assert parsed.tool_calls[0].arguments == {"taskId": "t1"}
        assert parsed.raw_assistant_message.payload["tool_calls"] == response["choices"][0]["message"]["tool_calls"]

    def test_parse_without_choices_raises(self):
        """Test that a reply without choices is malformed."""
        with pytest.raises(MalformedResponseError):
            OpenAIProvider().parse_response({"choices": []})

    def test_parse_invalid_arguments_raises(self):
        """Test that undecodable tool arguments are malformed."""
        response = {
            "choices": [
                {"message": {"tool_calls": [{"id": "c", "function": {"name": "x", "arguments": "{not json"}}]}}
            ]
        }
        with pytest.raises(MalformedResponseError):
            OpenAIProvider().parse_response(response)

    @pytest.mark.parametrize(
        "tool_call",
        [
            {"id": "c", "function": "x"},
            {"id": "c", "function": {"name": "x", "arguments": "[1]"}},
            {"id": "c", "function": {"name": "x", "arguments": "\"text\""}},
            {"id": 7, "function": {"name": "x", "arguments": "{}"}},
            {"function": {"name": "x", "arguments": "{}"}},
            "not a call",
        ],
    )
    def test_parse_malformed_tool_call_raises(self, tool_call):
        """Test that odd tool call shapes surface as malformed responses."""
        response = {"choices": [{"message": {"role": "assistant", "tool_calls": [tool_call]}}]}
        with pytest.raises(MalformedResponseError):
            OpenAIProvider().parse_response(response)

    def test_parse_tool_calls_not_a_list_raises(self):
        """Test that a non-list tool_calls field is malformed."""
        response = {"choices": [{"message": {"role": "assistant", "tool_calls": {"id": "c"}}}]}
        with pytest.raises(MalformedResponseError):
            OpenAIProvider().parse_response(response)

    def test_format_tool_result(self):
        """Test the tool message shape."""
        message = OpenAIProvider().format_tool_result("call_1", "{}")
        assert message.payload == {"role": "tool", "tool_call_id": "call_1", "content": "{}"}

    def test_grok_shares_openai_family(self):
        """Test that Grok blobs are interchangeable with OpenAI blobs."""
        message = OpenAIProvider().format_tool_result("call_1", "{}")
        request = GrokProvider().build_request([*TRANSCRIPT, message], TOOLS, "grok-3", "xai-test")

        assert request.url == "https://api.x.ai/v1/chat/completions"
        assert request.body["messages"][-1]["tool_call_id"] == "call_1"


class TestGeminiProvider:
    """Tests for the generateContent adapter."""

    def test_convert_schema_rewrites_nullable_types(self):
        """Test that nullable unions become the nullable flag, recursively."""
        converted = convert_schema(TOOLS[0].parameters)

        assert converted["properties"]["dueDate"] == {"type": "string", "nullable": True}
        item = converted["properties"]["items"]["items"]["properties"]["title"]
        assert item == {"type": "string", "nullable": True}
        assert converted["required"] == ["taskId"]
        assert TOOLS[0].parameters["properties"]["dueDate"]["type"] == ["string", "null"]

    def test_build_request(self):
        """Test request shape with system instruction and tools."""
        request = GeminiProvider().build_request(TRANSCRIPT, TOOLS, "gemini-2.5-flash", "g-key")

        assert request.url.endswith("/v1beta/models/gemini-2.5-flash:generateContent")
        assert request.headers["x-goog-api-key"] == "g-key"
        assert request.body["system_instruction"] == {"parts": [{"text": "You are a task assistant."}]}
        assert request.body["contents"] == [{"role": "user", "parts": [{"text": "What projects do I have?"}]}]
        declarations = request.body["tools"][0]["function_declarations"]
        assert declarations[0]["parameters"]["properties"]["dueDate"]["nullable"] is True

    def test_parse_function_call_generates_ids(self):
        """Test that each function call gets a distinct synthesized id."""
        response = {
            "candidates": [
                {
                    "content": {
                        "role": "model",
                        "parts": [
                            {"functionCall": {"name": "list_projects", "args": {}}},
                            {"functionCall": {"name": "list_projects", "args": {}}},
                        ],
                    }
                }
            ]
        }
        parsed = GeminiProvider().parse_response(response)

        assert [call.name for call in parsed.tool_calls] == ["list_projects", "list_projects"]
        assert parsed.tool_calls[0].id != parsed.tool_calls[1].id

    def test_parse_skips_thought_parts(self):
        """Test that thinking parts are not returned as reply text."""
        response = {
            "candidates": [
                {"content": {"role": "model", "parts": [{"text": "pondering", "thought": True}, {"text": "Done."}]}}
            ]
        }
        assert GeminiProvider().parse_response(response).text == "Done."

    def test_parse_without_candidates_raises(self):
        """Test that a blocked prompt is malformed."""
        with pytest.raises(MalformedResponseError):
            GeminiProvider().parse_response({"promptFeedback": {"blockReason": "SAFETY"}})

    @pytest.mark.parametrize(
        "candidates",
        [
            ["not a candidate"],
            [{"content": "text"}],
            [{"content": {"parts": [{"functionCall": "x"}]}}],
            [{"content": {"parts": [{"functionCall": {"name": "x", "args": [1]}}]}}],
        ],
    )
    def test_parse_malformed_candidate_raises(self, candidates):
        """Test that odd candidate shapes surface as malformed responses."""
        with pytest.raises(MalformedResponseError):
            GeminiProvider().parse_response({"candidates": candidates})

    def test_tool_result_is_correlated_by_name(self):
        """Test that results carry the tool name and a decoded payload."""
        provider = GeminiProvider()
        message = provider.format_tool_result("list_projects", json.dumps([{"id": "p1"}]))

        assert provider.correlate_results_by_name is True
        response = message.payload["parts"][0]["functionResponse"]
        assert response == {"name": "list_projects", "response": {"result": [{"id": "p1"}]}}

    def test_raw_message_round_trips_into_next_request(self):
        """Test that the raw model turn is replayed unchanged."""
        provider = GeminiProvider()
        parsed = provider.parse_response(gemini_function_call("get_task", {"taskId": "t1"}))

        request = provider.build_request([*TRANSCRIPT, parsed.raw_assistant_message], TOOLS, "gemini-2.5-flash", "k")

        assert request.body["contents"][-1] == {
            "role": "model",
            "parts": [{"functionCall": {"name": "get_task", "args": {"taskId": "t1"}}}],
        }
