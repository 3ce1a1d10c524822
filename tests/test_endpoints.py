"""Tests for API endpoints."""

import pytest
from fastapi.testclient import TestClient

from tickassist.config import Settings
from tickassist.errors import LLMAPIError, TickTickAPIError
from tickassist.main import app
from tickassist.services.conversation import ConversationService, get_conversation_service
from tickassist.services.tool_loop import ToolLoop
from tests.fakes import ScriptedTransport, claude_text, claude_tool_use


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def service(catalog, transport):
    settings = Settings(api_keys={"claude": "sk-ant"}, ticktick_access_token="oauth-token")
    return ConversationService(settings, ToolLoop(catalog, transport))


@pytest.fixture
def client(service):
    app.dependency_overrides[get_conversation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self, client):
        """Test that health check returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_response_structure(self, client):
        """Test that health check returns expected JSON structure."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data

    def test_health_check_content_type(self, client):
        """Test that health check returns JSON content type."""
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json"


class TestToolsEndpoint:
    """Tests for the tool listing endpoint."""

    def test_default_level(self, client):
        """Test that the base catalog is listed by default."""
        data = client.get("/tools").json()

        assert data["feature_level"] == "v1"
        assert len(data["tools"]) == 14

    def test_extended_level(self, client):
        """Test that the extended catalog adds the session tools."""
        data = client.get("/tools", params={"feature_level": "v2"}).json()

        names = [tool["name"] for tool in data["tools"]]
        assert len(names) == 23
        assert "batch_sync" in names

    def test_invalid_level(self, client):
        """Test that an unknown feature level is rejected."""
        response = client.get("/tools", params={"feature_level": "v3"})
        assert response.status_code == 422


class TestProvidersEndpoint:
    """Tests for the provider listing endpoint."""

    def test_lists_every_provider(self, client):
        """Test that providers report their models and configuration."""
        data = {provider["name"]: provider for provider in client.get("/providers").json()}

        assert set(data) == {"claude", "openai", "grok", "gemini"}
        assert data["claude"]["configured"] is True
        assert data["claude"]["active"] is True
        assert data["claude"]["default_model"] in data["claude"]["models"]
        assert data["gemini"]["configured"] is False
        assert data["gemini"]["active"] is False


class TestConversationEndpoint:
    """Tests for the conversation endpoint."""

    def test_conversation_returns_reply(self, client, transport):
        """Test a full turn through the API."""
        transport.responses += [
            claude_tool_use(("toolu_1", "list_projects", {})),
            claude_text("You have Inbox and Work."),
        ]

        response = client.post("/conversation", json={"message": "What projects do I have?"})

        assert response.status_code == 200
        data = response.json()
        assert data["response"] == "You have Inbox and Work."
        assert data["state"] == "done"
        assert len(data["conversation_id"]) > 0

    def test_conversation_continues(self, client, transport):
        """Test that a returned id continues the same conversation."""
        transport.responses += [claude_text("Hi!"), claude_text("Still here.")]

        first = client.post("/conversation", json={"message": "Hello"}).json()
        second = client.post(
            "/conversation", json={"message": "Are you there?", "conversation_id": first["conversation_id"]}
        ).json()

        assert second["conversation_id"] == first["conversation_id"]

    def test_created_conversation(self, client, transport):
        """Test starting an empty conversation before the first message."""
        transport.responses.append(claude_text("Hi!"))

        conversation_id = client.post("/conversations").json()["conversation_id"]
        response = client.post("/conversation", json={"message": "Hello", "conversation_id": conversation_id})

        assert response.json()["conversation_id"] == conversation_id

    def test_unknown_conversation(self, client):
        """Test that an unknown id is a bad request."""
        response = client.post("/conversation", json={"message": "Hello", "conversation_id": "missing"})
        assert response.status_code == 400

    def test_unknown_provider(self, client):
        """Test that an unconfigured provider is a bad request."""
        response = client.post("/conversation", json={"message": "Hello", "provider": "gemini"})
        assert response.status_code == 400

    def test_message_too_long(self, client, service):
        """Test that the token limit is enforced."""
        service.tokenizer = None
        service.settings.max_message_tokens = 10

        response = client.post("/conversation", json={"message": "a" * 100})

        assert response.status_code == 400
        assert "Message exceeds token limit" in response.json()["detail"]

    def test_model_failure(self, client, transport):
        """Test that vendor errors map to a bad gateway."""
        transport.responses.append(LLMAPIError(401, "invalid x-api-key"))

        response = client.post("/conversation", json={"message": "Hello"})

        assert response.status_code == 502
        assert "invalid x-api-key" in response.json()["detail"]

    def test_sign_in_failure(self, client, service, ticktick_v2):
        """Test that a rejected TickTick sign-in maps to a bad gateway."""
        service.session_sign_in = ticktick_v2
        service.settings.feature_level = "v2"
        service.settings.ticktick_username = "me@example.com"
        service.settings.ticktick_password = "wrong"
        ticktick_v2.sign_in_error = TickTickAPIError("Failed to sign in: 401", 401)

        response = client.post("/conversation", json={"message": "Hello"})

        assert response.status_code == 502
        assert "Failed to sign in" in response.json()["detail"]

    def test_missing_message(self, client):
        """Test that the message field is required."""
        response = client.post("/conversation", json={})
        assert response.status_code == 422


class TestConversationHistory:
    """Tests for reading and deleting conversations."""

    def test_history(self, client, transport):
        """Test that stored messages include tool calls."""
        transport.responses += [
            claude_tool_use(("toolu_1", "list_projects", {})),
            claude_text("Two projects."),
        ]
        conversation_id = client.post("/conversation", json={"message": "Projects?"}).json()["conversation_id"]

        data = client.get(f"/conversation/{conversation_id}").json()

        assert data["title"] == "Projects?"
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
        assert data["messages"][1]["tool_calls"][0]["name"] == "list_projects"

    def test_list(self, client, transport):
        """Test that the list shows the most recent conversation first."""
        first = client.post("/conversations").json()["conversation_id"]
        transport.responses.append(claude_text("Hi!"))
        second = client.post("/conversation", json={"message": "Hello"}).json()["conversation_id"]

        data = client.get("/conversations").json()

        assert [c["conversation_id"] for c in data] == [second, first]
        assert data[0]["title"] == "Hello"
        assert data[0]["message_count"] == 2
        assert data[1]["message_count"] == 0

    def test_history_not_found(self, client):
        """Test that an unknown conversation is a 404."""
        assert client.get("/conversation/missing").status_code == 404

    def test_delete(self, client):
        """Test deleting a conversation."""
        conversation_id = client.post("/conversations").json()["conversation_id"]

        assert client.delete(f"/conversation/{conversation_id}").json() == {"deleted": True}
        assert client.get(f"/conversation/{conversation_id}").status_code == 404
        assert client.delete(f"/conversation/{conversation_id}").status_code == 404


class TestTurnControlEndpoints:
    """Tests for confirmation and cancellation endpoints on idle conversations."""

    def test_no_pending_confirmation(self, client):
        """Test that an idle conversation has nothing to confirm."""
        conversation_id = client.post("/conversations").json()["conversation_id"]
        assert client.get(f"/conversation/{conversation_id}/confirmation").status_code == 404

    def test_resolve_without_pending(self, client):
        """Test that answering nothing is a 404."""
        conversation_id = client.post("/conversations").json()["conversation_id"]

        response = client.post(
            f"/conversation/{conversation_id}/confirmation", json={"tool_call_id": "toolu_1", "confirmed": True}
        )

        assert response.status_code == 404

    def test_cancel_idle(self, client):
        """Test that stopping an idle conversation reports nothing was running."""
        conversation_id = client.post("/conversations").json()["conversation_id"]
        assert client.post(f"/conversation/{conversation_id}/cancel").json() == {"cancelled": False}

    def test_cancel_unknown(self, client):
        """Test that stopping an unknown conversation is a 404."""
        assert client.post("/conversation/missing/cancel").status_code == 404
