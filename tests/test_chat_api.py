"""
End-to-end tests for the chat HTTP API with faked providers.
"""

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from salon_chat.api import main
from salon_chat.api.chat import get_orchestrator
from salon_chat.core import config
from salon_chat.core.errors import DependencyError
from salon_chat.vector import VectorRecord


@pytest.fixture
def client(orchestrator):
    """Test client wired to the fixture orchestrator."""
    main.app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


def _chat(client, message, **extra):
    body = {"message": message}
    body.update(extra)
    return client.post("/chat", json=body)


class TestSendMessage:

    def test_new_conversation(self, client):
        response = _chat(client, "Hi, what services do you offer?")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Happy to help!"
        assert data["isNewSession"] is True
        assert data["sessionId"]
        assert data["model"] == config.DEFAULT_MODEL

    def test_each_new_conversation_gets_distinct_id(self, client):
        ids = {_chat(client, "Hello").json()["sessionId"] for _ in range(3)}
        assert len(ids) == 3

    def test_continuation_keeps_session(self, client):
        session_id = _chat(client, "Do you do balayage?").json()["sessionId"]

        response = _chat(client, "How much?", sessionId=session_id)

        assert response.status_code == 200
        assert response.json()["isNewSession"] is False
        assert response.json()["sessionId"] == session_id

        history = client.get(f"/chat/{session_id}").json()
        assert [(m["role"], m["content"]) for m in history["messages"]] == [
            ("user", "Do you do balayage?"),
            ("assistant", "Happy to help!"),
            ("user", "How much?"),
            ("assistant", "Happy to help!"),
        ]

    @pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}, {"message": None}])
    def test_missing_or_blank_message_is_400(self, client, body, completion):
        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert response.json()["error_type"] == "VALIDATION_ERROR"
        assert "timestamp" in response.json()
        assert completion.calls == []

    def test_malformed_body_is_400(self, client):
        response = client.post("/chat", json={"message": ["not", "a", "string"]})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "message"

    def test_unpaired_surrogate_in_message_still_replies(self, client, completion):
        response = client.post(
            "/chat",
            content='{"message": "hi \\ud800 there"}',
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Happy to help!"
        assert completion.calls[-1]["messages"][-1]["content"] == "hi \ud800 there"

    def test_all_dependencies_down_still_replies(self, client, completion, embedder, vector_store):
        completion.failing_models = {"*"}
        with patch.object(embedder, "embed_text", side_effect=RuntimeError("offline")), \
             patch.object(vector_store, "search", side_effect=RuntimeError("offline")):
            response = _chat(client, "Anyone there?")

        assert response.status_code == 200
        assert response.json()["message"] == config.FALLBACK_REPLY

    def test_non_default_model_failure_retries_default(self, client, completion):
        completion.failing_models = {"flaky:3b"}

        response = _chat(client, "Hello", model="flaky:3b")

        assert response.status_code == 200
        assert response.json()["message"] == "Happy to help!"
        assert response.json()["model"] == config.DEFAULT_MODEL

    def test_sources_list_retrieved_services(self, client, ingested):
        response = _chat(client, "Tell me about keratin smoothing treatment")

        assert "Keratin Smoothing Treatment" in response.json()["sources"]

    def test_dangling_vector_id_is_ignored(self, client, ingested, vector_store, embedder, completion):
        vector_store.upsert(VectorRecord(id="deleted-service", vector=embedder.embed_text("balayage")))

        response = _chat(client, "balayage")

        assert response.status_code == 200
        assert "deleted-service" not in completion.calls[-1]["messages"][0]["content"]

    def test_routes_are_mounted_under_api_prefix(self, client):
        response = client.post("/api/chat", json={"message": "Hello"})
        assert response.status_code == 200


class TestHistory:

    def test_unknown_session_is_404(self, client):
        response = client.get("/chat/no-such-session")

        assert response.status_code == 404
        assert response.json()["error_type"] == "NOT_FOUND"
        assert response.json()["details"]["session_id"] == "no-such-session"

    def test_history_has_timestamps(self, client):
        session_id = _chat(client, "Hello").json()["sessionId"]

        data = client.get(f"/chat/{session_id}").json()

        assert data["sessionId"] == session_id
        assert data["createdAt"] <= data["updatedAt"]
        stamps = [m["timestamp"] for m in data["messages"]]
        assert stamps == sorted(stamps)

    def test_clear_then_read_is_empty(self, client):
        session_id = _chat(client, "Hello").json()["sessionId"]

        response = client.delete(f"/chat/{session_id}")
        assert response.status_code == 200
        assert response.json() == {"sessionId": session_id, "status": "cleared"}

        history = client.get(f"/chat/{session_id}")
        assert history.status_code == 200
        assert history.json()["messages"] == []

    def test_cleared_session_can_continue(self, client):
        session_id = _chat(client, "First").json()["sessionId"]
        client.delete(f"/chat/{session_id}")

        response = _chat(client, "Second", sessionId=session_id)

        assert response.json()["isNewSession"] is False
        messages = client.get(f"/chat/{session_id}").json()["messages"]
        assert [m["content"] for m in messages] == ["Second", "Happy to help!"]

    def test_clear_unknown_session_is_ok(self, client):
        response = client.delete("/chat/never-existed")
        assert response.status_code == 200
        assert response.json()["status"] == "cleared"


class TestModelSelection:

    def test_put_model_then_chat_uses_it(self, client, completion):
        response = client.put("/model", json={"model": "mistral:7b"})
        assert response.status_code == 200
        assert response.json() == {"model": "mistral:7b"}

        _chat(client, "Hello")

        assert completion.calls[-1]["model"] == "mistral:7b"
        assert client.get("/model").json() == {"model": "mistral:7b"}

    def test_get_model_defaults(self, client):
        assert client.get("/model").json() == {"model": config.DEFAULT_MODEL}

    @pytest.mark.parametrize("body", [{"model": ""}, {"model": "  "}, {}])
    def test_blank_model_is_400(self, client, body):
        response = client.put("/model", json=body)
        assert response.status_code == 400

    def test_list_models(self, client):
        data = client.get("/models").json()
        assert data == {"models": ["llama3:8b-instruct", "mistral:7b"], "default": config.DEFAULT_MODEL}

    def test_list_models_falls_back_to_config(self, client, completion):
        with patch.object(completion, "list_models", side_effect=DependencyError("down", dependency="completion")):
            data = client.get("/models").json()

        assert data["models"] == list(config.AVAILABLE_MODELS)


class TestServiceEndpoints:

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "ok"
        assert data["version"] == config.VERSION
        assert "timestamp" in data

    @pytest.mark.parametrize("path", ["/version", "/api/version"])
    def test_version(self, client, path):
        assert client.get(path).json() == {"name": "salon-chat", "version": config.VERSION}
