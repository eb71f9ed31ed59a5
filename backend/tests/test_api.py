"""
API tests for the HTTP surface.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from mindease.api.deps import ClientDisconnected, get_lifecycle, run_bound_to_request
from mindease.core import PersistenceError
from mindease.llm import CHAT_FALLBACK_TEXT, LLMResponse, TransientProviderError
from mindease.main import app

from conftest import BASE_TIME, make_ended_session


@pytest.fixture
def client(lifecycle):
    """Test client wired to a lifecycle over a temporary store."""
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    yield TestClient(app)
    app.dependency_overrides.clear()


def _new_session(client, user_id="u1") -> str:
    response = client.post("/api/sessions", json={"userId": user_id})
    assert response.status_code == 200
    return response.json()["sessionId"]


class TestSessionEndpoints:
    """Tests for /api/sessions."""

    def test_create_session(self, client):
        response = client.post("/api/sessions", json={"userId": "u1"})

        assert response.status_code == 200
        assert set(response.json()) == {"sessionId"}

    def test_create_session_missing_user(self, client):
        response = client.post("/api/sessions", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "userId" in body["error"]

    def test_get_session(self, client):
        session_id = _new_session(client)
        client.post("/api/chat", json={"message": "hi", "sessionId": session_id, "userId": "u1"})

        response = client.get(f"/api/sessions/{session_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["sessionId"] == session_id
        assert data["status"] == "active"
        assert data["pending"] is False
        assert [m["sender"] for m in data["messages"]] == ["user", "bot"]

    def test_end_and_read_summary(self, client, mock_provider):
        session_id = _new_session(client)
        client.post("/api/chat", json={"message": "rough day", "sessionId": session_id, "userId": "u1"})
        mock_provider.chat_completion.return_value = LLMResponse(content="- Rough day", model="test")

        response = client.post(f"/api/sessions/{session_id}/summary")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "summary": "- Rough day",
            "relatedSessions": 0,
            "sessionId": session_id,
        }

        response = client.get(f"/api/sessions/{session_id}/summary")
        data = response.json()
        assert data["success"] is True
        assert data["summary"] == "- Rough day"
        assert data["status"] == "ended"
        assert data["endedAt"] is not None

    def test_summary_counts_related_sessions(self, client, store):
        asyncio.run(store.create(make_ended_session("u1", BASE_TIME)))
        session_id = _new_session(client)

        response = client.post(f"/api/sessions/{session_id}/summary")

        assert response.json()["relatedSessions"] == 1

    def test_unknown_session_summary(self, client):
        response = client.get("/api/sessions/unknown/summary")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Session not found"}

    @pytest.mark.parametrize("path", ["/api/sessions/abc%00def/summary", "/api/sessions/abc%00def"])
    def test_unresolvable_session_id_is_404(self, client, path):
        response = client.get(path)

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_delete_sessions(self, client):
        first = _new_session(client)
        _new_session(client)
        other = _new_session(client, user_id="u2")

        response = client.post("/api/sessions/delete", json={"userId": "u1"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "deletedCount": 2}
        assert client.get(f"/api/sessions/{first}").status_code == 404
        assert client.get(f"/api/sessions/{other}").status_code == 200

    def test_store_failure_is_500(self, client, store):
        with patch.object(store, "create", side_effect=PersistenceError("disk full")):
            response = client.post("/api/sessions", json={"userId": "u1"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to access session store"
        # Outside production the underlying reason is attached
        assert body["details"] == "disk full"


class TestChatEndpoint:
    """Tests for /api/chat."""

    def test_chat(self, client):
        session_id = _new_session(client)

        response = client.post(
            "/api/chat",
            json={"message": "I feel anxious", "sessionId": session_id, "userId": "u1"}
        )

        assert response.status_code == 200
        assert response.json() == {"message": "That sounds hard. Want to try a breathing exercise?"}
        assert "X-Completion-Fallback" not in response.headers

    @pytest.mark.parametrize("payload", [
        {"sessionId": "abc", "userId": "u1"},
        {"message": "hi", "userId": "u1"},
        {"message": "hi", "sessionId": "abc"},
    ])
    def test_missing_fields(self, client, payload):
        response = client.post("/api/chat", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_blank_message(self, client):
        session_id = _new_session(client)

        response = client.post("/api/chat", json={"message": "  ", "sessionId": session_id, "userId": "u1"})

        assert response.status_code == 400
        assert response.json()["error"] == "message is required"

    def test_unknown_session(self, client):
        response = client.post("/api/chat", json={"message": "hi", "sessionId": "nope", "userId": "u1"})
        assert response.status_code == 404

    def test_ended_session(self, client):
        session_id = _new_session(client)
        client.post(f"/api/sessions/{session_id}/summary")

        response = client.post("/api/chat", json={"message": "hi", "sessionId": session_id, "userId": "u1"})

        assert response.status_code == 409
        assert response.json()["error"] == "Session has already ended"

    def test_fallback_reply_is_flagged(self, client, mock_provider):
        mock_provider.chat_completion.side_effect = TransientProviderError("upstream 503", status_code=503)
        session_id = _new_session(client)

        response = client.post("/api/chat", json={"message": "hi", "sessionId": session_id, "userId": "u1"})

        assert response.status_code == 200
        assert response.json() == {"message": CHAT_FALLBACK_TEXT}
        assert response.headers["X-Completion-Fallback"] == "transient"
        assert mock_provider.chat_completion.await_count == 3


class TestQuickSummaryEndpoint:
    """Tests for /api/session-summary."""

    def test_quick_summary(self, client, mock_provider, store):
        mock_provider.chat_completion.return_value = LLMResponse(content="Sleep trouble", model="test")

        response = client.post("/api/session-summary", json={"messages": [
            {"text": "I can't sleep", "sender": "user"},
            {"text": "How long has this been going on?", "sender": "bot"},
        ]})

        assert response.status_code == 200
        assert response.json() == {"success": True, "summary": "Sleep trouble"}
        assert list(store.sessions_dir.glob("*.json")) == []

    @pytest.mark.parametrize("payload", [{}, {"messages": "hello"}, {"messages": [1, 2]}])
    def test_invalid_messages(self, client, payload):
        response = client.post("/api/session-summary", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestAppEndpoints:
    """Tests for root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["llm_configured"] is False


class TestRequestBinding:
    """Tests for cancelling work when the client goes away."""

    @pytest.mark.asyncio
    async def test_result_returned(self):
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        async def work():
            return "done"

        assert await run_bound_to_request(request, work(), poll_interval=0.01) == "done"

    @pytest.mark.asyncio
    async def test_disconnect_cancels_work(self):
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=True)
        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(ClientDisconnected):
            await run_bound_to_request(request, work(), poll_interval=0.01)

        await asyncio.wait_for(cancelled.wait(), timeout=1)
