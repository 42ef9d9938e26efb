"""Tests for the SSE study-chat endpoint."""

from __future__ import annotations

import asyncio
import json

from fastapi.testclient import TestClient

from studybuddy.providers.exceptions import ServerError
from studybuddy.storage.repository import Storage

ALICE = {"Authorization": "Bearer alice-token-123"}


def _frames(body: str) -> list[dict]:
    """Decode the JSON payload of every ``data:`` line in an SSE body."""
    frames = []
    for line in body.splitlines():
        if line.startswith("data:"):
            frames.append(json.loads(line[5:].strip()))
    return frames


def _send(client: TestClient, content: str = "Explain recursion"):
    return client.post("/api/study-chats/message", json={"content": content}, headers=ALICE)


class TestStreamEndpointContentType:
    def test_stream_endpoint_returns_event_stream(self, make_app):
        with TestClient(make_app()) as client:
            response = _send(client)
        assert response.status_code == 200
        assert "text/event-stream" in response.headers["content-type"]
        assert response.headers["X-RateLimit-Limit"] == "15"
        assert response.headers["X-RateLimit-Remaining"] == "14"


class TestStreamEndpointAuth:
    def test_stream_requires_auth(self, make_app, fake_provider):
        with TestClient(make_app()) as client:
            response = client.post("/api/study-chats/message", json={"content": "Hello"})
        assert response.status_code == 401
        assert fake_provider.stream_calls == []

    def test_stream_rejects_bad_token(self, make_app):
        with TestClient(make_app()) as client:
            response = client.post(
                "/api/study-chats/message",
                json={"content": "Hello"},
                headers={"Authorization": "Bearer wrong-token"},
            )
        assert response.status_code == 401

    def test_empty_message_rejected(self, make_app):
        with TestClient(make_app()) as client:
            response = _send(client, "")
        assert response.status_code == 422


class TestStreamEventStructure:
    def test_deltas_then_done(self, make_app):
        with TestClient(make_app()) as client:
            response = _send(client)

        assert _frames(response.text) == [
            {"content": "Hello"},
            {"content": " there"},
            {"done": True},
        ]

    def test_conversation_is_saved(self, make_app):
        with TestClient(make_app()) as client:
            _send(client, "What is a monad?")
            response = client.get("/api/study-chats/current", headers=ALICE)

        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "What is a monad?"),
            ("assistant", "Hello there"),
        ]

    def test_history_and_context_sent_to_provider(self, make_app, fake_provider):
        with TestClient(make_app()) as client:
            client.post(
                "/api/profile",
                json={"university": "MIT", "major": "Physics"},
                headers=ALICE,
            )
            _send(client, "first")
            _send(client, "second")

        messages = fake_provider.stream_calls[1]
        assert messages[0].role == "system"
        assert "University: MIT" in messages[0].content
        assert "STEM student" in messages[0].content
        assert [(m.role, m.content) for m in messages[1:]] == [
            ("user", "first"),
            ("assistant", "Hello there"),
            ("user", "second"),
        ]

    def test_error_event_on_provider_failure(self, make_app, provider_cls):
        provider = provider_cls(deltas=(), error=ServerError("upstream down"))
        with TestClient(make_app(provider=provider)) as client:
            response = _send(client)
            current = client.get("/api/study-chats/current", headers=ALICE).json()

        assert response.status_code == 200
        assert _frames(response.text) == [{"error": "Failed to send message"}]
        assert [m["role"] for m in current["messages"]] == ["user"]


def _on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class TestStreamStorageThreads:
    def test_storage_calls_run_in_worker_threads(self, make_app, monkeypatch):
        calls: list[tuple[str, bool]] = []

        for name in ("get_current_chat", "add_chat_message", "get_profile", "list_courses"):
            original = getattr(Storage, name)

            def spy(self, *args, _original=original, _name=name, **kwargs):
                calls.append((_name, _on_event_loop()))
                return _original(self, *args, **kwargs)

            monkeypatch.setattr(Storage, name, spy)

        with TestClient(make_app()) as client:
            response = _send(client)

        assert _frames(response.text)[-1] == {"done": True}
        assert [name for name, _ in calls].count("add_chat_message") == 2
        assert {name for name, _ in calls} == {
            "get_current_chat",
            "add_chat_message",
            "get_profile",
            "list_courses",
        }
        assert not any(on_loop for _, on_loop in calls)
