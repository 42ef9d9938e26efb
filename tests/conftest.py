"""Shared test fixtures for the Study Buddy test suite.

The _isolate_studybuddy_config fixture (autouse) prevents StudyBuddyConfig
from reading the user's real ~/.studybuddy/config.json during tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from studybuddy.api.app import create_api_app
from studybuddy.config.schema import StudyBuddyConfig
from studybuddy.providers.types import ChatProvider, LLMMessage, LLMResponse
from studybuddy.storage import Storage, create_session_factory

ALICE_TOKEN = "alice-token-123"
BOB_TOKEN = "bob-token-456"


class FakeClock:
    """Manually advanced clock for rate limiter tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(ChatProvider):
    """In-memory ChatProvider that records calls and replays canned output."""

    def __init__(
        self,
        deltas: tuple[str, ...] = ("Hello", " there"),
        content: str | None = '{"courses": []}',
        error: Exception | None = None,
    ) -> None:
        self.deltas = deltas
        self.content = content
        self.error = error
        self.chat_calls: list[dict[str, Any]] = []
        self.stream_calls: list[list[LLMMessage]] = []
        self.closed = False

    async def chat(
        self,
        messages: list[LLMMessage],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        self.chat_calls.append(
            {"messages": list(messages), "max_tokens": max_tokens, "response_format": response_format}
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content)

    async def stream_chat(
        self,
        messages: list[LLMMessage],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        self.stream_calls.append(list(messages))
        for delta in self.deltas:
            yield delta
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _isolate_studybuddy_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point StudyBuddyConfig's json_file at an empty temp file for every test."""
    empty_config = tmp_path / "studybuddy_test_config.json"
    empty_config.write_text("{}", encoding="utf-8")
    monkeypatch.setitem(StudyBuddyConfig.model_config, "json_file", empty_config)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    """Fresh in-memory SQLite database per test."""
    return create_session_factory("sqlite://")


@pytest.fixture
def storage(session_factory: sessionmaker[Session]) -> Iterator[Storage]:
    session = session_factory()
    try:
        yield Storage(session)
    finally:
        session.close()


@pytest.fixture
def provider_cls() -> type[FakeProvider]:
    return FakeProvider


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def config() -> StudyBuddyConfig:
    """Config with two API users and default rate limits."""
    return StudyBuddyConfig(
        gateway={"api": {"auth_tokens": {"alice": ALICE_TOKEN, "bob": BOB_TOKEN}}},
    )


@pytest.fixture
def make_app(
    session_factory: sessionmaker[Session], fake_provider: FakeProvider
) -> Callable[..., FastAPI]:
    """Build an app wired to the in-memory database and the fake provider.

    Keyword arguments are merged into the config (e.g. ``rate_limits=...``).
    """

    def _make(provider: ChatProvider | None = None, **overrides: Any) -> FastAPI:
        settings: dict[str, Any] = {
            "gateway": {"api": {"auth_tokens": {"alice": ALICE_TOKEN, "bob": BOB_TOKEN}}},
        }
        settings.update(overrides)
        return create_api_app(
            StudyBuddyConfig(**settings),
            provider=provider or fake_provider,
            session_factory=session_factory,
        )

    return _make
