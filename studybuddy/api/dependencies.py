"""Shared FastAPI dependencies injected into route handlers.

All dependencies pull from app.state which is populated during the
lifespan startup in app.py. Rate limiting runs as a dependency placed
after authentication, so authenticated requests are counted per user.
"""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from loguru import logger

from studybuddy.api.rate_limit import FixedWindowRateLimiter, RateLimitExceeded
from studybuddy.config.schema import StudyBuddyConfig
from studybuddy.providers.types import ChatProvider
from studybuddy.storage.repository import Storage


def get_config(request: Request) -> StudyBuddyConfig:
    """Retrieve the StudyBuddyConfig from app.state."""
    return request.app.state.config


def get_provider(request: Request) -> ChatProvider:
    """Retrieve the chat-completion provider from app.state."""
    return request.app.state.provider


def get_storage(request: Request) -> Generator[Storage, None, None]:
    """Open a database session for the duration of the request."""
    session = request.app.state.session_factory()
    try:
        yield Storage(session)
    finally:
        session.close()


class RateLimitGuard:
    """Dependency that charges one request against a limiter on app.state.

    Admitted requests carry their decision on ``request.state.rate_limit``
    so RateLimitHeadersMiddleware can emit the quota headers. Rejected
    requests raise RateLimitExceeded before the route handler runs.
    """

    def __init__(self, state_attr: str) -> None:
        self.state_attr = state_attr

    def __call__(self, request: Request) -> None:
        limiter: FixedWindowRateLimiter = getattr(request.app.state, self.state_attr)
        decision = limiter.check_request(request)
        request.state.rate_limit = decision

        if not decision.allowed:
            logger.warning(
                "Rate limit '{}' exceeded on {} {} (retry in {}s)",
                limiter.name,
                request.method,
                request.url.path,
                decision.retry_after,
            )
            raise RateLimitExceeded(decision)


chat_rate_limit = RateLimitGuard("chat_rate_limiter")
parse_rate_limit = RateLimitGuard("parse_rate_limiter")
