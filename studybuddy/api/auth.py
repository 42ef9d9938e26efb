"""Bearer token authentication for the Study Buddy REST API.

Each configured user has their own token. A matching token identifies the
user for the rest of the request via ``request.state.user_id``, which is
also what the rate limiters count against.
All token comparisons use secrets.compare_digest to prevent timing attacks.
"""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Request, status


def resolve_user(request: Request) -> str | None:
    """Return the user id for the request's bearer token, or None."""
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        return None

    provided_token = auth_header[7:].encode("utf-8")
    tokens: dict[str, str] = getattr(request.app.state, "auth_tokens", {}) or {}

    matched: str | None = None
    # Compare against every token so timing doesn't reveal which users exist
    for user_id, expected_token in tokens.items():
        if expected_token and secrets.compare_digest(
            provided_token, expected_token.encode("utf-8")
        ):
            matched = user_id
    return matched


def require_user(request: Request) -> str:
    """FastAPI dependency that validates the Bearer token.

    Returns the authenticated user id and records it on request.state.
    Raises 401 with a generic message on any failure.
    """
    user_id = resolve_user(request)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user_id = user_id
    return user_id
