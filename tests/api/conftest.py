"""Fixtures for the API route tests."""

from __future__ import annotations

import pytest
from sse_starlette.sse import AppStatus


@pytest.fixture(autouse=True)
def _reset_sse_app_status() -> None:
    """Drop sse-starlette's exit event so each TestClient loop gets a fresh one."""
    AppStatus.should_exit_event = None
