"""Tests for the configuration system."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from studybuddy.config import load_config, save_config
from studybuddy.config.schema import (
    APIConfig,
    GatewayConfig,
    RateLimitConfig,
    RateLimitRule,
    StudyBuddyConfig,
)


def test_gateway_defaults():
    gw = GatewayConfig()
    assert gw.host == "127.0.0.1"
    assert gw.port == 5000
    assert isinstance(gw.api, APIConfig)
    assert gw.api.auth_tokens == {}


def test_rate_limit_defaults():
    limits = RateLimitConfig()
    assert (limits.chat.max_requests, limits.chat.window_seconds) == (15, 60)
    assert (limits.parse.max_requests, limits.parse.window_seconds) == (5, 60)
    assert limits.chat.message.startswith("You've reached the message limit")
    assert limits.sweep_interval_seconds == 300


def test_negative_max_requests_rejected():
    with pytest.raises(ValidationError):
        RateLimitRule(max_requests=-1)


def test_zero_window_rejected():
    with pytest.raises(ValidationError):
        RateLimitRule(window_seconds=0)


def test_auth_tokens_are_secret():
    api = APIConfig(auth_tokens={"alice": "s3cret"})
    assert "s3cret" not in repr(api)
    assert api.auth_tokens["alice"].get_secret_value() == "s3cret"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STUDYBUDDY_AI__MODEL", "gpt-4.1")
    monkeypatch.setenv("STUDYBUDDY_RATE_LIMITS__PARSE__MAX_REQUESTS", "2")
    config = StudyBuddyConfig()
    assert config.ai.model == "gpt-4.1"
    assert config.rate_limits.parse.max_requests == 2


def test_load_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config.database.url == "sqlite:///~/.studybuddy/studybuddy.db"


def test_save_and_load_roundtrip_keeps_secrets(tmp_path):
    path = tmp_path / "config.json"
    config = StudyBuddyConfig(
        gateway={"port": 8080, "api": {"auth_tokens": {"alice": "tok"}}},
        rate_limits={"chat": {"max_requests": 30}},
    )
    save_config(config, path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["gateway"]["api"]["auth_tokens"] == {"alice": "tok"}

    loaded = load_config(path)
    assert loaded.gateway.port == 8080
    assert loaded.gateway.api.auth_tokens["alice"].get_secret_value() == "tok"
    assert loaded.rate_limits.chat.max_requests == 30
