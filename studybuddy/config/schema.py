"""Pydantic configuration models for Study Buddy.

All config is loaded from ~/.studybuddy/config.json and can be overridden
via STUDYBUDDY_ prefixed environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_serializer
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.main import JsonConfigSettingsSource


class APIConfig(BaseModel):
    """REST API security settings.

    auth_tokens maps a user id to that user's bearer token. The user id
    becomes the subject every profile, course, task and chat is stored
    under, and the key the rate limiters count against.
    """

    auth_tokens: dict[str, SecretStr] = Field(default_factory=dict)
    cors_allowed_origins: list[str] = Field(default_factory=list)
    max_request_body_bytes: int = Field(default=1_048_576, ge=1024, le=52_428_800)

    @field_serializer("auth_tokens", when_used="json")
    @staticmethod
    def _serialize_auth_tokens(v: dict[str, SecretStr]) -> dict[str, str]:
        return {user_id: token.get_secret_value() for user_id, token in v.items()}


class GatewayConfig(BaseModel):
    """Network settings for the API server."""

    host: str = "127.0.0.1"
    port: int = Field(default=5000, ge=1024, le=65535)
    api: APIConfig = Field(default_factory=APIConfig)


class RateLimitRule(BaseModel):
    """A single fixed-window limit: max_requests per window_seconds."""

    window_seconds: float = Field(default=60, gt=0)
    max_requests: int = Field(default=10, ge=0)
    message: str = "Too many requests. Please wait before trying again."


def _chat_rule() -> RateLimitRule:
    return RateLimitRule(
        window_seconds=60,
        max_requests=15,
        message="You've reached the message limit. Please wait a moment before sending more.",
    )


def _parse_rule() -> RateLimitRule:
    return RateLimitRule(
        window_seconds=60,
        max_requests=5,
        message="Too many parse requests. Please wait before trying again.",
    )


class RateLimitConfig(BaseModel):
    """Limits for the two expensive endpoints (AI chat and schedule parsing)."""

    chat: RateLimitRule = Field(default_factory=_chat_rule)
    parse: RateLimitRule = Field(default_factory=_parse_rule)
    sweep_interval_seconds: float = Field(
        default=300,
        gt=0,
        description="Seconds between sweeps that drop expired counters from memory.",
    )


class AIConfig(BaseModel):
    """Chat-completion provider used for the study assistant and schedule parser."""

    api_base: str = "https://api.openai.com/v1"
    api_key: SecretStr = SecretStr("")
    model: str = "gpt-4o-mini"
    max_completion_tokens: int = Field(default=2048, ge=1, le=200_000)

    @field_serializer("api_key", when_used="json")
    @staticmethod
    def _serialize_api_key(v: SecretStr) -> str:
        return v.get_secret_value()


class DatabaseConfig(BaseModel):
    """SQLAlchemy database URL. SQLite paths may use ~ for the home directory."""

    url: str = "sqlite:///~/.studybuddy/studybuddy.db"


class StudyBuddyConfig(BaseSettings):
    """Root configuration for the Study Buddy backend.

    Loaded from ~/.studybuddy/config.json with STUDYBUDDY_ env var overrides.
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDYBUDDY_",
        env_nested_delimiter="__",
        json_file=Path("~/.studybuddy/config.json").expanduser(),
        json_file_encoding="utf-8",
        extra="ignore",
    )

    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Enable JSON file loading alongside env vars and init kwargs."""
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls),
        )
