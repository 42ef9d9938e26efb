"""Errors raised by chat-completion providers.

Upstream HTTP failures are translated into a small hierarchy so route
handlers can catch ProviderError once and answer 502 (or an SSE error
frame), while the log line still says what went wrong upstream and what
the operator should change.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for all provider errors."""

    summary = "The provider request failed."
    hint = ""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        if hint is not None:
            self.hint = hint


class AuthenticationError(ProviderError):
    summary = "Authentication failed: the API key is invalid, missing or lacks permission."
    hint = "Set ai.api_key in config.json or STUDYBUDDY_AI__API_KEY."


class InsufficientQuotaError(ProviderError):
    summary = "The provider account is out of credits or quota."
    hint = "Add credits on the provider's billing page."


class ModelNotFoundError(ProviderError):
    summary = "The configured model does not exist on this provider."
    hint = "Set ai.model to a model the provider serves."


class RateLimitError(ProviderError):
    summary = "The provider is rate limiting this API key."
    hint = "Wait and retry, or lower the chat/parse limits in rate_limits."


class ProviderConnectionError(ProviderError):
    summary = "Could not reach the provider."
    hint = "Check that ai.api_base is correct and the service is reachable."


class ServerError(ProviderError):
    summary = "The provider returned a server error."
    hint = "Usually transient; try again in a moment."


_ERRORS_BY_STATUS: dict[int, type[ProviderError]] = {
    401: AuthenticationError,
    402: InsufficientQuotaError,
    403: AuthenticationError,
    404: ModelNotFoundError,
    429: RateLimitError,
}


def error_class_for_status(status_code: int) -> type[ProviderError]:
    """Pick the ProviderError subclass for an upstream HTTP status."""
    if status_code >= 500:
        return ServerError
    return _ERRORS_BY_STATUS.get(status_code, ProviderError)


def raise_for_status(
    status_code: int,
    provider_name: str,
    api_base: str,
    model: str,
    raw_message: str = "",
) -> None:
    """Raise the matching ProviderError for a non-2xx upstream status."""
    if 200 <= status_code < 300:
        return

    exc_class = error_class_for_status(status_code)
    summary = exc_class.summary
    if exc_class is ProviderError:
        summary = f"Unexpected HTTP {status_code} from provider."

    lines = [
        f"[{provider_name}] {summary}",
        f"  endpoint: {api_base} (HTTP {status_code})",
        f"  model:    {model}",
    ]
    if raw_message:
        lines.append("  upstream: " + " ".join(raw_message[:200].split()))

    raise exc_class("\n".join(lines), provider=provider_name, status_code=status_code)
