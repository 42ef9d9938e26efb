"""Provider for any endpoint that speaks the OpenAI chat completions protocol.

Works against OpenAI itself and against compatible gateways (Azure-style
proxies, OpenRouter, local servers) by changing ``ai.api_base``.
Streaming replies are relayed delta by delta with no buffering.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import asdict
from typing import Any

import httpx
from loguru import logger

from studybuddy.providers.exceptions import ProviderConnectionError, ProviderError, raise_for_status
from studybuddy.providers.types import ChatProvider, LLMMessage, LLMResponse

_TIMEOUT = httpx.Timeout(120.0, connect=10.0)
_COMPLETIONS_PATH = "/chat/completions"
_STREAM_DONE = "[DONE]"
_SSE_DATA_PREFIX = "data:"


class OpenAICompatProvider(ChatProvider):
    """Chat completions over one lazily opened, reused httpx.AsyncClient.

    ``transport`` lets tests substitute an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_base: str,
        api_key: str,
        default_model: str,
        *,
        max_tokens: int = 2048,
        provider_name: str = "openai",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = provider_name
        self.api_base = api_base.rstrip("/")
        self.default_model = default_model
        self.max_tokens = max_tokens
        self._auth_headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.api_base,
                headers=self._auth_headers,
                timeout=_TIMEOUT,
                transport=self._transport,
            )
        return self._http

    def _payload(
        self, messages: list[LLMMessage], model: str | None, max_tokens: int | None
    ) -> dict[str, Any]:
        return {
            "model": model or self.default_model,
            "messages": [asdict(m) for m in messages],
            "max_completion_tokens": max_tokens or self.max_tokens,
        }

    def _unreachable(self, exc: httpx.TransportError) -> ProviderError:
        if isinstance(exc, httpx.TimeoutException):
            return ProviderError(
                f"[{self.name}] Timed out waiting for {self.api_base}",
                provider=self.name,
                hint="The model may be overloaded; retry or pick a faster model.",
            )
        return ProviderConnectionError(
            f"[{self.name}] Cannot connect to {self.api_base}: {exc}",
            provider=self.name,
        )

    async def chat(
        self,
        messages: list[LLMMessage],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        payload = self._payload(messages, model, max_tokens)
        if response_format is not None:
            payload["response_format"] = response_format
        logger.debug(
            "{} completion: model={} messages={}", self.name, payload["model"], len(messages)
        )

        try:
            resp = await self._client().post(_COMPLETIONS_PATH, json=payload)
        except httpx.TransportError as exc:
            raise self._unreachable(exc) from exc

        if resp.is_error:
            raise_for_status(
                resp.status_code, self.name, self.api_base, payload["model"], resp.text[:300]
            )
        return self._to_response(resp.json())

    async def stream_chat(
        self,
        messages: list[LLMMessage],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        payload = self._payload(messages, model, max_tokens)
        payload["stream"] = True
        logger.debug(
            "{} streaming completion: model={} messages={}",
            self.name,
            payload["model"],
            len(messages),
        )

        try:
            async with self._client().stream("POST", _COMPLETIONS_PATH, json=payload) as resp:
                if resp.is_error:
                    detail = (await resp.aread()).decode("utf-8", errors="replace")
                    raise_for_status(
                        resp.status_code, self.name, self.api_base, payload["model"], detail[:300]
                    )

                async for line in resp.aiter_lines():
                    if not line.startswith(_SSE_DATA_PREFIX):
                        continue
                    data = line[len(_SSE_DATA_PREFIX) :].strip()
                    if data == _STREAM_DONE:
                        return
                    delta = _delta_text(data)
                    if delta:
                        yield delta
        except httpx.TransportError as exc:
            raise self._unreachable(exc) from exc

    @staticmethod
    def _to_response(data: Any) -> LLMResponse:
        if not isinstance(data, dict):
            logger.warning("Completion body is not a JSON object: {}", str(data)[:200])
            return LLMResponse()
        usage = _as_dict(data.get("usage"))
        return LLMResponse(
            content=_first_choice(data, "message").get("content"),
            model=data.get("model", ""),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            raw=data,
        )

    async def close(self) -> None:
        http, self._http = self._http, None
        if http is not None and not http.is_closed:
            await http.aclose()


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_choice(body: dict[str, Any], key: str) -> dict[str, Any]:
    """``body["choices"][0][key]``, or {} wherever the shape is not as expected."""
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return {}
    return _as_dict(_as_dict(choices[0]).get(key))


def _delta_text(data: str) -> str | None:
    """Content delta carried by one streamed chunk; None for role-only or empty chunks."""
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        logger.warning("Skipping malformed stream chunk: {}", data[:200])
        return None
    if not isinstance(chunk, dict):
        logger.warning("Skipping non-object stream chunk: {}", data[:200])
        return None
    content = _first_choice(chunk, "delta").get("content")
    return content if isinstance(content, str) and content else None
