"""Async HTTP client for the supported LLM vendors."""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from ntrn.exceptions import ProviderAPIError
from ntrn.providers.models import AIResponse, ProviderSpec
from ntrn.providers.rate_limiter import RateLimiter

log = structlog.get_logger("ntrn.providers")

REQUEST_TIMEOUT = 60.0  # seconds

SYSTEM_PROMPT = (
    "You are a senior React Native engineer converting Next.js code to Expo. "
    "Return complete, runnable TypeScript using React Native components only."
)


class ProviderClient:
    """Send completion requests to one provider, paced by a :class:`RateLimiter`."""

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.spec = spec
        self._api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.rate_limiter = rate_limiter or RateLimiter(rps=spec.rps, rpm=spec.rpm)

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ProviderClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.1,
        max_tokens: int = 8192,
    ) -> AIResponse:
        """Send *prompt* and return the model's text.

        Raises :class:`ProviderAPIError` on non-2xx responses and transport
        failures. The status code is part of the message so callers can
        recognise rate limiting by text as well as by attribute.
        """
        await self.rate_limiter.acquire()

        if self.spec.key == "GEMINI":
            url, headers, body = self._gemini_request(prompt, temperature, max_tokens)
        else:
            url, headers, body = self._chat_request(prompt, temperature, max_tokens)

        started = time.monotonic()
        try:
            resp = await self._client.post(url, headers=headers, json=body)
        except httpx.TimeoutException as exc:
            raise ProviderAPIError(self.spec.name, f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ProviderAPIError(self.spec.name, str(exc)) from exc

        if resp.status_code >= 400:
            raise ProviderAPIError(
                self.spec.name, _error_message(resp), status_code=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderAPIError(self.spec.name, "response is not valid JSON") from exc

        if self.spec.key == "GEMINI":
            result = _parse_gemini(data)
        else:
            result = _parse_chat(data)
        result.provider = self.spec.key
        result.model = self.spec.model
        log.debug(
            "provider.response",
            provider=self.spec.key,
            tokens=result.tokens_used,
            latency=round(time.monotonic() - started, 2),
        )
        return result

    # ── internal ───────────────────────────────────────────────────────────

    def _chat_request(
        self, prompt: str, temperature: float, max_tokens: int
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.spec.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        return self.spec.base_url, headers, body

    def _gemini_request(
        self, prompt: str, temperature: float, max_tokens: int
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        url = f"{self.spec.base_url}?key={self._api_key}"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
                "topP": 0.8,
                "topK": 40,
            },
        }
        return url, {"Content-Type": "application/json"}, body


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:500] or resp.reason_phrase
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if data.get("message"):
            return str(data["message"])
    return resp.reason_phrase


def _parse_chat(data: dict[str, Any]) -> AIResponse:
    choices = data.get("choices") or []
    content = ""
    if choices:
        content = (choices[0].get("message") or {}).get("content") or ""
    tokens = (data.get("usage") or {}).get("total_tokens", 0)
    return AIResponse(content=content, tokens_used=tokens or 0, raw=data)


def _parse_gemini(data: dict[str, Any]) -> AIResponse:
    content = ""
    candidates = data.get("candidates") or []
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if parts:
            content = parts[0].get("text") or ""
    tokens = (data.get("usageMetadata") or {}).get("totalTokenCount", 0)
    return AIResponse(content=content, tokens_used=tokens or 0, raw=data)
