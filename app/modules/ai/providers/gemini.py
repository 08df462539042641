"""Gemini generateContent provider (plain HTTP via httpx)."""

import logging

import httpx

from app.errors import MalformedResponse, RateLimited, RequestRejected, TransientFailure
from app.modules.ai.providers.base import classify_status

logger = logging.getLogger(__name__)


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, payload: dict) -> dict:
        try:
            response = await self._client.post(
                self._url,
                params={"key": self._api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
            )
        except httpx.TimeoutException as e:
            raise TransientFailure(f"Gemini request timed out: {e}") from e
        except httpx.RequestError as e:
            raise TransientFailure(f"Gemini network error: {type(e).__name__}: {e}") from e

        outcome = classify_status(response.status_code)
        if outcome == "rate_limited":
            raise RateLimited("Gemini rate limit hit (HTTP 429)")
        if outcome == "transient":
            raise TransientFailure(f"Gemini API error: HTTP {response.status_code} {response.reason_phrase}")
        if outcome == "rejected":
            logger.error("Gemini rejected request: HTTP %s %s", response.status_code, response.text[:200])
            raise RequestRejected(
                f"Gemini API error: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Gemini returned a non-JSON body: {response.text[:80]!r}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
