"""
Anthropic provider: translates generateContent payloads to the Messages API
and normalizes the reply back into a generateContent envelope.
SDK-level retries are disabled; the retry policy lives in GenerativeClient.
"""

import logging

from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AsyncAnthropic,
    RateLimitError,
)

from app.errors import RateLimited, RequestRejected, TransientFailure
from app.modules.ai.providers.base import classify_status

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = (
    "Respond ONLY with valid JSON matching the requested structure. "
    "Do not add explanations or markdown code fences."
)


class AnthropicProvider:
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        client: AsyncAnthropic | None = None,
    ):
        self._model = model
        self._max_tokens = max_tokens
        self._client = client or AsyncAnthropic(api_key=api_key, max_retries=0, timeout=timeout)

    async def generate(self, payload: dict) -> dict:
        kwargs = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": to_content_blocks(payload)}],
        }
        if payload.get("generationConfig", {}).get("responseMimeType") == "application/json":
            kwargs["system"] = JSON_SYSTEM_PROMPT

        try:
            response = await self._client.messages.create(**kwargs)
        except RateLimitError as e:
            raise RateLimited("Anthropic rate limit hit (HTTP 429)") from e
        except APIConnectionError as e:
            raise TransientFailure(f"Anthropic network error: {e}") from e
        except APIStatusError as e:
            if classify_status(e.status_code) == "transient":
                raise TransientFailure(f"Anthropic API error: HTTP {e.status_code}") from e
            logger.error("Anthropic rejected request: HTTP %s %s", e.status_code, e.message)
            raise RequestRejected(f"Anthropic API error: HTTP {e.status_code}", status_code=e.status_code) from e
        except APIError as e:
            raise TransientFailure(f"Anthropic API error: {type(e).__name__}: {e}") from e

        parts = [{"text": block.text} for block in response.content if getattr(block, "type", None) == "text"]
        return {"candidates": [{"content": {"parts": parts}}]}

    async def aclose(self) -> None:
        await self._client.close()


def to_content_blocks(payload: dict) -> list[dict]:
    """Flatten generateContent parts into Messages API content blocks."""
    blocks = []
    for content in payload.get("contents", []):
        for part in content.get("parts", []):
            if "text" in part:
                blocks.append({"type": "text", "text": part["text"]})
            elif "inlineData" in part:
                inline = part["inlineData"]
                blocks.append({
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": inline["mimeType"],
                        "data": inline["data"],
                    },
                })
    return blocks
