"""
Retrying client for the generative-AI endpoint.

One call() is one logical request: up to max_attempts attempts, with an
exponential backoff (1s, 2s, 4s, 8s by default) between them. The control
flow is an explicit state machine:

    ATTEMPTING -> SUCCEEDED                (text extracted)
    ATTEMPTING -> BACKOFF -> ATTEMPTING    (retryable failure, budget left)
    ATTEMPTING -> EXHAUSTED                (retryable failure on the last attempt)

Rate limits (429) and other retryable failures pause and double identically.
Non-retryable failures (RequestRejected) propagate immediately. Any other
exception raised during an attempt is treated as a TransientFailure.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass

from app.config import Settings
from app.errors import ExhaustedRetries, GenerationError, MalformedResponse, RequestRejected, TransientFailure
from app.modules.ai.providers.base import AIProvider

logger = logging.getLogger(__name__)


class AttemptState(enum.Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class Clock:
    """Real time. Tests swap in a fake that records sleeps instead of waiting."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def monotonic(self) -> float:
        return time.monotonic()


@dataclass
class RetryPolicy:
    max_attempts: int = 5
    initial_backoff_ms: int = 1000
    retry_client_errors: bool = False

    def is_retryable(self, error: GenerationError) -> bool:
        if isinstance(error, RequestRejected):
            return self.retry_client_errors
        return error.retryable


def extract_text(envelope: dict) -> str:
    """Return the first text part of the first candidate, or raise MalformedResponse."""
    try:
        candidates = envelope["candidates"]
        if not candidates:
            raise MalformedResponse("Unexpected API response format: no candidates")
        parts = candidates[0]["content"]["parts"]
        if not parts:
            raise MalformedResponse("Unexpected API response format: candidate has no parts")
        text = parts[0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedResponse(f"Unexpected API response format: missing {e}") from e
    if not isinstance(text, str):
        raise MalformedResponse("Unexpected API response format: text part is not a string")
    return text


class GenerativeClient:
    def __init__(self, provider: AIProvider, policy: RetryPolicy | None = None, clock: Clock | None = None):
        self.provider = provider
        self.policy = policy or RetryPolicy()
        self.clock = clock or Clock()

    async def call(self, payload: dict) -> str:
        state = AttemptState.ATTEMPTING
        attempt = 0
        delay_ms = self.policy.initial_backoff_ms
        last_error: GenerationError | None = None
        text = ""
        started = self.clock.monotonic()

        while True:
            if state is AttemptState.ATTEMPTING:
                attempt += 1
                try:
                    text = await self._attempt(payload, attempt)
                except GenerationError as e:
                    last_error = e
                    if not self.policy.is_retryable(e):
                        raise
                    if attempt < self.policy.max_attempts:
                        state = AttemptState.BACKOFF
                    else:
                        state = AttemptState.EXHAUSTED
                else:
                    state = AttemptState.SUCCEEDED

            elif state is AttemptState.BACKOFF:
                logger.warning(
                    "%s attempt %d/%d failed (%s). Retrying in %.1fs...",
                    self.provider.name, attempt, self.policy.max_attempts, last_error, delay_ms / 1000,
                )
                await self.clock.sleep(delay_ms / 1000)
                delay_ms *= 2
                state = AttemptState.ATTEMPTING

            elif state is AttemptState.SUCCEEDED:
                if attempt > 1:
                    logger.info(
                        "%s call succeeded on attempt %d after %.1fs",
                        self.provider.name, attempt, self.clock.monotonic() - started,
                    )
                return text

            else:
                logger.error("%s call exhausted %d attempts: %s", self.provider.name, attempt, last_error)
                raise ExhaustedRetries(attempt, last_error) from last_error

    async def _attempt(self, payload: dict, attempt: int) -> str:
        """One attempt. Errors outside the GenerationError taxonomy count as transient."""
        try:
            return extract_text(await self.provider.generate(payload))
        except GenerationError:
            raise
        except Exception as e:
            logger.exception("%s attempt %d raised %s", self.provider.name, attempt, type(e).__name__)
            raise TransientFailure(f"{type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        await self.provider.aclose()


def build_client(settings: Settings, clock: Clock | None = None) -> GenerativeClient:
    policy = RetryPolicy(
        max_attempts=settings.ai_max_attempts,
        initial_backoff_ms=settings.ai_initial_backoff_ms,
        retry_client_errors=settings.ai_retry_client_errors,
    )
    if settings.ai_provider == "anthropic":
        from app.modules.ai.providers.claude import AnthropicProvider
        provider = AnthropicProvider(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.anthropic_max_tokens,
            timeout=settings.ai_timeout_seconds,
        )
    else:
        from app.modules.ai.providers.gemini import GeminiProvider
        provider = GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.ai_timeout_seconds,
        )
    return GenerativeClient(provider, policy=policy, clock=clock)
