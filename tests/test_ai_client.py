import json

import httpx
import pytest

from app.errors import (
    ExhaustedRetries,
    MalformedResponse,
    RateLimited,
    RequestRejected,
    TransientFailure,
)
from app.modules.ai.client import GenerativeClient, extract_text
from helpers import ScriptedEndpoint, build_test_client, envelope, ok

PAYLOAD = {"contents": [{"parts": [{"text": "hello"}]}]}


async def test_returns_first_text_part(clock):
    endpoint = ScriptedEndpoint(ok("analysis text"))
    client = build_test_client(endpoint, clock)

    assert await client.call(PAYLOAD) == "analysis text"
    assert len(endpoint.requests) == 1
    assert clock.sleeps == []


async def test_posts_payload_with_key(clock):
    endpoint = ScriptedEndpoint(ok("x"))
    client = build_test_client(endpoint, clock)

    await client.call(PAYLOAD)

    request = endpoint.requests[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/models/test-model:generateContent")
    assert request.url.params["key"] == "test-key"
    assert json.loads(request.content) == PAYLOAD


async def test_rate_limited_twice_then_succeeds(clock):
    endpoint = ScriptedEndpoint(httpx.Response(429), httpx.Response(429), ok("done"))
    client = build_test_client(endpoint, clock)

    assert await client.call(PAYLOAD) == "done"
    assert len(endpoint.requests) == 3
    assert clock.sleeps == [1.0, 2.0]
    assert clock.now >= 3.0


async def test_always_failing_exhausts_after_five_attempts(clock):
    endpoint = ScriptedEndpoint(httpx.Response(503))
    client = build_test_client(endpoint, clock)

    with pytest.raises(ExhaustedRetries) as exc_info:
        await client.call(PAYLOAD)

    assert len(endpoint.requests) == 5
    assert exc_info.value.attempts == 5
    assert isinstance(exc_info.value.last_error, TransientFailure)
    assert clock.sleeps == [1.0, 2.0, 4.0, 8.0]


async def test_rate_limit_on_every_attempt_exhausts(clock):
    endpoint = ScriptedEndpoint(httpx.Response(429))
    client = build_test_client(endpoint, clock)

    with pytest.raises(ExhaustedRetries) as exc_info:
        await client.call(PAYLOAD)

    assert len(endpoint.requests) == 5
    assert isinstance(exc_info.value.__cause__, RateLimited)


async def test_network_error_is_retried(clock):
    endpoint = ScriptedEndpoint(httpx.ConnectError("connection refused"), ok("recovered"))
    client = build_test_client(endpoint, clock)

    assert await client.call(PAYLOAD) == "recovered"
    assert clock.sleeps == [1.0]


async def test_client_error_fails_fast(clock):
    endpoint = ScriptedEndpoint(httpx.Response(400, json={"error": {"message": "bad payload"}}))
    client = build_test_client(endpoint, clock)

    with pytest.raises(RequestRejected) as exc_info:
        await client.call(PAYLOAD)

    assert exc_info.value.status_code == 400
    assert len(endpoint.requests) == 1
    assert clock.sleeps == []


async def test_client_errors_retried_when_enabled(clock):
    endpoint = ScriptedEndpoint(httpx.Response(400), ok("ok"))
    client = build_test_client(endpoint, clock, retry_client_errors=True)

    assert await client.call(PAYLOAD) == "ok"
    assert len(endpoint.requests) == 2


async def test_empty_candidates_is_malformed_not_empty_string(clock):
    endpoint = ScriptedEndpoint(httpx.Response(200, json={"candidates": []}))
    client = build_test_client(endpoint, clock, max_attempts=2)

    with pytest.raises(ExhaustedRetries) as exc_info:
        await client.call(PAYLOAD)

    assert isinstance(exc_info.value.last_error, MalformedResponse)
    assert len(endpoint.requests) == 2


async def test_non_json_body_is_retried(clock):
    endpoint = ScriptedEndpoint(httpx.Response(200, text="<html>oops</html>"), ok("fine"))
    client = build_test_client(endpoint, clock)

    assert await client.call(PAYLOAD) == "fine"


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"candidates": []},
        {"candidates": [{}]},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"inlineData": {}}]}}]},
        {"candidates": [{"content": {"parts": [{"text": None}]}}]},
    ],
)
def test_extract_text_rejects_malformed_envelopes(body):
    with pytest.raises(MalformedResponse):
        extract_text(body)


def test_extract_text_takes_first_part_of_first_candidate():
    body = envelope("first")
    body["candidates"][0]["content"]["parts"].append({"text": "second"})
    body["candidates"].append(envelope("other")["candidates"][0])
    assert extract_text(body) == "first"


@pytest.mark.parametrize(
    "error",
    [httpx.DecodingError("bad gzip"), httpx.TooManyRedirects("redirect loop"), httpx.ReadTimeout("slow")],
)
async def test_any_request_error_is_transient_and_retried(clock, error):
    endpoint = ScriptedEndpoint(error, ok("recovered"))
    client = build_test_client(endpoint, clock)

    assert await client.call(PAYLOAD) == "recovered"
    assert len(endpoint.requests) == 2
    assert clock.sleeps == [1.0]


class FlakyProvider:
    name = "flaky"

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def generate(self, payload: dict) -> dict:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("unexpected SDK failure")
        return envelope("finally")

    async def aclose(self) -> None:
        pass


async def test_unexpected_provider_exception_is_retried(clock):
    provider = FlakyProvider(failures=2)
    client = GenerativeClient(provider, clock=clock)

    assert await client.call(PAYLOAD) == "finally"
    assert provider.calls == 3
    assert clock.sleeps == [1.0, 2.0]


async def test_unexpected_provider_exception_exhausts_inside_taxonomy(clock):
    provider = FlakyProvider(failures=99)
    client = GenerativeClient(provider, clock=clock)

    with pytest.raises(ExhaustedRetries) as exc_info:
        await client.call(PAYLOAD)

    assert provider.calls == 5
    assert isinstance(exc_info.value.last_error, TransientFailure)
    assert isinstance(exc_info.value.last_error.__cause__, RuntimeError)
