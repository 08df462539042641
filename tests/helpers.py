"""Test doubles for the AI endpoint and the retry clock."""

import httpx

from app.modules.ai.client import GenerativeClient, RetryPolicy
from app.modules.ai.providers.gemini import GeminiProvider

ANALYSIS = {
    "detailedPropertySummary": "Three-bed colonial needing a roof and kitchen. Strong rental demand nearby.",
    "suggestedOfferRange": "$150,000 - $180,000",
    "buyerProfiles": ["Fix-and-flip investors", "Buy-and-hold landlords"],
    "sellerOutreachAngles": ["Quick cash close", "No repairs needed"],
    "dueDiligenceChecklist": ["Roof inspection", "Title search", "Zoning check"],
}


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def monotonic(self) -> float:
        return self.now


class ScriptedEndpoint:
    """httpx MockTransport handler replaying responses in order; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def envelope(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def ok(text: str) -> httpx.Response:
    return httpx.Response(200, json=envelope(text))


def build_test_client(endpoint: ScriptedEndpoint, clock: FakeClock | None = None, **policy) -> GenerativeClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    provider = GeminiProvider(api_key="test-key", model="test-model", http_client=http_client)
    return GenerativeClient(provider, policy=RetryPolicy(**policy), clock=clock or FakeClock())
