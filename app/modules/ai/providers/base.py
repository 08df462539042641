"""
Base interface for generative-AI providers.
Every provider takes a generateContent-style payload and returns a
generateContent-style envelope ({"candidates": [{"content": {"parts": [{"text": ...}]}}]}).
The rest of the app never touches provider-specific formats.

Providers translate transport failures into the app.errors taxonomy:
RateLimited for 429, TransientFailure for network errors / 408 / 5xx,
RequestRejected for other 4xx, MalformedResponse for undecodable bodies.
"""

from typing import Protocol


class AIProvider(Protocol):
    name: str

    async def generate(self, payload: dict) -> dict:
        ...

    async def aclose(self) -> None:
        ...


def classify_status(status_code: int) -> str:
    """Map an HTTP status to 'ok', 'rate_limited', 'transient' or 'rejected'."""
    if status_code < 400:
        return "ok"
    if status_code == 429:
        return "rate_limited"
    if status_code == 408 or status_code >= 500:
        return "transient"
    return "rejected"
