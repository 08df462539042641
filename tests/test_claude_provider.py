from types import SimpleNamespace

import anthropic
import httpx
import pytest

from app.errors import RateLimited, RequestRejected, TransientFailure
from app.modules.ai.client import GenerativeClient
from app.modules.ai.prompts import PropertyImage, build_lead_analysis_payload, build_offer_letter_payload
from app.modules.ai.providers.claude import JSON_SYSTEM_PROMPT, AnthropicProvider, to_content_blocks
from helpers import FakeClock


class FakeMessages:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeAnthropic:
    def __init__(self, *outcomes):
        self.messages = FakeMessages(*outcomes)

    async def close(self):
        pass


def _reply(text: str):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def _status_error(cls, status: int):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return cls("error", response=httpx.Response(status, request=request), body=None)


def test_to_content_blocks_converts_text_and_images():
    payload = build_lead_analysis_payload("ranch", image=PropertyImage(data=b"img", mime_type="image/jpeg"))
    blocks = to_content_blocks(payload)

    assert blocks[0]["type"] == "text"
    assert blocks[1] == {
        "type": "image",
        "source": {"type": "base64", "media_type": "image/jpeg", "data": "aW1n"},
    }


async def test_json_payload_sets_system_prompt_and_normalizes_reply():
    fake = FakeAnthropic(_reply('{"ok": true}'))
    provider = AnthropicProvider(api_key="k", model="claude-test", client=fake)

    envelope = await provider.generate(build_lead_analysis_payload("ranch"))

    assert envelope == {"candidates": [{"content": {"parts": [{"text": '{"ok": true}'}]}}]}
    call = fake.messages.calls[0]
    assert call["model"] == "claude-test"
    assert call["system"] == JSON_SYSTEM_PROMPT


async def test_free_text_payload_has_no_system_prompt():
    fake = FakeAnthropic(_reply("Dear Seller"))
    provider = AnthropicProvider(api_key="k", model="claude-test", client=fake)

    await provider.generate(build_offer_letter_payload("ranch", "$1 - $2"))

    assert "system" not in fake.messages.calls[0]


@pytest.mark.parametrize(
    "error,expected",
    [
        (_status_error(anthropic.RateLimitError, 429), RateLimited),
        (_status_error(anthropic.InternalServerError, 500), TransientFailure),
        (_status_error(anthropic.BadRequestError, 400), RequestRejected),
        (anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com")), TransientFailure),
        (
            anthropic.APIResponseValidationError(
                response=httpx.Response(200, request=httpx.Request("POST", "https://api.anthropic.com")),
                body=None,
            ),
            TransientFailure,
        ),
    ],
)
async def test_errors_are_mapped(error, expected):
    provider = AnthropicProvider(api_key="k", model="m", client=FakeAnthropic(error))

    with pytest.raises(expected):
        await provider.generate({"contents": [{"parts": [{"text": "hi"}]}]})


async def test_retry_policy_applies_to_anthropic():
    fake = FakeAnthropic(_status_error(anthropic.RateLimitError, 429), _reply("after retry"))
    clock = FakeClock()
    client = GenerativeClient(AnthropicProvider(api_key="k", model="m", client=fake), clock=clock)

    assert await client.call({"contents": [{"parts": [{"text": "hi"}]}]}) == "after retry"
    assert clock.sleeps == [1.0]
