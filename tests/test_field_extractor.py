import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from intelligroup.exceptions import AuthorizationExpiredError
from intelligroup.processors import FieldExtractor


def completion(content, prompt_tokens=100, completion_tokens=20):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


class FakeClient:
    """Stands in for openai.OpenAI; replies (or raises) from a queue."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **payload):
        self.requests.append(payload)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return completion(reply)


class FakeAsyncClient(FakeClient):
    async def _acreate(self, **payload):
        return FakeClient._create(self, **payload)

    def __init__(self, *replies):
        super().__init__(*replies)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._acreate))


def status_error(cls, status, message):
    request = httpx.Request("POST", "https://example.invalid/chat/completions")
    return cls(message, response=httpx.Response(status, request=request), body=None)


GOOD = json.dumps({
    "isStartPage": True,
    "data": {"lastName": "Иванов", "snils": "123-456-789 01", "votes": {"1": "ЗА"}},
})


def make_extractor(context, client, sleeps=None):
    sleeps = sleeps if sleeps is not None else []
    return FieldExtractor(context, client=client, sleep=sleeps.append)


def test_successful_extraction(context, make_page):
    client = FakeClient(GOOD)

    result = make_extractor(context, client)(make_page(1))

    assert result.is_start_page is True
    assert result.fields.last_name == "Иванов"
    assert result.failed is False

    payload = client.requests[0]
    assert payload["model"] == context.config.ai.model
    assert payload["response_format"] == {"type": "json_object"}
    image_part = payload["messages"][1]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")


def test_usage_is_tracked(context, make_page):
    make_extractor(context, FakeClient(GOOD, GOOD))(make_page(1))

    usage = context.stats.ai_usage
    assert usage.calls_count == 1
    assert usage.total_input_tokens == 100
    assert usage.total_output_tokens == 20
    assert usage.provider == "google"


def test_transient_error_is_retried(context, make_page):
    sleeps = []
    client = FakeClient(RuntimeError("connection reset"), GOOD)

    result = make_extractor(context, client, sleeps)(make_page(1))

    assert result.fields.snils == "123-456-789 01"
    assert len(client.requests) == 2
    assert sleeps == [pytest.approx(0.01)]


def test_rate_limit_waits_longer(context, make_page):
    sleeps = []
    make_extractor(context, FakeClient(RuntimeError("429 Too Many Requests"), GOOD), sleeps)(make_page(1))

    assert sleeps == [5.0]


def test_gives_up_with_empty_result(context, make_page):
    client = FakeClient(*[RuntimeError("boom")] * 3)

    result = make_extractor(context, client)(make_page(1))

    assert len(client.requests) == context.config.ai.max_retries + 1
    assert result.failed is True
    assert result.is_start_page is False
    assert result.fields.is_empty
    assert "boom" in result.error


def test_unparseable_response_fails_soft(context, make_page):
    result = make_extractor(context, FakeClient("I cannot read this page.", "still no", "nope"))(make_page(1))

    assert result.failed is True


@pytest.mark.parametrize("error", [
    status_error(openai.AuthenticationError, 401, "invalid api key"),
    status_error(openai.PermissionDeniedError, 403, "permission denied"),
    status_error(openai.NotFoundError, 404, "Requested entity was not found."),
])
def test_rejected_key_raises(context, make_page, error):
    client = FakeClient(error, GOOD)

    with pytest.raises(AuthorizationExpiredError):
        make_extractor(context, client)(make_page(1))

    assert len(client.requests) == 1


def test_missing_key_raises(context, make_page):
    context.config.ai.api_key = ""
    client = FakeClient(GOOD)

    with pytest.raises(AuthorizationExpiredError):
        make_extractor(context, client)(make_page(1))

    assert client.requests == []


def test_async_extraction(context, make_page):
    extractor = FieldExtractor(context, async_client=FakeAsyncClient(GOOD))

    result = asyncio.run(extractor.aextract(make_page(1)))

    assert result.fields.last_name == "Иванов"
