# tests/test_openai_provider.py
import asyncio
import base64
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from listing_generator.core.errors import GenerationError
from listing_generator.platforms.openai_provider import OpenAIProvider, size_for


class FakeAsyncClient:
    """Mimics the parts of AsyncOpenAI the provider touches."""

    def __init__(self, content='{"ok": true}', image_bytes=(b"img",), error=None):
        self.requests = []
        self.closed = False
        self.error = error
        self.content = content
        self.image_bytes = image_bytes
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.images = SimpleNamespace(generate=self._generate)

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def _generate(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        data = [SimpleNamespace(b64_json=base64.b64encode(raw).decode("ascii")) for raw in self.image_bytes]
        return SimpleNamespace(data=data)

    async def close(self):
        self.closed = True


def _provider(monkeypatch, client, **kwargs):
    provider = OpenAIProvider(**kwargs)
    keys = []

    def fake_client(api_key):
        keys.append(api_key)
        return client

    monkeypatch.setattr(provider, "_client", fake_client)
    return provider, keys


@pytest.mark.parametrize("ratio, model, expected", [
    ("1:1", "gpt-image-1", "1024x1024"),
    ("4:3", "gpt-image-1", "1536x1024"),
    ("16:9", "gpt-image-1", "1536x1024"),
    ("16:9", "dall-e-3", "1792x1024"),
    ("4:3", "dall-e-2", "1024x1024"),
])
def test_size_for(ratio, model, expected):
    assert size_for(ratio, model) == expected


def test_structured_request(monkeypatch):
    client = FakeAsyncClient(content='{"productName": "x"}')
    provider, keys = _provider(monkeypatch, client, text_model="gpt-4o-mini")

    text = asyncio.run(provider.generate_structured("prompt", {"type": "object"}, 0.4, "sk-a"))

    assert text == '{"productName": "x"}'
    assert keys == ["sk-a"]
    request = client.requests[0]
    assert request["model"] == "gpt-4o-mini"
    assert request["temperature"] == 0.4
    assert request["response_format"]["type"] == "json_schema"
    assert request["response_format"]["json_schema"]["strict"] is True
    assert client.closed


def test_image_request_decodes_base64(monkeypatch):
    client = FakeAsyncClient(image_bytes=(b"first", b"second"))
    provider, keys = _provider(monkeypatch, client, image_model="dall-e-3")

    images = asyncio.run(provider.generate_image("a lamp", "16:9", "sk-b", number_of_images=2))

    assert images == [b"first", b"second"]
    assert keys == ["sk-b"]
    request = client.requests[0]
    assert request["size"] == "1792x1024"
    assert request["n"] == 2
    assert request["response_format"] == "b64_json"


def test_gpt_image_omits_response_format(monkeypatch):
    client = FakeAsyncClient()
    provider, _ = _provider(monkeypatch, client, image_model="gpt-image-1")
    asyncio.run(provider.generate_image("a lamp", "1:1", "sk-b"))
    assert "response_format" not in client.requests[0]


def test_provider_errors_are_translated(monkeypatch):
    client = FakeAsyncClient(error=OpenAIError("boom"))
    provider, _ = _provider(monkeypatch, client)
    with pytest.raises(GenerationError, match="boom"):
        asyncio.run(provider.generate_structured("p", {}, 0.5, "sk-a"))
    assert client.closed
