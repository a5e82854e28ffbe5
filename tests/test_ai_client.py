# tests/test_ai_client.py
import asyncio
import base64
import json

import pytest

from listing_generator.core.ai_client import AIClient
from listing_generator.core.errors import (
    GenerationError,
    InvalidCredentialsError,
    MissingCredentialsError,
    NoImageProducedError,
    QuotaExceededError,
    ValidationError,
)


def test_generate_details_parses_schema_json(ai_client, provider):
    draft = asyncio.run(ai_client.generate_details("Auriculares X200", "es", "sk-test", "friendly", 0.3))

    assert draft.product_name == "Auriculares Bluetooth X200"
    assert draft.tags[0] == "auriculares"
    assert draft.price == 250000.0
    assert draft.image_prompt == "wireless headphones on a desk"

    call = provider.structured_calls[0]
    assert call["temperature"] == 0.3
    assert call["api_key"] == "sk-test"
    assert '"Auriculares X200"' in call["prompt"]
    assert "conversational" in call["prompt"]
    assert "PYG" in call["prompt"]
    assert set(call["schema"]["required"]) == {
        "productName", "description", "metaDescription", "tags",
        "price", "currency", "imagePrompt", "imagePrompt2",
    }


def test_currency_is_pinned_to_market(ai_client, provider):
    # 模型返回 USD，但 es 市场固定为 PYG
    draft = asyncio.run(ai_client.generate_details("Mate", "es", "sk-test"))
    assert draft.currency == "PYG"
    assert provider.structured_calls[0]["schema"]["properties"]["currency"]["enum"] == ["PYG"]

    draft = asyncio.run(ai_client.generate_details("Mate", "en", "sk-test"))
    assert draft.currency == "USD"


def test_english_market_prompt(ai_client, provider):
    asyncio.run(ai_client.generate_details("Desk lamp", "en", "sk-test", "technical"))
    prompt = provider.structured_calls[0]["prompt"]
    assert "international e-commerce market" in prompt
    assert "USD" in prompt
    assert "always be in English" in prompt


def test_missing_key_fails_without_call(ai_client, provider):
    with pytest.raises(MissingCredentialsError) as exc:
        asyncio.run(ai_client.generate_details("Mate", "es", None))
    assert isinstance(exc.value, GenerationError)
    assert exc.value.invalidates_credentials
    assert provider.calls == 0


def test_invalid_tone_rejected(ai_client, provider):
    with pytest.raises(ValidationError):
        asyncio.run(ai_client.generate_details("Mate", "es", "sk-test", tone="sarcastic"))
    assert provider.calls == 0


def test_invalid_temperature_rejected(ai_client):
    with pytest.raises(ValidationError):
        asyncio.run(ai_client.generate_details("Mate", "es", "sk-test", temperature=1.5))


def test_non_json_output_is_generation_error(fake_provider_cls):
    client = AIClient(fake_provider_cls(structured="Sure! Here is your product"))
    with pytest.raises(GenerationError):
        asyncio.run(client.generate_details("Mate", "es", "sk-test"))


def test_missing_fields_is_generation_error(fake_provider_cls):
    client = AIClient(fake_provider_cls(structured=json.dumps({"productName": "Mate"})))
    with pytest.raises(GenerationError, match="missing fields"):
        asyncio.run(client.generate_details("Mate", "es", "sk-test"))


@pytest.mark.parametrize("error", [QuotaExceededError("429"), InvalidCredentialsError("401")])
def test_provider_errors_propagate_unchanged(fake_provider_cls, error):
    client = AIClient(fake_provider_cls(structured=error))
    with pytest.raises(type(error)):
        asyncio.run(client.generate_details("Mate", "es", "sk-test"))


def test_unknown_provider_failure_wrapped(fake_provider_cls):
    client = AIClient(fake_provider_cls(structured=RuntimeError("boom")))
    with pytest.raises(GenerationError, match="boom"):
        asyncio.run(client.generate_details("Mate", "es", "sk-test"))


def test_generate_image_appends_style_and_returns_data_uri(fake_provider_cls, make_png):
    raw = make_png(10, 10)
    provider = fake_provider_cls(images={"lamp": raw})
    client = AIClient(provider)

    url = asyncio.run(client.generate_image("a desk lamp", "sk-test", "closeup", "16:9"))

    assert url == "data:image/png;base64," + base64.b64encode(raw).decode("ascii")
    call = provider.image_calls[0]
    assert call["prompt"] == "a desk lamp, macro shot, close-up on product details and texture, dramatic lighting"
    assert call["aspect_ratio"] == "16:9"
    assert call["n"] == 1


def test_generate_image_without_images(fake_provider_cls):
    client = AIClient(fake_provider_cls(images={"lamp": []}))
    with pytest.raises(NoImageProducedError):
        asyncio.run(client.generate_image("a lamp", "sk-test"))


def test_generate_image_rejects_unknown_options(ai_client, provider):
    with pytest.raises(ValidationError):
        asyncio.run(ai_client.generate_image("a lamp", "sk-test", style="watercolor"))
    with pytest.raises(ValidationError):
        asyncio.run(ai_client.generate_image("a lamp", "sk-test", aspect_ratio="3:2"))
    assert provider.calls == 0


def test_generate_image_quota(fake_provider_cls):
    client = AIClient(fake_provider_cls(images={"lamp": QuotaExceededError("429")}))
    with pytest.raises(QuotaExceededError):
        asyncio.run(client.generate_image("a lamp", "sk-test"))


def test_validate_credentials(fake_provider_cls):
    assert asyncio.run(AIClient(fake_provider_cls()).validate_credentials("sk-good")) is True
    assert asyncio.run(AIClient(fake_provider_cls(structured=InvalidCredentialsError("401"))).validate_credentials("sk-bad")) is False
    assert asyncio.run(AIClient(fake_provider_cls(structured=RuntimeError("down"))).validate_credentials("sk-x")) is False
    assert asyncio.run(AIClient(fake_provider_cls()).validate_credentials("")) is False
