# tests/conftest.py

import base64
import json
from io import BytesIO

import pytest
import requests
from PIL import Image

from listing_generator.config.settings import Settings
from listing_generator.core.ai_client import AIClient

PRODUCT_JSON = {
    "productName": "Auriculares Bluetooth X200",
    "description": "<h3>X200</h3><p>Sonido claro.</p><h4>✅ Principales características</h4><ul><li>BT 5.3</li></ul><p>Ideal.</p>",
    "metaDescription": "Auriculares inalámbricos con 30 horas de batería.",
    "tags": ["auriculares", "bluetooth", "audio", "inalámbrico", "tecnología paraguay"],
    "price": 250000,
    "currency": "USD",
    "imagePrompt": "wireless headphones on a desk",
    "imagePrompt2": "wireless headphones side view",
}


def png_bytes(width=64, height=48, mode="RGB", color=(200, 30, 30)):
    buffer = BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(raw, mime="image/png"):
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


class FakeProvider:
    """In-memory GenerativeProvider; records every call."""

    def __init__(self, structured=None, images=None):
        # structured: JSON text or an exception instance
        self.structured = json.dumps(PRODUCT_JSON) if structured is None else structured
        # images: {prompt substring: bytes | list | exception}
        self.images = images or {}
        self.structured_calls = []
        self.image_calls = []

    async def generate_structured(self, prompt, schema, temperature, api_key):
        self.structured_calls.append({"prompt": prompt, "schema": schema, "temperature": temperature, "api_key": api_key})
        if isinstance(self.structured, Exception):
            raise self.structured
        return self.structured

    async def generate_image(self, prompt, aspect_ratio, api_key, number_of_images=1):
        self.image_calls.append({"prompt": prompt, "aspect_ratio": aspect_ratio, "api_key": api_key, "n": number_of_images})
        for key, result in self.images.items():
            if key in prompt:
                if isinstance(result, Exception):
                    raise result
                return result if isinstance(result, list) else [result]
        return [png_bytes(1600, 1200)]

    @property
    def calls(self):
        return len(self.structured_calls) + len(self.image_calls)


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; returns queued responses or raises."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def _next(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)


@pytest.fixture
def settings():
    return Settings(api_key="sk-test-123", save_url="https://shop.example/save-product.php",
                    categories_url="https://shop.example/get-categories.php")


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def ai_client(provider):
    return AIClient(provider)


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def make_data_uri():
    return data_uri


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("Failed to establish a new connection")


@pytest.fixture
def product_json():
    return dict(PRODUCT_JSON)
