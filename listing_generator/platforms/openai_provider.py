# platforms/openai_provider.py

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Tuple

from openai import (
    APIConnectionError,
    AsyncOpenAI,
    AuthenticationError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
)

from listing_generator.config.settings import IMAGE_MODEL, TEXT_MODEL
from listing_generator.core.errors import (
    GenerationError,
    InvalidCredentialsError,
    QuotaExceededError,
)

logger = logging.getLogger(__name__)

# 各图片模型支持的尺寸
IMAGE_SIZES: Dict[str, Tuple[str, ...]] = {
    "gpt-image-1": ("1024x1024", "1536x1024", "1024x1536"),
    "dall-e-3": ("1024x1024", "1792x1024", "1024x1792"),
    "dall-e-2": ("1024x1024",),
}


def size_for(aspect_ratio: str, model: str) -> str:
    """选出与宽高比最接近的受支持尺寸"""
    w, h = (int(part) for part in aspect_ratio.split(":"))
    target = w / h
    sizes = IMAGE_SIZES.get(model, IMAGE_SIZES["gpt-image-1"])

    def distance(size: str) -> float:
        sw, sh = (int(part) for part in size.split("x"))
        return abs(sw / sh - target)

    return min(sizes, key=distance)


def _translate_error(e: OpenAIError) -> GenerationError:
    if isinstance(e, RateLimitError):
        return QuotaExceededError(f"API quota error (429): you have exceeded your usage quota. Check your plan and billing. ({e})")
    if isinstance(e, (AuthenticationError, PermissionDeniedError)):
        return InvalidCredentialsError(f"Permission error or invalid API key: {e}")
    if isinstance(e, APIConnectionError):
        return GenerationError(f"Could not reach the AI provider: {e}")
    return GenerationError(f"AI provider error: {e}")


class OpenAIProvider:
    """GenerativeProvider backed by the OpenAI SDK; a new client per call/key."""

    def __init__(self, text_model: str = TEXT_MODEL, image_model: str = IMAGE_MODEL, **client_options: Any):
        self.text_model = text_model
        self.image_model = image_model
        self.client_options = client_options

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, **self.client_options)

    async def generate_structured(
        self,
        prompt: str,
        schema: Dict[str, Any],
        temperature: float,
        api_key: str,
    ) -> str:
        client = self._client(api_key)
        logger.debug("Structured request to %s (temperature=%s)", self.text_model, temperature)
        try:
            response = await client.chat.completions.create(
                model=self.text_model,
                messages=[{"role": "user", "content": prompt}],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "product_details", "schema": schema, "strict": True},
                },
                temperature=temperature,
            )
        except OpenAIError as e:
            raise _translate_error(e) from e
        finally:
            await client.close()

        return response.choices[0].message.content or ""

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str,
        api_key: str,
        number_of_images: int = 1,
    ) -> List[bytes]:
        client = self._client(api_key)
        options: Dict[str, Any] = {
            "model": self.image_model,
            "prompt": prompt,
            "n": number_of_images,
            "size": size_for(aspect_ratio, self.image_model),
        }
        # gpt-image-1 总是返回 base64，dall-e 需要显式指定
        if self.image_model.startswith("dall-e"):
            options["response_format"] = "b64_json"

        logger.debug("Image request to %s size=%s", self.image_model, options["size"])
        try:
            response = await client.images.generate(**options)
        except OpenAIError as e:
            raise _translate_error(e) from e
        finally:
            await client.close()

        return [base64.b64decode(item.b64_json) for item in (response.data or []) if item.b64_json]
