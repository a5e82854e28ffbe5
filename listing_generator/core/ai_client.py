# core/ai_client.py

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Protocol

from listing_generator.config.settings import check_temperature
from listing_generator.core.errors import (
    GenerationError,
    MissingCredentialsError,
    NoImageProducedError,
)
from listing_generator.core.product_normalizer import normalize_product
from listing_generator.core.product_schema import ProductDraft
from listing_generator.core.prompt_builder import (
    PROBE_SCHEMA,
    build_image_prompt,
    build_product_schema,
    build_prompt_for_product,
    check_aspect_ratio,
    market_for,
)

logger = logging.getLogger(__name__)


class GenerativeProvider(Protocol):
    """
    生成式 AI 提供方接口。

    实现方需要把提供方自己的异常转换为：
    QuotaExceededError / InvalidCredentialsError / GenerationError
    """

    async def generate_structured(
        self,
        prompt: str,
        schema: Dict[str, Any],
        temperature: float,
        api_key: str,
    ) -> str:
        """Return the raw JSON text produced under ``schema``."""
        ...

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str,
        api_key: str,
        number_of_images: int = 1,
    ) -> List[bytes]:
        """Return the encoded bytes of each generated image."""
        ...


def _require_key(api_key: str | None) -> str:
    api_key = (api_key or "").strip()
    if not api_key:
        raise MissingCredentialsError("API key not found. Enter an API key in the settings.")
    return api_key


def _sniff_mime(image_bytes: bytes) -> str:
    if image_bytes.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


class AIClient:
    """Text, image and credential calls against one GenerativeProvider."""

    def __init__(self, provider: GenerativeProvider):
        self.provider = provider

    async def generate_details(
        self,
        product_name: str,
        language: str,
        api_key: str | None,
        tone: str = "persuasive",
        temperature: float = 0.8,
    ) -> ProductDraft:
        """
        调用文本模型生成商品详情。

        Args:
            product_name: 用户输入的商品名
            language: "es" 或 "en"，决定市场与货币
            api_key: 每次调用显式传入，不读取环境变量
            tone: persuasive / professional / friendly / technical
            temperature: 0~1，原样传给提供方

        Returns:
            ProductDraft，currency 固定为目标市场货币

        Raises:
            ValidationError: 选项不在固定词表中
            MissingCredentialsError / InvalidCredentialsError / QuotaExceededError / GenerationError
        """
        market = market_for(language)
        prompt = build_prompt_for_product(product_name, language, tone)
        schema = build_product_schema(language)
        temperature = check_temperature(temperature)
        api_key = _require_key(api_key)

        try:
            json_str = await self.provider.generate_structured(prompt, schema, temperature, api_key)
        except GenerationError:
            raise
        except Exception as e:
            logger.exception("Text generation failed for %r", product_name)
            raise GenerationError(f"Text generation failed: {e}") from e

        if not json_str or not json_str.strip():
            raise GenerationError("The model returned empty content")

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise GenerationError(f"Could not parse the model JSON: {e}") from e

        draft = normalize_product(data, market["currency_code"])
        logger.info("Generated details for %r (%s %s)", draft.product_name, draft.price, draft.currency)
        return draft

    async def generate_image(
        self,
        prompt: str,
        api_key: str | None,
        style: str = "studio",
        aspect_ratio: str = "1:1",
    ) -> str:
        """Render one image for ``prompt`` and return it as a base64 data URI."""
        final_prompt = build_image_prompt(prompt, style)
        check_aspect_ratio(aspect_ratio)
        api_key = _require_key(api_key)

        try:
            images = await self.provider.generate_image(final_prompt, aspect_ratio, api_key, number_of_images=1)
        except GenerationError:
            raise
        except Exception as e:
            logger.exception("Image generation failed")
            raise GenerationError(f"Image generation failed: {e}") from e

        if not images:
            raise NoImageProducedError("No image was generated.")

        image_bytes = images[0]
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:{_sniff_mime(image_bytes)};base64,{encoded}"

    async def validate_credentials(self, api_key: str | None) -> bool:
        """Minimal low-cost call; True iff the provider accepts the key."""
        if not api_key or not api_key.strip():
            return False
        try:
            await self.provider.generate_structured(
                'Reply with {"ok": true}.', PROBE_SCHEMA, 0.0, api_key.strip()
            )
            return True
        except Exception as e:
            logger.warning("API key validation failed: %s", e)
            return False
