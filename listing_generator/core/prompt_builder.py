# core/prompt_builder.py

from __future__ import annotations

import copy
from typing import Any, Dict

from listing_generator.config.settings import (
    ASPECT_RATIOS,
    IMAGE_STYLES,
    LANGUAGES,
    TONES,
    check_choice,
)


# 语言 -> 目标市场与货币
LANGUAGE_CONFIG: Dict[str, Dict[str, str]] = {
    "es": {
        "lang_name": "Spanish",
        "market_context": "The context is the Paraguayan market.",
        "currency": "Paraguayan Guaraníes (PYG)",
        "currency_code": "PYG",
        "features_heading": "✅ Principales características",
    },
    "en": {
        "lang_name": "English",
        "market_context": "The context is the international e-commerce market.",
        "currency": "US Dollars (USD)",
        "currency_code": "USD",
        "features_heading": "✅ Key Features",
    },
}

CURRENCIES = tuple(cfg["currency_code"] for cfg in LANGUAGE_CONFIG.values())

TONE_DESCRIPTIONS: Dict[str, str] = {
    "persuasive": "a persuasive and sales-oriented marketing tone",
    "professional": "a professional, informative, and formal tone",
    "friendly": "a close, friendly, and conversational tone",
    "technical": "a technical tone, focused on specifications and precise data",
}

# 图片风格后缀，始终为英文
IMAGE_STYLE_PHRASES: Dict[str, str] = {
    "studio": "professional studio photography, clean neutral background, high detail, 8k",
    "lifestyle": "lifestyle shot, in a relevant real-world setting, natural lighting, high quality",
    "minimalist": "minimalist style, simple composition, plain background, focus on product shape",
    "closeup": "macro shot, close-up on product details and texture, dramatic lighting",
}

PRODUCT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "productName": {
            "type": "string",
            "description": "The official, complete name of the product.",
        },
        "description": {
            "type": "string",
            "description": (
                "A complete product description as an HTML fragment ready for a web page. "
                "Follow this structure strictly:\n"
                "1. An <h3> with a prominent product title.\n"
                "2. A <p> with an introductory marketing paragraph.\n"
                "3. An <h4> with the text \"{features_heading}\".\n"
                "4. A <ul> with 5 to 7 <li> listing the key features or benefits.\n"
                "5. Optionally more <h4> + <ul> sections such as \"Who is it for?\", "
                "\"Additional details\" or \"Considerations\".\n"
                "6. An optional <hr> before the final summary.\n"
                "7. A closing <p> with a convincing summary paragraph."
            ),
        },
        "metaDescription": {
            "type": "string",
            "description": "A short SEO meta description, at most 160 characters, that summarizes the product and invites the click.",
        },
        "tags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "5 to 7 relevant tags or keywords for the product.",
        },
        "price": {
            "type": "number",
            "description": "A realistic estimated market price. Number only, no separators or symbols. The currency is {currency_code}.",
        },
        "currency": {
            "type": "string",
            "enum": list(CURRENCIES),
            "description": "The currency of the price, which must be '{currency_code}'.",
        },
        "imagePrompt": {
            "type": "string",
            "description": "A concise, effective English prompt for an image model to create an attractive, high quality product photo.",
        },
        "imagePrompt2": {
            "type": "string",
            "description": (
                "A second concise English prompt for another image of the same product from a "
                "different angle (e.g. 'side view', 'back view', 'close-up on details')."
            ),
        },
    },
    "required": [
        "productName",
        "description",
        "metaDescription",
        "tags",
        "price",
        "currency",
        "imagePrompt",
        "imagePrompt2",
    ],
    "additionalProperties": False,
}

# 校验 key 时使用的最小 schema
PROBE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"ok": {"type": "boolean"}},
    "required": ["ok"],
    "additionalProperties": False,
}


def market_for(language: str) -> Dict[str, str]:
    check_choice("language", language, LANGUAGES)
    return LANGUAGE_CONFIG[language]


def build_product_schema(language: str) -> Dict[str, Any]:
    """Copy of PRODUCT_SCHEMA with the market currency pinned in price/currency."""
    config = market_for(language)
    schema = copy.deepcopy(PRODUCT_SCHEMA)
    props = schema["properties"]
    props["description"]["description"] = props["description"]["description"].format(
        features_heading=config["features_heading"]
    )
    props["price"]["description"] = props["price"]["description"].format(currency_code=config["currency_code"])
    props["currency"]["description"] = props["currency"]["description"].format(currency_code=config["currency_code"])
    props["currency"]["enum"] = [config["currency_code"]]
    return schema


def build_prompt_for_product(product_name: str, language: str, tone: str) -> str:
    """
    构造发给文本模型的指令。

    商品名、语言、市场、货币与语气都嵌入到指令中；
    imagePrompt 字段始终要求英文，与内容语言无关。
    """
    config = market_for(language)
    check_choice("tone", tone, TONES)
    tone_description = TONE_DESCRIPTIONS[tone]

    return (
        f'For the product "{product_name}", generate the complete details. '
        f"The description must be a block of HTML written in {tone_description}. "
        f"Also generate an SEO meta description, relevant tags and an estimated price in {config['currency']}. "
        f"{config['market_context']} "
        f"The response must be entirely in {config['lang_name']}, except the 'imagePrompt' fields, "
        f"which must always be in English. "
        f"Reply only with JSON that follows the provided schema. "
        f"The currency code in the final JSON must be '{config['currency_code']}'."
    )


def build_image_prompt(prompt: str, style: str) -> str:
    check_choice("image style", style, IMAGE_STYLES)
    return f"{prompt.strip()}, {IMAGE_STYLE_PHRASES[style]}"


def check_aspect_ratio(aspect_ratio: str) -> str:
    return check_choice("aspect ratio", aspect_ratio, ASPECT_RATIOS)
