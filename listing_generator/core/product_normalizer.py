# core/product_normalizer.py

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from listing_generator.core.errors import GenerationError
from listing_generator.core.product_schema import DRAFT_WIRE_NAMES, ProductDraft

MAX_TAGS = 7

REQUIRED_FIELDS = tuple(DRAFT_WIRE_NAMES.values())


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def clean_name(name: str) -> str:
    """去除换行符和多余空格"""
    return re.sub(r"\s+", " ", clean_text(name))


def clean_tags(tags: Any, max_count: Optional[int] = MAX_TAGS, dedupe: bool = True) -> List[str]:
    """
    清洗标签：
    - 去除空标签
    - 去重（大小写不敏感），保留模型返回的顺序；dedupe=False 时保留重复项
    - 限制数量（max_count=None 不限制）
    """
    if isinstance(tags, str):
        tags = tags.split(",")
    if not isinstance(tags, list):
        return []

    cleaned = []
    seen = set()
    for tag in tags:
        tag = clean_text(tag)
        key = tag.lower()
        if tag and (not dedupe or key not in seen):
            cleaned.append(tag)
            seen.add(key)
            if max_count is not None and len(cleaned) >= max_count:
                break
    return cleaned


def _strip_separators(text: str) -> str:
    digits = re.sub(r"[^\d.,]", "", text)
    if "." in digits and "," in digits:
        # 最后出现的分隔符是小数点
        if digits.rfind(".") > digits.rfind(","):
            return digits.replace(",", "")
        return digits.replace(".", "").replace(",", ".")
    for sep in (".", ","):
        parts = digits.split(sep)
        if len(parts) > 2 or (len(parts) == 2 and len(parts[1]) == 3):
            # 千位分隔符
            return digits.replace(sep, "")
    return digits.replace(",", ".")


def clean_price(value: Any) -> float:
    """模型偶尔返回 "1.250.000" 或 "$ 99.90" 这类字符串"""
    if isinstance(value, bool):
        raise GenerationError(f"Invalid price in model output: {value!r}")
    if isinstance(value, (int, float)):
        price = float(value)
    else:
        try:
            price = float(_strip_separators(clean_text(value)))
        except ValueError:
            raise GenerationError(f"Invalid price in model output: {value!r}")
    if price < 0:
        raise GenerationError(f"Negative price in model output: {price}")
    return price


def normalize_product(ai_json: Dict[str, Any], currency_code: str) -> ProductDraft:
    """
    将模型返回的 JSON 转换为 ProductDraft。

    Args:
        ai_json: 模型返回的 JSON（已解析）
        currency_code: 目标市场货币，无论模型返回什么都以此为准

    Returns:
        ProductDraft

    Raises:
        GenerationError: 缺少必填字段或字段无法解析
    """
    if not isinstance(ai_json, dict):
        raise GenerationError("Model output is not a JSON object")

    missing = [name for name in REQUIRED_FIELDS if name not in ai_json]
    if missing:
        raise GenerationError(f"Model output is missing fields: {', '.join(missing)}")

    product_name = clean_name(ai_json.get("productName"))
    if not product_name:
        raise GenerationError("Model output has an empty productName")

    return ProductDraft(
        product_name=product_name,
        description=clean_text(ai_json.get("description")),
        meta_description=clean_text(ai_json.get("metaDescription")),
        tags=clean_tags(ai_json.get("tags")),
        price=clean_price(ai_json.get("price")),
        currency=currency_code,
        image_prompt=clean_text(ai_json.get("imagePrompt")),
        image_prompt2=clean_text(ai_json.get("imagePrompt2")),
        raw_ai_json=ai_json,
    )
