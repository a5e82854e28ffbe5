# config/settings.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

from listing_generator.core.errors import InvalidCredentialsError, ValidationError
from listing_generator.core.state_store import StateStore

load_dotenv()

logger = logging.getLogger(__name__)

# 项目根目录
BASE_DIR = Path(__file__).resolve().parent.parent

# === 本地配置存储 ===
SETTINGS_FILE = Path(os.getenv("LISTING_SETTINGS_FILE", BASE_DIR / "data" / "settings.json"))

# === AI 模型 ===
TEXT_MODEL = os.getenv("LISTING_TEXT_MODEL", "gpt-4o-mini")
IMAGE_MODEL = os.getenv("LISTING_IMAGE_MODEL", "gpt-image-1")

# === 远程端点默认值 ===
DEFAULT_SAVE_URL = "https://compraspar.com/save-product.php"
DEFAULT_CATEGORIES_URL = "https://compraspar.com/get-categories.php"
HTTP_TIMEOUT = 60

# === 生成选项（固定词表） ===
LANGUAGES = ("es", "en")
TONES = ("persuasive", "professional", "friendly", "technical")
IMAGE_STYLES = ("studio", "lifestyle", "minimalist", "closeup")
ASPECT_RATIOS = ("1:1", "4:3", "16:9")

DEFAULT_LANGUAGE = "es"
DEFAULT_TONE = "persuasive"
DEFAULT_TEMPERATURE = 0.8
DEFAULT_IMAGE_STYLE = "studio"
DEFAULT_ASPECT_RATIO = "1:1"
DEFAULT_UNIT = "UNI"

# 存储键名（固定）
KEY_API_KEY = "api_key"
KEY_SAVE_URL = "product_api_url"
KEY_CATEGORIES_URL = "categories_api_url"
KEY_TONE = "gen_tone"
KEY_TEMPERATURE = "gen_temperature"
KEY_IMAGE_STYLE = "gen_imageStyle"
KEY_ASPECT_RATIO = "gen_aspectRatio"
KEY_LANGUAGE = "language"
KEY_UNIT = "unit"


@dataclass
class Settings:
    """Process-wide credentials and generation preferences."""

    api_key: str = ""
    save_url: str = DEFAULT_SAVE_URL
    categories_url: str = DEFAULT_CATEGORIES_URL
    tone: str = DEFAULT_TONE
    temperature: float = DEFAULT_TEMPERATURE
    image_style: str = DEFAULT_IMAGE_STYLE
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    language: str = DEFAULT_LANGUAGE
    unit: str = DEFAULT_UNIT

    def to_store(self) -> Dict[str, Any]:
        return {
            KEY_API_KEY: self.api_key,
            KEY_SAVE_URL: self.save_url,
            KEY_CATEGORIES_URL: self.categories_url,
            KEY_TONE: self.tone,
            KEY_TEMPERATURE: self.temperature,
            KEY_IMAGE_STYLE: self.image_style,
            KEY_ASPECT_RATIO: self.aspect_ratio,
            KEY_LANGUAGE: self.language,
            KEY_UNIT: self.unit,
        }

    def copy(self, **changes: Any) -> "Settings":
        data = asdict(self)
        data.update(changes)
        return Settings(**data)


def check_choice(name: str, value: str, choices) -> str:
    if value not in choices:
        raise ValidationError(f"Invalid {name} {value!r}; expected one of: {', '.join(choices)}")
    return value


def check_temperature(value: Any) -> float:
    try:
        temperature = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid temperature {value!r}")
    if not 0.0 <= temperature <= 1.0:
        raise ValidationError(f"Temperature must be between 0 and 1, got {temperature}")
    return temperature


def validate_settings(settings: Settings) -> Settings:
    """Reject preferences outside the fixed vocabularies."""
    check_choice("language", settings.language, LANGUAGES)
    check_choice("tone", settings.tone, TONES)
    check_choice("image style", settings.image_style, IMAGE_STYLES)
    check_choice("aspect ratio", settings.aspect_ratio, ASPECT_RATIOS)
    settings.temperature = check_temperature(settings.temperature)
    return settings


def _pick(stored: Dict[str, Any], key: str, default: Any, choices=None) -> Any:
    value = stored.get(key)
    if value in (None, ""):
        return default
    if choices is not None and value not in choices:
        logger.warning("Ignoring stored %s=%r, falling back to %r", key, value, default)
        return default
    return value


def load_settings(store: Optional[StateStore] = None) -> Settings:
    """
    启动时读取配置。

    读取顺序：
    1. 本地 JSON 存储（data/settings.json）
    2. API key 缺失时读取环境变量 OPENAI_API_KEY（.env 已由 load_dotenv 载入）

    Returns:
        Settings 对象，交由调用方显式传给各组件
    """
    store = store or StateStore(SETTINGS_FILE)
    stored = store.all()

    api_key = (stored.get(KEY_API_KEY) or os.getenv("OPENAI_API_KEY") or "").strip()

    try:
        temperature = check_temperature(_pick(stored, KEY_TEMPERATURE, DEFAULT_TEMPERATURE))
    except ValidationError:
        logger.warning("Ignoring stored temperature %r", stored.get(KEY_TEMPERATURE))
        temperature = DEFAULT_TEMPERATURE

    return Settings(
        api_key=api_key,
        save_url=_pick(stored, KEY_SAVE_URL, DEFAULT_SAVE_URL),
        categories_url=_pick(stored, KEY_CATEGORIES_URL, DEFAULT_CATEGORIES_URL),
        tone=_pick(stored, KEY_TONE, DEFAULT_TONE, TONES),
        temperature=temperature,
        image_style=_pick(stored, KEY_IMAGE_STYLE, DEFAULT_IMAGE_STYLE, IMAGE_STYLES),
        aspect_ratio=_pick(stored, KEY_ASPECT_RATIO, DEFAULT_ASPECT_RATIO, ASPECT_RATIOS),
        language=_pick(stored, KEY_LANGUAGE, DEFAULT_LANGUAGE, LANGUAGES),
        unit=_pick(stored, KEY_UNIT, DEFAULT_UNIT),
    )


def commit_settings(
    settings: Settings,
    validate_key: Optional[Callable[[str], bool]] = None,
    store: Optional[StateStore] = None,
) -> Settings:
    """
    保存配置（唯一的写入入口）。

    Args:
        settings: 新的配置
        validate_key: 校验 API key 的函数，返回 False 时拒绝保存
        store: 目标存储，默认 SETTINGS_FILE

    Raises:
        ValidationError: 选项不在固定词表中
        InvalidCredentialsError: API key 未通过校验（不会写入任何内容）
    """
    validate_settings(settings)
    settings.api_key = settings.api_key.strip()

    if settings.api_key and validate_key is not None and not validate_key(settings.api_key):
        raise InvalidCredentialsError("The API key was rejected by the provider; settings were not saved.")

    store = store or StateStore(SETTINGS_FILE)
    store.update(settings.to_store())
    logger.info("Settings saved to %s", store.filepath)
    return settings
