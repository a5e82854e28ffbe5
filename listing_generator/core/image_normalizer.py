# core/image_normalizer.py

from __future__ import annotations

import base64
import binascii
import re
from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from listing_generator.core.errors import DecodeError, RenderTargetError, ValidationError

MAX_WIDTH = 1024
MAX_HEIGHT = 1024
DEFAULT_QUALITY = 0.85

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]*)(?P<params>(;[^,;]*)*?);base64,(?P<data>.*)$", re.DOTALL)


def decode_data_uri(data_uri: str) -> bytes:
    """Return the raw bytes behind a base64 ``data:`` URI."""
    match = _DATA_URI_RE.match(data_uri or "")
    if not match:
        raise DecodeError("Not a base64 data URI")
    try:
        return base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 image data: {e}") from e


def fit_within(width: int, height: int, max_width: int = MAX_WIDTH, max_height: int = MAX_HEIGHT) -> Tuple[int, int]:
    """Scale down keeping the aspect ratio so neither side exceeds its bound."""
    if width > height:
        if width > max_width:
            height = height * max_width / width
            width = max_width
    elif height > max_height:
        width = width * max_height / height
        height = max_height
    return max(1, round(width)), max(1, round(height))


def normalize(image_data_uri: str, quality: float = DEFAULT_QUALITY) -> str:
    """
    压缩图片：等比缩放到 1024 以内并转为 JPEG，控制提交到保存接口的体积。

    Args:
        image_data_uri: 原图 data URI
        quality: JPEG 质量（0~1）

    Returns:
        data:image/jpeg;base64,... 字符串

    Raises:
        DecodeError: 无法解码原图
        RenderTargetError: 无法创建输出画布或编码失败
    """
    if not 0 < quality <= 1:
        raise ValidationError(f"quality must be in (0, 1], got {quality}")

    raw = decode_data_uri(image_data_uri)
    try:
        img = Image.open(BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Could not load the image for compression: {e}") from e

    width, height = fit_within(*img.size)

    try:
        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            canvas = Image.new("RGB", img.size, (255, 255, 255))
            canvas.paste(img, mask=img.getchannel("A"))
            img = canvas
        elif img.mode != "RGB":
            img = img.convert("RGB")

        if (width, height) != img.size:
            img = img.resize((width, height), Image.Resampling.LANCZOS)

        buffer = BytesIO()
        img.save(buffer, format="JPEG", quality=int(round(quality * 100)))
    except (OSError, ValueError, MemoryError) as e:
        raise RenderTargetError(f"Could not render the compressed image: {e}") from e

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"
