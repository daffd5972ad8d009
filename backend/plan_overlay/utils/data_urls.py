"""Base64 data URL helpers."""

from __future__ import annotations

import base64
import binascii
import io
import re

from PIL import Image, UnidentifiedImageError

from plan_overlay.errors import DocumentReadError

DATA_URL_REGEX = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a data URL into ``(media_type, raw bytes)``."""
    media_type, payload = split_data_url(data_url)
    try:
        raw = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise DocumentReadError(f"Invalid base64 payload: {e}") from e
    if not raw:
        raise DocumentReadError("Empty document payload")
    return media_type, raw


def to_data_url(raw: bytes, media_type: str = "image/png") -> str:
    return f"data:{media_type};base64,{base64.b64encode(raw).decode('ascii')}"


def is_pdf(media_type: str) -> bool:
    return media_type == "application/pdf"


def open_image(raw: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise DocumentReadError(f"Unreadable image: {e}") from e
    return img


def image_aspect_ratio(raw: bytes) -> float:
    """Width / height of an encoded image."""
    img = open_image(raw)
    width, height = img.size
    if width <= 0 or height <= 0:
        raise DocumentReadError(f"Degenerate image size {width}x{height}")
    return width / height


def split_data_url(data_url: str) -> tuple[str, str]:
    """``(media_type, base64 payload)`` without decoding."""
    match = DATA_URL_REGEX.match(data_url.strip())
    if match is None:
        raise DocumentReadError("Not a base64 data URL")
    return match.group(1), match.group(2)


def image_media_type(raw: bytes) -> str:
    img = open_image(raw)
    return Image.MIME.get(img.format or "", "image/png")
