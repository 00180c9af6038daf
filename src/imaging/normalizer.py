# src/imaging/normalizer.py — v2
"""Decode, downscale and re-encode incoming images.

Every image is capped to ``image_max_dimension`` on its longest edge and
re-encoded as JPEG at ``image_jpeg_quality`` before it is fingerprinted or
sent to a provider, so the hash covers exactly the bytes a provider sees.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging

from PIL import Image, UnidentifiedImageError

from scavy.core.errors import InvalidImageError
from scavy.core.models import ImagePayload
from scavy.llm.models import ImageInput

logger = logging.getLogger(__name__)


def normalize_image(
    payload: ImagePayload,
    max_dimension: int = 1024,
    quality: int = 80,
    min_base64_chars: int = 100,
) -> ImageInput:
    """Normalise one base64 image into capped JPEG bytes.

    Args:
        payload: Client image (mime type + base64 data, optionally a data URL).
        max_dimension: Longest edge in pixels after resizing.
        quality: JPEG quality (1-95).
        min_base64_chars: Payloads shorter than this are rejected.

    Returns:
        ImageInput carrying JPEG bytes and final dimensions.

    Raises:
        InvalidImageError: If the payload is too small or not a decodable image.
    """
    data = payload.base64.strip()
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    if len(data) < min_base64_chars:
        raise InvalidImageError(
            f"Image payload too small ({len(data)} base64 chars, need {min_base64_chars})"
        )

    try:
        raw = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Invalid base64 image data: {e}") from e

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img = img.convert("RGB")
            if max(img.size) > max_dimension:
                img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=quality)
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImageError(f"Undecodable image ({payload.mime_type}): {e}") from e

    logger.debug("Normalised image %dx%d, %d bytes", width, height, buf.tell())
    return ImageInput(data=buf.getvalue(), media_type="image/jpeg", width=width, height=height)


def normalize_images(
    payloads: list[ImagePayload],
    max_dimension: int = 1024,
    quality: int = 80,
    min_base64_chars: int = 100,
) -> list[ImageInput]:
    """Normalise every image of a request, preserving order."""
    if not payloads:
        raise InvalidImageError("At least one image is required")
    return [
        normalize_image(p, max_dimension, quality, min_base64_chars) for p in payloads
    ]
