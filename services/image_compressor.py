"""Adaptive JPEG compression service.

Wraps Pillow to re-encode uploaded images as JPEG. The encode quality is the
user-requested value, raised to a floor of 40 whenever the detector found
regions in the image, so faces, text and objects stay legible.

Public class: `AdaptiveCompressor`

Example:
    compressor = AdaptiveCompressor()
    jpeg_bytes = await compressor.compress(image_bytes, regions, quality=60)
"""
from __future__ import annotations

import asyncio
import io
import logging
import re
from typing import Optional, Sequence, Tuple

from PIL import Image

from models.image_record import DetectedRegion

LOGGER = logging.getLogger(__name__)

DEFAULT_QUALITY = 60
REGION_QUALITY_FLOOR = 40
# Range Pillow's JPEG encoder accepts.
CODEC_MIN_QUALITY = 1
CODEC_MAX_QUALITY = 100

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class ImageCodecError(Exception):
    """Raised when image bytes cannot be decoded or re-encoded."""


def parse_quality(raw: Optional[str], default: int = DEFAULT_QUALITY) -> int:
    """Read the leading integer of `raw`, falling back to `default` when there is none or it is zero."""
    if raw is None:
        return default
    match = _LEADING_INT.match(str(raw))
    value = int(match.group(1)) if match else 0
    return value or default


def effective_quality(requested: int, regions: Sequence[DetectedRegion]) -> int:
    """Apply the region floor: never below 40 when regions were detected."""
    if regions:
        return max(requested, REGION_QUALITY_FLOOR)
    return requested


def read_image_format(image_bytes: bytes) -> str:
    """Return the lower-case container format (e.g. `jpeg`, `png`) of the image."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            fmt = img.format
    except Exception as exc:
        raise ImageCodecError("Decoded bytes are not a supported image format") from exc
    if not fmt:
        raise ImageCodecError("Unable to determine image format")
    return fmt.lower()


class AdaptiveCompressor:
    """Re-encode images to JPEG at a region-aware quality.

    Args:
        background: Color used when flattening images with alpha, since JPEG
            cannot carry transparency. Defaults to white.
    """

    def __init__(self, background: Tuple[int, int, int] | None = None):
        self.background = background or (255, 255, 255)

    async def compress(self, image_bytes: bytes, regions: Sequence[DetectedRegion], quality: int = DEFAULT_QUALITY) -> bytes:
        """Return JPEG bytes encoded at the effective quality.

        Raises:
            ImageCodecError: If the image cannot be decoded or encoded.
        """
        target = effective_quality(quality, regions)
        LOGGER.info("Compressing image: requested quality=%s effective quality=%s regions=%d", quality, target, len(regions))
        # Pillow encoding is blocking -> run in thread
        return await asyncio.to_thread(self.encode_jpeg, image_bytes, target)

    def encode_jpeg(self, image_bytes: bytes, quality: int) -> bytes:
        codec_quality = min(max(quality, CODEC_MIN_QUALITY), CODEC_MAX_QUALITY)
        if codec_quality != quality:
            LOGGER.warning("Quality %s is outside %d-%d; encoding at %d", quality, CODEC_MIN_QUALITY, CODEC_MAX_QUALITY, codec_quality)

        try:
            with Image.open(io.BytesIO(image_bytes)) as src:
                img = self._to_rgb(src)
                out_io = io.BytesIO()
                img.save(out_io, format="JPEG", quality=codec_quality)
        except Exception as exc:
            raise ImageCodecError(f"Error compressing image: {exc}") from exc
        return out_io.getvalue()

    def _to_rgb(self, src: Image.Image) -> Image.Image:
        if src.mode in ("RGB", "L"):
            return src.convert(src.mode)
        # Flatten alpha against the background color
        rgba = src.convert("RGBA")
        background = Image.new("RGB", rgba.size, self.background)
        background.paste(rgba, mask=rgba.split()[3])
        return background
