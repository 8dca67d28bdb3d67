"""Image re-encoding to fit the inference backend's size ceiling.

Images whose base64-encoded size exceeds the ceiling are re-encoded as JPEG
with decreasing quality, then downscaled once if quality alone is not
enough. PDFs are never touched. Pillow is used as the imaging backend.
"""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import TYPE_CHECKING

from PIL import Image, ImageOps

from receipt_extract.errors import UnsupportedInputError
from receipt_extract.models import (
    ACCEPTED_MIME_TYPES,
    JPEG_MIME,
    PDF_MIME,
    InputPart,
    NormalizedPart,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

START_QUALITY = 85
QUALITY_STEP = 10
QUALITY_FLOOR = 20
DOWNSCALE_FACTOR = 0.8
DOWNSCALE_QUALITY = 60

_MIME_ALIASES = {"image/jpg": JPEG_MIME, "image/pjpeg": JPEG_MIME}


def canonical_mime(mime_type: str) -> str:
    """Return the canonical form of an accepted MIME type.

    Raises UnsupportedInputError for anything outside the accepted set.
    """
    normalized = mime_type.strip().lower()
    normalized = _MIME_ALIASES.get(normalized, normalized)
    if normalized not in ACCEPTED_MIME_TYPES:
        msg = f"Unsupported file type: {mime_type}"
        raise UnsupportedInputError(msg)
    return normalized


def encoded_size(byte_length: int) -> int:
    """Size in bytes after base64 expansion, ``ceil(n * 4 / 3)``."""
    return -(-byte_length * 4 // 3)


def fits(data: bytes, max_encoded_bytes: int) -> bool:
    return encoded_size(len(data)) <= max_encoded_bytes


def normalize_part(part: InputPart, *, max_encoded_bytes: int) -> NormalizedPart:
    """Return ``part`` with a canonical MIME type, compressed if needed.

    A failed re-encode is not fatal: the original bytes are passed through
    and the backend gets to decide.
    """
    mime_type = canonical_mime(part.mime_type)

    if mime_type == PDF_MIME or fits(part.data, max_encoded_bytes):
        return NormalizedPart(data=part.data, mime_type=mime_type)

    try:
        compressed = _compress(part.data, max_encoded_bytes)
    except Exception:
        logger.warning(
            "Re-encoding failed for %s part (%d bytes); passing original through",
            mime_type,
            len(part.data),
            exc_info=True,
        )
        return NormalizedPart(data=part.data, mime_type=mime_type)

    if compressed is None:
        logger.warning(
            "Could not compress %s part (%d bytes) under %d encoded bytes; "
            "passing original through",
            mime_type,
            len(part.data),
            max_encoded_bytes,
        )
        return NormalizedPart(data=part.data, mime_type=mime_type)

    logger.info(
        "Compressed %s part: %.2fMB -> %.2fMB",
        mime_type,
        len(part.data) / 1024 / 1024,
        len(compressed) / 1024 / 1024,
    )
    return NormalizedPart(data=compressed, mime_type=JPEG_MIME)


async def normalize_parts(
    parts: Sequence[InputPart], *, max_encoded_bytes: int
) -> list[NormalizedPart]:
    """Normalize every part in worker threads, preserving input order."""
    results = await asyncio.gather(
        *(
            asyncio.to_thread(
                normalize_part, part, max_encoded_bytes=max_encoded_bytes
            )
            for part in parts
        )
    )
    return list(results)


def _compress(data: bytes, max_encoded_bytes: int) -> bytes | None:
    """Re-encode ``data`` as JPEG until it fits, or return None."""
    with Image.open(BytesIO(data)) as source:
        img = _prepare(source)

    quality = START_QUALITY
    while quality >= QUALITY_FLOOR:
        encoded = _encode_jpeg(img, quality)
        logger.debug("quality=%d size=%d", quality, len(encoded))
        if fits(encoded, max_encoded_bytes):
            return encoded
        quality -= QUALITY_STEP

    width, height = img.size
    new_width = max(1, int(width * DOWNSCALE_FACTOR))
    new_height = max(1, round(height * new_width / width))
    resized = img.resize((new_width, new_height), Image.Resampling.LANCZOS)
    encoded = _encode_jpeg(resized, DOWNSCALE_QUALITY)
    logger.debug(
        "downscaled to %dx%d quality=%d size=%d",
        new_width,
        new_height,
        DOWNSCALE_QUALITY,
        len(encoded),
    )
    if fits(encoded, max_encoded_bytes):
        return encoded
    return None


def _prepare(img: Image.Image) -> Image.Image:
    """Apply EXIF orientation and convert to a JPEG-compatible mode."""
    oriented = ImageOps.exif_transpose(img)
    if oriented.mode != "RGB":
        oriented = oriented.convert("RGB")
    # Force pixel data to load before the source file closes.
    oriented.load()
    return oriented


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()
