"""Build the multimodal request from normalized parts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from receipt_extract.errors import UnsupportedInputError
from receipt_extract.models import (
    PDF_MIME,
    DocumentBlock,
    ExtractionRequest,
    ImageBlock,
    InstructionBlock,
    MediaBlock,
    NormalizedPart,
)
from receipt_extract.prompt import build_instructions

if TYPE_CHECKING:
    from collections.abc import Sequence


def assemble(parts: Sequence[NormalizedPart]) -> ExtractionRequest:
    """Turn ordered parts into one request with a trailing instruction.

    Several parts are treated as fragments of a single receipt.
    """
    if not parts:
        msg = "At least one receipt file is required"
        raise UnsupportedInputError(msg)

    media = tuple(_to_block(part) for part in parts)
    instruction = InstructionBlock(text=build_instructions(len(parts)))
    return ExtractionRequest(media=media, instruction=instruction)


def _to_block(part: NormalizedPart) -> MediaBlock:
    if part.mime_type == PDF_MIME:
        return DocumentBlock(data=part.data)
    return ImageBlock(data=part.data, media_type=part.mime_type)
