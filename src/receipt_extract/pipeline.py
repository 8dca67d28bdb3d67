"""End-to-end receipt extraction."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from receipt_extract.assembler import assemble
from receipt_extract.errors import ExtractionTimeoutError, UnsupportedInputError
from receipt_extract.inference import InferenceClient
from receipt_extract.normalizer import normalize_parts
from receipt_extract.parser import parse_reply
from receipt_extract.validator import validate_fields

if TYPE_CHECKING:
    from collections.abc import Sequence

    from receipt_extract.config import ExtractionConfig
    from receipt_extract.models import InputPart, ReceiptData

logger = logging.getLogger(__name__)


async def extract_receipt(
    parts: Sequence[InputPart],
    config: ExtractionConfig,
    *,
    client: InferenceClient | None = None,
) -> ReceiptData:
    """Extract one ReceiptData from the ordered parts of a single receipt.

    The whole call is bounded by ``config.timeout_seconds``. Accepts an
    optional client for dependency injection in tests.
    """
    if client is None:
        client = InferenceClient(config)

    try:
        return await asyncio.wait_for(
            _run(parts, config, client), timeout=config.timeout_seconds
        )
    except TimeoutError as exc:
        msg = f"Receipt extraction did not finish within {config.timeout_seconds:g}s"
        raise ExtractionTimeoutError(msg) from exc


async def _run(
    parts: Sequence[InputPart], config: ExtractionConfig, client: InferenceClient
) -> ReceiptData:
    if not parts:
        msg = "At least one receipt file is required"
        raise UnsupportedInputError(msg)

    logger.debug("Normalizing %d part(s)", len(parts))
    normalized = await normalize_parts(
        parts, max_encoded_bytes=config.max_encoded_bytes
    )
    request = assemble(normalized)
    reply = await client.infer(request)
    fields = parse_reply(reply)
    return validate_fields(fields, reply)
