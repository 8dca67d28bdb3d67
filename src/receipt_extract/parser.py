"""Decode the backend's text reply into raw fields."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from receipt_extract.errors import ParseError

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"\A\s*```[A-Za-z0-9_+-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```\s*\Z")


def strip_fences(text: str) -> str:
    """Remove a leading and/or trailing triple-backtick fence."""
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def parse_reply(reply: str) -> dict[str, Any]:
    """Parse a reply as a JSON object.

    Only fence markers are repaired. Anything else that is not a JSON
    object raises ParseError with the original text attached.
    """
    cleaned = strip_fences(reply)
    try:
        data = json.loads(cleaned)
    except ValueError as exc:
        logger.error("Failed to parse backend reply: %r", reply[:500])
        msg = f"Backend reply is not valid JSON: {exc}"
        raise ParseError(msg, raw_text=reply) from exc

    if not isinstance(data, dict):
        logger.error("Backend reply is not a JSON object: %r", reply[:500])
        msg = f"Backend reply is a JSON {type(data).__name__}, expected an object"
        raise ParseError(msg, raw_text=reply)

    return data
