"""Turn raw decoded fields into a typed ReceiptData.

Validation never fails: a field that is missing or has the wrong shape
becomes None so that a partially read receipt is still returned.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date
from typing import Any

from receipt_extract.models import (
    AMOUNT_FIELDS,
    OTHER_CATEGORY,
    RECEIPT_CATEGORIES,
    ReceiptData,
)

logger = logging.getLogger(__name__)

# Rounding on printed receipts can leave the bucket sum a cent or two off.
GROSS_TOLERANCE = 0.02

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# 1.234 or 12.345.678 with no decimal comma
_DOT_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(\.\d{3})+$")


def validate_fields(fields: dict[str, Any], raw_text: str) -> ReceiptData:
    """Build a ReceiptData from decoded fields, defaulting bad values."""
    amounts = {name: as_number(fields.get(name)) for name in AMOUNT_FIELDS}
    result = ReceiptData(
        **amounts,
        date=as_iso_date(fields.get("date")),
        vendor=as_text(fields.get("vendor")),
        category=clamp_category(fields.get("category")),
        raw_text=raw_text,
    )
    _check_buckets(result)
    return result


def as_number(value: Any) -> float | None:
    """Coerce a JSON value to a finite float, or None.

    Strings are accepted in either dot or German comma notation. A dotted
    string with groups of three digits and no comma, such as ``"1.234"``,
    is read as German thousands grouping.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        number_or_none = _parse_decimal(value)
        if number_or_none is None:
            return None
        number = number_or_none
    else:
        return None
    return number if math.isfinite(number) else None


def _parse_decimal(text: str) -> float | None:
    cleaned = text.replace("€", "").replace("%", "").replace(" ", "").strip()
    if "," in cleaned:
        if "." in cleaned and cleaned.rfind(".") > cleaned.rfind(","):
            # 1,234.56
            cleaned = cleaned.replace(",", "")
        else:
            # 1.234,56 or 15,97
            cleaned = cleaned.replace(".", "").replace(",", ".")
    elif _DOT_THOUSANDS.match(cleaned):
        cleaned = cleaned.replace(".", "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def as_iso_date(value: Any) -> str | None:
    """Return ``value`` if it is a real calendar date in YYYY-MM-DD form."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _ISO_DATE.match(text):
        return None
    try:
        date.fromisoformat(text)
    except ValueError:
        return None
    return text


def as_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def clamp_category(value: Any) -> str | None:
    """Return a known category, the Other sentinel, or None when absent."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip() in RECEIPT_CATEGORIES:
        return value.strip()
    logger.info("Unknown category %r mapped to %r", value, OTHER_CATEGORY)
    return OTHER_CATEGORY


def _check_buckets(result: ReceiptData) -> None:
    """Log when both VAT buckets disagree with the gross total.

    The record is left as the backend produced it.
    """
    parts = (result.vat7_net, result.vat7_tax, result.vat19_net, result.vat19_tax)
    if result.gross_amount is None or any(part is None for part in parts):
        return
    bucket_total = sum(part for part in parts if part is not None)
    if abs(bucket_total - result.gross_amount) > GROSS_TOLERANCE:
        logger.warning(
            "VAT buckets sum to %.2f but gross is %.2f",
            bucket_total,
            result.gross_amount,
        )
