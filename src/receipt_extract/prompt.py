"""Instruction text and output contract for the vision backend."""

from __future__ import annotations

import json

from receipt_extract.models import AMOUNT_FIELDS, OUTPUT_FIELDS, RECEIPT_CATEGORIES

PROMPT_VERSION = "2"


def _schema_type(name: str) -> str:
    if name in AMOUNT_FIELDS:
        return "number | null"
    if name == "date":
        return '"YYYY-MM-DD" | null'
    return "string | null"


def render_schema() -> str:
    """Render the output schema with one line per output field."""
    lines = [f'  "{name}": {_schema_type(name)}' for name in OUTPUT_FIELDS]
    return "{\n" + ",\n".join(lines) + "\n}"


SINGLE_RATE_EXAMPLE = {
    "net_amount": 84.03,
    "tax_amount": 15.97,
    "gross_amount": 100.00,
    "tax_rate_percent": 19,
    "vat7_net": None,
    "vat7_tax": None,
    "vat19_net": 84.03,
    "vat19_tax": 15.97,
    "date": "2024-03-15",
    "vendor": "REWE",
    "category": "Verpflegung & Bewirtung",
}

MIXED_RATE_EXAMPLE = {
    "net_amount": 59.24,
    "tax_amount": 4.17,
    "gross_amount": 63.41,
    "tax_rate_percent": 19,
    "vat7_net": 59.03,
    "vat7_tax": 4.13,
    "vat19_net": 0.21,
    "vat19_tax": 0.04,
    "date": "2024-05-02",
    "vendor": "EDEKA",
    "category": "Verpflegung & Bewirtung",
}

_TEMPLATE = """\
Receipt extraction prompt v{version}.

You are a bookkeeping assistant for a German small business. Analyze the \
receipt above and extract the fields below.
{multipart}
Rules:
- All amounts are in euros. Write them as plain decimal numbers with a dot \
as decimal separator and no currency symbol (e.g. 15.97, not "15,97 €").
- Dates use the format YYYY-MM-DD.
- If a value cannot be found, set it to null.
- category must be exactly one of the following values:
{categories}

VAT (MwSt.) rules:
- Look for the VAT breakdown table (often labelled "MwSt.", "USt." or with \
codes such as A/B next to 7% and 19%).
- If both 7% and 19% appear, fill vat7_net/vat7_tax and vat19_net/vat19_tax \
independently from the table. net_amount and tax_amount are the sums over \
both rates, gross_amount is the receipt total and tax_rate_percent is the \
highest rate present (19).
- If only one rate appears, fill only the matching pair and set the other \
pair to null. net_amount, tax_amount and tax_rate_percent then describe \
that single rate.

Output schema:
{schema}

Example with a single VAT rate:
{single_example}

Example with mixed VAT rates:
{mixed_example}

Return ONLY the JSON object, without any additional text or Markdown \
formatting."""

_MULTIPART_NOTE = """
The {count} attached files are consecutive parts of ONE physical receipt, \
in reading order from top to bottom. Read them together as a single \
receipt, not as {count} separate receipts.
"""


def build_instructions(part_count: int = 1) -> str:
    """Return the instruction text for a request with ``part_count`` parts."""
    multipart = _MULTIPART_NOTE.format(count=part_count) if part_count > 1 else ""
    return _TEMPLATE.format(
        multipart=multipart,
        categories="\n".join(f"  - {name}" for name in RECEIPT_CATEGORIES),
        version=PROMPT_VERSION,
        schema=render_schema(),
        single_example=json.dumps(SINGLE_RATE_EXAMPLE, indent=2, ensure_ascii=False),
        mixed_example=json.dumps(MIXED_RATE_EXAMPLE, indent=2, ensure_ascii=False),
    )
