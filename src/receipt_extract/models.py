"""Domain and result models for receipt extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

from pydantic import BaseModel

JPEG_MIME = "image/jpeg"
PNG_MIME = "image/png"
PDF_MIME = "application/pdf"

ACCEPTED_MIME_TYPES = frozenset({JPEG_MIME, PNG_MIME, PDF_MIME})

# German bookkeeping categories as stored by the product.
ReceiptCategory = Literal[
    "Büromaterial & Ausstattung",
    "Fahrtkosten (Kraftstoff & Parkplatz)",
    "Fahrtkosten (ÖPNV & Bahn)",
    "Verpflegung & Bewirtung",
    "Unterkunft & Reisen",
    "Software & Lizenzen",
    "Hardware & Elektronik",
    "Telekommunikation & Internet",
    "Marketing & Werbung",
    "Website & Online-Dienste",
    "Steuerberatung",
    "Rechtsberatung",
    "Versicherungen",
    "Miete & Nebenkosten",
    "Weiterbildung",
    "Sonstiges",
]

RECEIPT_CATEGORIES: tuple[str, ...] = get_args(ReceiptCategory)
OTHER_CATEGORY: ReceiptCategory = "Sonstiges"


@dataclass(frozen=True)
class InputPart:
    """One uploaded file as received from the caller."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class NormalizedPart:
    """A part whose MIME type is canonical and whose size fits the backend."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class ImageBlock:
    """An image content block."""

    data: bytes
    media_type: str


@dataclass(frozen=True)
class DocumentBlock:
    """A PDF document content block."""

    data: bytes
    media_type: str = PDF_MIME


@dataclass(frozen=True)
class InstructionBlock:
    """The trailing instruction text."""

    text: str


MediaBlock = ImageBlock | DocumentBlock
ContentBlock = ImageBlock | DocumentBlock | InstructionBlock


@dataclass(frozen=True)
class ExtractionRequest:
    """Ordered media blocks followed by exactly one instruction block."""

    media: tuple[MediaBlock, ...]
    instruction: InstructionBlock

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        """All content blocks in the order they are sent."""
        return (*self.media, self.instruction)


class ReceiptData(BaseModel):
    """Structured financial record extracted from a receipt."""

    net_amount: float | None = None
    tax_amount: float | None = None
    gross_amount: float | None = None
    tax_rate_percent: float | None = None
    vat7_net: float | None = None
    vat7_tax: float | None = None
    vat19_net: float | None = None
    vat19_tax: float | None = None
    date: str | None = None
    vendor: str | None = None
    category: ReceiptCategory | None = None
    raw_text: str


# Keys the backend is asked to return, in schema order.
OUTPUT_FIELDS: tuple[str, ...] = tuple(
    name for name in ReceiptData.model_fields if name != "raw_text"
)

AMOUNT_FIELDS: tuple[str, ...] = tuple(
    name
    for name in OUTPUT_FIELDS
    if float in get_args(ReceiptData.model_fields[name].annotation)
)
