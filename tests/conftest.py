"""Shared test fixtures."""

from __future__ import annotations

import json
import random
from io import BytesIO
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from receipt_extract.config import ExtractionConfig


@pytest.fixture
def config() -> ExtractionConfig:
    """Provide a test configuration with two fallback models."""
    return ExtractionConfig(
        api_key="sk-ant-test-key",  # pragma: allowlist secret
        models=("primary-model", "fallback-model"),
    )


@pytest.fixture
def small_jpeg() -> bytes:
    """Provide a tiny valid JPEG."""
    buf = BytesIO()
    Image.new("RGB", (32, 48), color=(200, 200, 200)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def noisy_png() -> bytes:
    """Provide a 400x400 random-noise PNG that compresses poorly."""
    img = Image.frombytes("RGB", (400, 400), _noise(400 * 400 * 3))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def single_rate_reply() -> str:
    """Provide a fenced backend reply for a single 19% receipt."""
    body = {
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
    return f"```json\n{json.dumps(body)}\n```"


@pytest.fixture
def make_agent() -> Any:
    """Provide a builder for mock pydantic-ai Agents."""
    return _make_agent


def _make_agent(output: str | None = None, error: Exception | None = None) -> Any:
    """Build a mock pydantic-ai Agent whose ``run`` returns or raises."""
    agent = MagicMock()
    if error is not None:
        agent.run = AsyncMock(side_effect=error)
    else:
        result = MagicMock()
        result.output = output
        agent.run = AsyncMock(return_value=result)
    return agent


def _noise(size: int) -> bytes:
    return random.Random(1234).randbytes(size)
