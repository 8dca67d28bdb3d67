"""Configuration via environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from receipt_extract.errors import ConfigurationError

load_dotenv()

API_KEY_PREFIX = "sk-ant-"

DEFAULT_MODELS = (
    "claude-sonnet-4-5-20250929",
    "claude-haiku-4-5-20251001",
)

# Backend limit on the base64-encoded size of a single image.
DEFAULT_MAX_ENCODED_BYTES = 5 * 1024 * 1024
# Upload limit enforced by the hosting layer before the pipeline runs.
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_TOKENS = 1024


@dataclass(frozen=True)
class ExtractionConfig:
    """Immutable settings for one or many extraction calls."""

    api_key: str
    models: tuple[str, ...] = DEFAULT_MODELS
    max_encoded_bytes: int = DEFAULT_MAX_ENCODED_BYTES
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_tokens: int = DEFAULT_MAX_TOKENS


def check_api_key(key: str) -> None:
    """Raise ConfigurationError unless ``key`` looks like an Anthropic key.

    Only presence and prefix are checked; no network call is made.
    """
    if not key or not key.strip():
        msg = "ANTHROPIC_API_KEY is not configured"
        raise ConfigurationError(msg)
    if not key.startswith(API_KEY_PREFIX):
        msg = f"ANTHROPIC_API_KEY is malformed (expected prefix {API_KEY_PREFIX!r})"
        raise ConfigurationError(msg)


def get_models() -> tuple[str, ...]:
    """Return the model fallback chain, most capable first.

    Read from RECEIPT_MODELS as a comma-separated list.
    """
    raw = os.environ.get("RECEIPT_MODELS")
    if not raw:
        return DEFAULT_MODELS
    models = tuple(name.strip() for name in raw.split(",") if name.strip())
    if not models:
        msg = "RECEIPT_MODELS must name at least one model"
        raise ConfigurationError(msg)
    return models


def _get_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = int(value)
    except ValueError:
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigurationError(msg) from None
    if number <= 0:
        msg = f"{name} must be positive, got {number}"
        raise ConfigurationError(msg)
    return number


def _get_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        msg = f"{name} must be a number, got {value!r}"
        raise ConfigurationError(msg) from None
    if number <= 0:
        msg = f"{name} must be positive, got {number}"
        raise ConfigurationError(msg)
    return number


def load_config() -> ExtractionConfig:
    """Build an ExtractionConfig from environment variables.

    The API key is not validated here; the inference client checks it
    before its first request so a missing key surfaces per call.
    """
    return ExtractionConfig(
        api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        models=get_models(),
        max_encoded_bytes=_get_int(
            "RECEIPT_MAX_ENCODED_BYTES", DEFAULT_MAX_ENCODED_BYTES
        ),
        max_upload_bytes=_get_int("RECEIPT_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        timeout_seconds=_get_float("RECEIPT_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        max_tokens=_get_int("RECEIPT_MAX_TOKENS", DEFAULT_MAX_TOKENS),
    )
