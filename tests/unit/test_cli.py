"""Tests for receipt_extract.cli."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from receipt_extract.cli import cli
from receipt_extract.errors import BackendFault, ConfigurationError
from receipt_extract.models import RECEIPT_CATEGORIES, InputPart, ReceiptData

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


class TestExtractCommand:
    """Tests for `receipt-extract extract`."""

    def test_prints_json(self, tmp_path: Path, small_jpeg: bytes) -> None:
        path = tmp_path / "receipt.jpg"
        path.write_bytes(small_jpeg)
        result_data = ReceiptData(vendor="REWE", gross_amount=100.0, raw_text="{}")

        with patch(
            "receipt_extract.cli.extract_receipt",
            new=AsyncMock(return_value=result_data),
        ) as mock_extract:
            result = CliRunner().invoke(cli, ["extract", str(path)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["vendor"] == "REWE"
        parts = mock_extract.call_args[0][0]
        assert parts == [InputPart(small_jpeg, "image/jpeg")]

    def test_multiple_files_keep_order(self, tmp_path: Path) -> None:
        first = tmp_path / "b-top.png"
        second = tmp_path / "a-bottom.pdf"
        first.write_bytes(b"png")
        second.write_bytes(b"%PDF")

        with patch(
            "receipt_extract.cli.extract_receipt",
            new=AsyncMock(return_value=ReceiptData(raw_text="{}")),
        ) as mock_extract:
            CliRunner().invoke(cli, ["extract", str(first), str(second)])

        parts = mock_extract.call_args[0][0]
        assert [p.mime_type for p in parts] == ["image/png", "application/pdf"]

    def test_unsupported_file_exit_code(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")  # pragma: allowlist secret
        path = tmp_path / "receipt.gif"
        path.write_bytes(b"GIF89a")

        result = CliRunner().invoke(cli, ["extract", str(path)])

        assert result.exit_code == 2
        assert "Unsupported file type" in result.output

    def test_upload_limit_enforced(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RECEIPT_MAX_UPLOAD_BYTES", "10")
        path = tmp_path / "receipt.jpg"
        path.write_bytes(b"x" * 11)

        with patch("receipt_extract.cli.extract_receipt") as mock_extract:
            result = CliRunner().invoke(cli, ["extract", str(path)])

        assert result.exit_code == 2
        assert "File too large" in result.output
        mock_extract.assert_not_called()

    def test_configuration_error_exit_code(
        self, tmp_path: Path, small_jpeg: bytes
    ) -> None:
        path = tmp_path / "receipt.jpg"
        path.write_bytes(small_jpeg)

        with patch(
            "receipt_extract.cli.extract_receipt",
            new=AsyncMock(side_effect=ConfigurationError("no key")),
        ):
            result = CliRunner().invoke(cli, ["extract", str(path)])

        assert result.exit_code == 3
        assert "not configured" in result.output

    def test_backend_error_is_generic(self, tmp_path: Path, small_jpeg: bytes) -> None:
        path = tmp_path / "receipt.jpg"
        path.write_bytes(small_jpeg)

        with patch(
            "receipt_extract.cli.extract_receipt",
            new=AsyncMock(side_effect=BackendFault("HTTP 429")),
        ):
            result = CliRunner().invoke(cli, ["extract", str(path)])

        assert result.exit_code == 1
        assert "Please try again" in result.output
        assert "429" not in result.output

    def test_requires_a_file(self) -> None:
        result = CliRunner().invoke(cli, ["extract"])
        assert result.exit_code != 0


class TestCategoriesCommand:
    """Tests for `receipt-extract categories`."""

    def test_lists_all_categories(self) -> None:
        result = CliRunner().invoke(cli, ["categories"])

        assert result.exit_code == 0
        assert result.output.splitlines() == list(RECEIPT_CATEGORIES)
