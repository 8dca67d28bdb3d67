"""CLI entry point for receipt-extract."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path

import click

from receipt_extract.config import load_config
from receipt_extract.errors import (
    ConfigurationError,
    ExtractionError,
    UnsupportedInputError,
    user_message,
)
from receipt_extract.models import RECEIPT_CATEGORIES, InputPart
from receipt_extract.pipeline import extract_receipt

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_BAD_INPUT = 2
EXIT_NOT_CONFIGURED = 3


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Receipt Extract: turn receipt photos into bookkeeping records."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def extract(files: tuple[Path, ...]) -> None:
    """Extract one receipt from FILES, given in reading order."""
    try:
        config = load_config()
        parts = [_read_part(path, config.max_upload_bytes) for path in files]
        result = asyncio.run(extract_receipt(parts, config))
    except ExtractionError as exc:
        logger.debug("Extraction failed", exc_info=True)
        click.echo(f"Error: {user_message(exc)}", err=True)
        raise click.exceptions.Exit(_exit_code(exc)) from exc

    click.echo(result.model_dump_json(indent=2))


@cli.command()
def categories() -> None:
    """List the accepted expense categories."""
    for name in RECEIPT_CATEGORIES:
        click.echo(name)


def _read_part(path: Path, max_upload_bytes: int) -> InputPart:
    """Read a file and guess its MIME type from the extension."""
    size = path.stat().st_size
    if size > max_upload_bytes:
        msg = (
            f"File too large: {path.name} "
            f"(maximum is {max_upload_bytes // (1024 * 1024)}MB)"
        )
        raise UnsupportedInputError(msg)
    mime_type, _encoding = mimetypes.guess_type(path.name)
    return InputPart(
        data=path.read_bytes(), mime_type=mime_type or "application/octet-stream"
    )


def _exit_code(exc: ExtractionError) -> int:
    if isinstance(exc, ConfigurationError):
        return EXIT_NOT_CONFIGURED
    if isinstance(exc, UnsupportedInputError):
        return EXIT_BAD_INPUT
    return EXIT_FAILURE
