"""Extract command: run format extraction only."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from booking_intake.cli.utils import (
    display_error,
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_config,
)
from booking_intake.services.format_extractors import FormatExtractor


@handle_errors
def extract_command(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Document to read"),
    mime_type: Optional[str] = typer.Option(None, "--mime", "-m", help="Declared MIME type"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to intake config YAML"
    ),
    show_text: bool = typer.Option(False, "--text", help="Print the extracted text"),
):
    """Extract raw text from a document and report quality signals."""
    config = load_config(config_path)
    extractor = FormatExtractor(config.extraction)

    result = asyncio.run(
        extractor.extract(file_path.read_bytes(), file_path.name, mime_type)
    )

    if result.error:
        display_error(f"Extraction failed: {result.error}")
        raise typer.Exit(code=1)

    display_success(f"Extracted {result.word_count} words from {file_path.name}")
    fmt = result.format.value if result.format else "unknown"
    display_info(f"  Format: {fmt} (backend: {result.backend or 'n/a'})")
    if result.page_count is not None:
        typer.echo(f"  Pages: {result.page_count}")
    if result.is_low_text:
        display_warning("  Low text: likely a scanned document without a text layer")

    if show_text:
        typer.echo("")
        typer.echo(result.text)
