"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import asyncio
import functools
import json
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

import structlog
import typer
from pydantic import ValidationError

from booking_intake.models.candidate import Candidate, ExistingRecord
from booking_intake.models.config import IntakeConfig
from booking_intake.models.import_job import ImportJob, ImportJobStatus
from booking_intake.observability.logging import configure_logging
from booking_intake.orchestration.runner import ImportJobRunner
from booking_intake.services.config_manager import ConfigManager, ConfigValidationError
from booking_intake.utils.cancellation import CancellationToken
from booking_intake.utils.exceptions import IntakeError

# Configure structured logging
configure_logging()
logger = structlog.get_logger()

# Type variable for decorator
F = TypeVar("F", bound=Callable)

STATUS_COLORS = {
    ImportJobStatus.COMPLETED: typer.colors.GREEN,
    ImportJobStatus.NEEDS_REVIEW: typer.colors.YELLOW,
    ImportJobStatus.FAILED: typer.colors.RED,
}


def load_config(config_path: Optional[Path]) -> IntakeConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to configuration file, or None for defaults.

    Returns:
        Validated IntakeConfig.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    if config_path is None:
        config = IntakeConfig()
    else:
        config_manager = ConfigManager(config_path=str(config_path))
        try:
            config = config_manager.load_config()
        except (FileNotFoundError, ConfigValidationError) as e:
            typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    configure_logging(level=config.logging.level, json_output=config.logging.json_output)
    return config


def build_runner(config: IntakeConfig, store_dir: Optional[Path]) -> ImportJobRunner:
    return ImportJobRunner.from_config(config, store_dir=store_dir)


def load_existing_records(records_path: Optional[Path]) -> List[ExistingRecord]:
    """Read the existing-records snapshot from a JSON array file.

    Raises:
        typer.Exit: If the file is missing or malformed.
    """
    if records_path is None:
        return []
    try:
        with open(records_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("expected a JSON array of records")
        return [ExistingRecord.model_validate(item) for item in data]
    except (OSError, ValueError, ValidationError) as e:
        display_error(f"Could not read existing records: {e}")
        raise typer.Exit(code=1)


def new_cancel_token(deadline_seconds: Optional[float]) -> CancellationToken:
    """Token that fires after ``deadline_seconds``; must be called inside a loop."""
    token = CancellationToken()
    if deadline_seconds:
        asyncio.get_running_loop().call_later(
            deadline_seconds,
            token.cancel,
            f"Deadline of {deadline_seconds:g}s exceeded",
        )
    return token


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except IntakeError as e:
            logger.warning("command_rejected", error=str(e))
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)


def display_candidate(index: int, candidate: Candidate) -> None:
    """Print the populated fields and duplicate warnings of one candidate."""
    typer.echo(f"\nCandidate {index} (confidence {candidate.confidence:.2f})")
    populated = [(path, fv) for path, fv in candidate.iter_fields() if not fv.is_empty]
    if not populated:
        display_warning("  (no fields extracted)")
    for path, fv in populated:
        typer.echo(f"  {path}: {fv.value} [{fv.confidence:.2f}]")
    for match in candidate.duplicates:
        display_warning(
            f"  Possible duplicate of {match.existing_record_id} "
            f"(score {match.score:.0%}, matched: {', '.join(match.matched_fields)})"
        )


def display_job(job: ImportJob, as_json: bool = False) -> None:
    """Print a job summary, or the full job document with ``as_json``."""
    if as_json:
        typer.echo(job.model_dump_json(indent=2))
        return

    color = STATUS_COLORS.get(job.status, typer.colors.WHITE)
    typer.secho(f"Job {job.id}: {job.status.value}", fg=color, bold=True)
    typer.echo(f"  Organization: {job.org_id}")
    typer.echo(f"  Attempt: {job.attempt}")
    typer.echo(f"  Mode: {job.extraction_mode.value}")
    if job.source_file_metadata:
        meta = job.source_file_metadata
        fmt = meta.format.value if meta.format else "unknown"
        typer.echo(f"  Source: {meta.file_name} ({fmt}, {meta.size_bytes} bytes)")
        if meta.is_low_text:
            display_warning(
                "  Low text: this looks like a scanned document; try an image upload for OCR"
            )

    for index, candidate in enumerate(job.candidates):
        display_candidate(index, candidate)

    if job.errors:
        typer.echo("\nErrors:")
        for message in job.error_messages:
            display_error(f"  {message}")
