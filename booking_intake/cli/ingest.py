"""Import command: submit a document or forwarded email as an import job."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from booking_intake.cli.utils import (
    build_runner,
    display_error,
    display_job,
    handle_errors,
    load_config,
    load_existing_records,
    new_cancel_token,
)
from booking_intake.models.import_job import ExtractionMode, ImportJobStatus


@handle_errors
def import_command(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Document to import"),
    org_id: str = typer.Option(..., "--org", "-o", help="Owning organization id"),
    mime_type: Optional[str] = typer.Option(None, "--mime", "-m", help="Declared MIME type"),
    email: bool = typer.Option(
        False, "--email", help="Treat the file as forwarded-email text"
    ),
    records_path: Optional[Path] = typer.Option(
        None, "--records", "-r", help="JSON array of existing shows to check duplicates against"
    ),
    mode: ExtractionMode = typer.Option(
        ExtractionMode.AI_ASSISTED, "--mode", help="rule_based or ai_assisted"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to intake config YAML"
    ),
    store_dir: Optional[Path] = typer.Option(None, "--store", help="Job store directory"),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Cancel the attempt after this many seconds"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the job document as JSON"),
):
    """Run a document through extraction, structuring and duplicate scoring."""
    if mode == ExtractionMode.AI_ENHANCED:
        display_error("ai_enhanced is only available through 'improve'")
        raise typer.Exit(code=2)

    config = load_config(config_path)
    records = load_existing_records(records_path)
    runner = build_runner(config, store_dir)
    content = file_path.read_bytes()

    async def _run():
        token = new_cancel_token(deadline)
        if email:
            return await runner.submit_text(
                content.decode("utf-8", errors="replace"),
                org_id,
                existing_records=records,
                mode=mode,
                cancel_token=token,
                file_name=file_path.name,
            )
        return await runner.submit(
            content,
            file_path.name,
            org_id,
            mime_type=mime_type,
            existing_records=records,
            mode=mode,
            cancel_token=token,
        )

    job = asyncio.run(_run())
    display_job(job, as_json=as_json)

    if job.status == ImportJobStatus.FAILED:
        raise typer.Exit(code=1)
