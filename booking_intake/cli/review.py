"""Review commands: show, list, retry and improve stored import jobs."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from booking_intake.cli.utils import (
    build_runner,
    display_info,
    display_job,
    display_warning,
    handle_errors,
    load_config,
    load_existing_records,
    new_cancel_token,
)
from booking_intake.models.import_job import ExtractionMode

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to intake config YAML")
STORE_OPTION = typer.Option(None, "--store", help="Job store directory")
RECORDS_OPTION = typer.Option(
    None, "--records", "-r", help="JSON array of existing shows to check duplicates against"
)


@handle_errors
def show_command(
    job_id: str = typer.Argument(..., help="Import job id"),
    config_path: Optional[Path] = CONFIG_OPTION,
    store_dir: Optional[Path] = STORE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the job document as JSON"),
):
    """Show a stored import job with its candidates and full error history."""
    runner = build_runner(load_config(config_path), store_dir)
    assert runner.store is not None
    display_job(runner.store.require(job_id), as_json=as_json)


@handle_errors
def list_command(
    org_id: Optional[str] = typer.Option(None, "--org", "-o", help="Filter by organization"),
    config_path: Optional[Path] = CONFIG_OPTION,
    store_dir: Optional[Path] = STORE_OPTION,
):
    """List stored import jobs, oldest first."""
    runner = build_runner(load_config(config_path), store_dir)
    assert runner.store is not None
    jobs = runner.store.list_jobs(org_id)
    if not jobs:
        display_warning("No import jobs found")
        return
    for job in jobs:
        typer.echo(
            f"{job.id}  {job.status.value:<13} attempt={job.attempt} "
            f"candidates={len(job.candidates)} errors={len(job.errors)}"
        )


@handle_errors
def retry_command(
    job_id: str = typer.Argument(..., help="Import job id"),
    file_path: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Source document to re-read"
    ),
    records_path: Optional[Path] = RECORDS_OPTION,
    mode: Optional[ExtractionMode] = typer.Option(
        None, "--mode", help="rule_based or ai_assisted (default: previous mode)"
    ),
    config_path: Optional[Path] = CONFIG_OPTION,
    store_dir: Optional[Path] = STORE_OPTION,
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Cancel the attempt after this many seconds"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the job document as JSON"),
):
    """Re-run a failed or needs-review job from extraction onwards."""
    runner = build_runner(load_config(config_path), store_dir)
    assert runner.store is not None
    job = runner.store.require(job_id)
    records = load_existing_records(records_path)
    content = file_path.read_bytes() if file_path else None

    async def _run():
        return await runner.retry(
            job,
            existing_records=records,
            content=content,
            mode=mode,
            cancel_token=new_cancel_token(deadline),
        )

    display_info(f"Retrying job {job_id} (attempt {job.attempt + 1})")
    display_job(asyncio.run(_run()), as_json=as_json)


@handle_errors
def improve_command(
    job_id: str = typer.Argument(..., help="Import job id"),
    records_path: Optional[Path] = RECORDS_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    store_dir: Optional[Path] = STORE_OPTION,
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Cancel the attempt after this many seconds"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the job document as JSON"),
):
    """Re-run structuring with the enhanced prompt over the extracted text."""
    runner = build_runner(load_config(config_path), store_dir)
    assert runner.store is not None
    job = runner.store.require(job_id)
    records = load_existing_records(records_path)

    async def _run():
        return await runner.improve(
            job, existing_records=records, cancel_token=new_cancel_token(deadline)
        )

    display_info(f"Improving job {job_id} (attempt {job.attempt + 1})")
    display_job(asyncio.run(_run()), as_json=as_json)
