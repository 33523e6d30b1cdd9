"""
File-backed import job store.

Each job is one JSON document named after its id. Saves are atomic
(write to a temp file, then rename) so a crash never leaves a
half-written job behind.
"""

import json
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from booking_intake.models.import_job import ImportJob
from booking_intake.utils.exceptions import JobNotFoundError
from booking_intake.utils.security import JOB_ID_PATTERN, PathSanitizer

logger = structlog.get_logger()


class JobStore:
    """
    Persist and reload ImportJobs.

    Job ids are user-supplied on the CLI, so every path goes through
    PathSanitizer.
    """

    def __init__(self, base_dir: Path):
        """
        Initialize the store.

        Args:
            base_dir: Directory holding one ``<job_id>.json`` per job
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._sanitizer = PathSanitizer(self.base_dir)

        logger.debug("job_store_initialized", base_dir=str(self.base_dir))

    def save(self, job: ImportJob) -> Path:
        """
        Save a job atomically.

        Args:
            job: Job to persist

        Returns:
            Path of the written file
        """
        job_file = self._job_path(job.id)
        temp_file = job_file.with_suffix(".tmp")

        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(job.model_dump(mode="json"), f, indent=2)

        temp_file.replace(job_file)

        logger.debug(
            "job_saved",
            job_id=job.id,
            status=job.status.value,
            errors=len(job.errors),
        )
        return job_file

    def load(self, job_id: str) -> Optional[ImportJob]:
        """
        Load a job.

        Returns:
            ImportJob if it exists and parses, None otherwise
        """
        job_file = self._job_path(job_id)

        if not job_file.exists():
            logger.debug("job_not_found", job_id=job_id)
            return None

        try:
            with open(job_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ImportJob.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("job_load_error", job_id=job_id, error=str(e))
            return None

    def require(self, job_id: str) -> ImportJob:
        """Load a job or raise JobNotFoundError."""
        job = self.load(job_id)
        if job is None:
            raise JobNotFoundError(f"Import job not found: {job_id}")
        return job

    def list_jobs(self, org_id: Optional[str] = None) -> List[ImportJob]:
        """All stored jobs, oldest first, optionally filtered by organization."""
        jobs = []
        for job_file in sorted(self.base_dir.glob("*.json")):
            if not JOB_ID_PATTERN.match(job_file.stem):
                continue
            job = self.load(job_file.stem)
            if job is None:
                continue
            if org_id is not None and job.org_id != org_id:
                continue
            jobs.append(job)
        return sorted(jobs, key=lambda j: j.created_at)

    def delete(self, job_id: str) -> bool:
        job_file = self._job_path(job_id)
        if not job_file.exists():
            return False
        job_file.unlink()
        logger.info("job_deleted", job_id=job_id)
        return True

    def _job_path(self, job_id: str) -> Path:
        return self._sanitizer.job_document(job_id)
