"""Per-attempt context shared by the job phases."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from booking_intake.models.candidate import ExistingRecord
from booking_intake.models.config import JobSettings
from booking_intake.models.extraction import ExtractionResult
from booking_intake.models.import_job import (
    ErrorKind,
    ExtractionMode,
    ImportJob,
    ImportJobStatus,
    JobError,
)
from booking_intake.orchestration.state import transition
from booking_intake.services.duplicate_scorer import DuplicateScorer
from booking_intake.services.format_extractors import FormatExtractor
from booking_intake.services.job_store import JobStore
from booking_intake.services.rule_based_extractor import RuleBasedExtractor
from booking_intake.services.structured_extractor import StructuredExtractor
from booking_intake.utils.cancellation import CancellationToken

logger = structlog.get_logger()


@dataclass
class JobContext:
    """State and services for one attempt of one ImportJob.

    ``existing_records`` is a snapshot taken when the attempt starts;
    the scorer never sees the caller's live collection.
    """

    job: ImportJob
    format_extractor: FormatExtractor
    structured_extractor: StructuredExtractor
    rule_based_extractor: RuleBasedExtractor
    duplicate_scorer: DuplicateScorer
    settings: JobSettings = field(default_factory=JobSettings)
    store: Optional[JobStore] = None

    # Inputs
    content: Optional[bytes] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    existing_records: Tuple[ExistingRecord, ...] = ()
    mode: ExtractionMode = ExtractionMode.AI_ASSISTED
    cancel_token: Optional[CancellationToken] = None

    # Accumulated state
    extraction: Optional[ExtractionResult] = None

    def add_error(
        self, phase: str, kind: ErrorKind, message: str, fatal: bool = False
    ) -> JobError:
        """Append an entry to the job's audit trail for this attempt."""
        error = JobError(
            attempt=self.job.attempt,
            phase=phase,
            kind=kind,
            message=message,
            fatal=fatal,
        )
        self.job.errors.append(error)
        log = logger.error if fatal else logger.warning
        log(
            "job_error_recorded",
            job_id=self.job.id,
            attempt=error.attempt,
            phase=phase,
            kind=kind.value,
            error=message,
            fatal=fatal,
        )
        return error

    @property
    def attempt_errors(self) -> List[JobError]:
        return self.job.errors_for_attempt()

    def transition(self, target: ImportJobStatus, operation: Optional[str] = None) -> None:
        transition(self.job, target, operation)
        self.save()

    def save(self) -> None:
        if self.store is not None:
            self.store.save(self.job)
