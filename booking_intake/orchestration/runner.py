"""Import job orchestration.

Drives one attempt of an ImportJob through its phases and decides the
terminal status. Only this layer turns accumulated results into
``failed`` / ``needs_review`` / ``completed``; the extractors and the
scorer never raise past their own boundary.

Usage:
    runner = ImportJobRunner.from_config(config)
    job = await runner.submit(content, "contract.pdf", org_id="org-1")
    if job.status == ImportJobStatus.NEEDS_REVIEW:
        job = await runner.improve(job, existing_records)
"""

import asyncio
from pathlib import Path
from typing import Iterable, Optional

from booking_intake.models.candidate import ExistingRecord
from booking_intake.models.config import IntakeConfig, JobSettings
from booking_intake.models.import_job import (
    ErrorKind,
    ExtractionMode,
    ImportJob,
    ImportJobStatus,
)
from booking_intake.observability.context import correlation_id_context
from booking_intake.observability.logging import bind_context, clear_context, get_logger
from booking_intake.observability.metrics import ACTIVE_JOBS, IMPORT_JOBS_TOTAL
from booking_intake.orchestration.context import JobContext
from booking_intake.orchestration.phases import (
    ExtractionPhase,
    ScoringPhase,
    StructuringPhase,
)
from booking_intake.orchestration.state import (
    IMPROVABLE_STATUSES,
    RETRYABLE_STATUSES,
    transition,
)
from booking_intake.services.duplicate_scorer import DuplicateScorer
from booking_intake.services.format_extractors import FormatExtractor
from booking_intake.services.job_store import JobStore
from booking_intake.services.llm.service import LLMService
from booking_intake.services.rule_based_extractor import RuleBasedExtractor
from booking_intake.services.structured_extractor import StructuredExtractor
from booking_intake.utils.cancellation import CancellationToken
from booking_intake.utils.exceptions import (
    CancellationRequestedError,
    InvalidTransitionError,
)

# bound per call; a module-level bind would freeze the default stdout config
COMPONENT = "import_runner"

EMAIL_FILE_NAME = "email.txt"


class ImportJobRunner:
    """Submits, retries and improves import jobs.

    Attributes:
        format_extractor: Bytes to text
        structured_extractor: Text to candidates via the LLM backend
        rule_based_extractor: Text to candidates via regexes
        duplicate_scorer: Candidate vs existing records
        store: Optional persistence; every transition is saved when set
        settings: Review threshold and default extraction mode
    """

    def __init__(
        self,
        format_extractor: Optional[FormatExtractor] = None,
        structured_extractor: Optional[StructuredExtractor] = None,
        rule_based_extractor: Optional[RuleBasedExtractor] = None,
        duplicate_scorer: Optional[DuplicateScorer] = None,
        store: Optional[JobStore] = None,
        settings: Optional[JobSettings] = None,
    ) -> None:
        self.format_extractor = format_extractor or FormatExtractor()
        self.structured_extractor = structured_extractor or StructuredExtractor()
        self.rule_based_extractor = rule_based_extractor or RuleBasedExtractor()
        self.duplicate_scorer = duplicate_scorer or DuplicateScorer()
        self.store = store
        self.settings = settings or JobSettings()

    @classmethod
    def from_config(
        cls, config: IntakeConfig, store_dir: Optional[Path] = None
    ) -> "ImportJobRunner":
        """Build a runner with every service configured from ``config``.

        Args:
            config: Loaded intake configuration
            store_dir: Job store directory (default: ``config.jobs.store_dir``)
        """
        llm_service = LLMService(config.llm) if config.llm else None
        return cls(
            format_extractor=FormatExtractor(config.extraction),
            structured_extractor=StructuredExtractor(
                llm_service=llm_service, settings=config.structuring
            ),
            duplicate_scorer=DuplicateScorer(config.scoring),
            store=JobStore(store_dir or Path(config.jobs.store_dir)),
            settings=config.jobs,
        )

    async def submit(
        self,
        content: bytes,
        file_name: str,
        org_id: str,
        mime_type: Optional[str] = None,
        existing_records: Iterable[ExistingRecord] = (),
        mode: Optional[ExtractionMode] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ImportJob:
        """Create a job for an uploaded file and run its first attempt.

        Args:
            content: Raw file bytes
            file_name: Declared file name
            org_id: Owning organization
            mime_type: Declared MIME type, if any
            existing_records: Organization's shows to check duplicates against
            mode: ``rule_based`` or ``ai_assisted`` (default from settings)
            cancel_token: Token the caller may fire to abandon the attempt

        Returns:
            The job in a terminal status
        """
        resolved_mode = self._initial_mode(mode)
        job = ImportJob(org_id=org_id, extraction_mode=resolved_mode)

        get_logger(COMPONENT).info(
            "import_job_submitted",
            job_id=job.id,
            org_id=org_id,
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=len(content),
            mode=resolved_mode.value,
        )

        context = self._context(
            job,
            content=content,
            file_name=file_name,
            mime_type=mime_type,
            existing_records=existing_records,
            mode=resolved_mode,
            cancel_token=cancel_token,
        )
        context.save()
        return await self._run_attempt(context, from_extraction=True)

    async def submit_text(
        self,
        text: str,
        org_id: str,
        existing_records: Iterable[ExistingRecord] = (),
        mode: Optional[ExtractionMode] = None,
        cancel_token: Optional[CancellationToken] = None,
        file_name: str = EMAIL_FILE_NAME,
    ) -> ImportJob:
        """Create a job for forwarded-email text (subject, sender and body)."""
        return await self.submit(
            text.encode("utf-8"),
            file_name,
            org_id,
            mime_type="text/plain",
            existing_records=existing_records,
            mode=mode,
            cancel_token=cancel_token,
        )

    async def retry(
        self,
        job: ImportJob,
        existing_records: Iterable[ExistingRecord] = (),
        content: Optional[bytes] = None,
        mode: Optional[ExtractionMode] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ImportJob:
        """Re-run extraction, structuring and scoring from scratch.

        Allowed from ``failed`` and ``needs_review``. Previous errors are
        kept; the replaced candidates are archived in
        ``previous_attempts``. Without ``content`` the text kept from the
        previous attempt is re-extracted.

        Raises:
            InvalidTransitionError: If the job is in any other status
        """
        if job.status not in RETRYABLE_STATUSES:
            raise InvalidTransitionError(
                job.status.value, ImportJobStatus.PENDING.value, "retry"
            )

        if mode is None:
            mode = (
                job.extraction_mode
                if job.extraction_mode != ExtractionMode.AI_ENHANCED
                else self.settings.default_extraction_mode
            )
        resolved_mode = self._initial_mode(mode)
        self._begin_attempt(job, ImportJobStatus.PENDING, "retry")

        metadata = job.source_file_metadata
        context = self._context(
            job,
            content=content,
            file_name=metadata.file_name if metadata else None,
            mime_type=metadata.mime_type if metadata else None,
            existing_records=existing_records,
            mode=resolved_mode,
            cancel_token=cancel_token,
        )
        context.save()
        return await self._run_attempt(context, from_extraction=True)

    async def improve(
        self,
        job: ImportJob,
        existing_records: Iterable[ExistingRecord] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> ImportJob:
        """Re-run structuring and scoring over the already-extracted text.

        Allowed from ``completed`` and ``needs_review``. Uses the
        ``ai_enhanced`` mode; ``raw_text`` and ``normalized_text`` are
        left untouched.

        Raises:
            InvalidTransitionError: If the job is in any other status
        """
        if job.status not in IMPROVABLE_STATUSES:
            raise InvalidTransitionError(
                job.status.value, ImportJobStatus.STRUCTURING.value, "improve"
            )

        self._begin_attempt(job, ImportJobStatus.STRUCTURING, "improve")
        context = self._context(
            job,
            existing_records=existing_records,
            mode=ExtractionMode.AI_ENHANCED,
            cancel_token=cancel_token,
        )
        context.save()
        return await self._run_attempt(context, from_extraction=False)

    async def _run_attempt(self, context: JobContext, from_extraction: bool) -> ImportJob:
        job = context.job

        with correlation_id_context(job.id):
            bind_context(org_id=job.org_id, attempt=job.attempt)
            ACTIVE_JOBS.inc()
            try:
                if from_extraction:
                    extraction = await ExtractionPhase(context).run()
                    if extraction.is_unusable:
                        context.transition(ImportJobStatus.FAILED)
                        return job

                await StructuringPhase(context).run()
                target = await ScoringPhase(context).run()
                context.transition(target)
                return job

            except CancellationRequestedError as e:
                self._fail(context, ErrorKind.CANCELLED, str(e))
                return job
            except asyncio.CancelledError:
                self._fail(context, ErrorKind.CANCELLED, "Import job cancelled")
                raise
            except Exception as e:
                self._fail(context, ErrorKind.INTERNAL, f"Unexpected error: {e}")
                raise
            finally:
                ACTIVE_JOBS.dec()
                if job.status.is_terminal:
                    IMPORT_JOBS_TOTAL.labels(status=job.status.value).inc()
                get_logger(COMPONENT).info(
                    "import_job_finished",
                    job_id=job.id,
                    attempt=job.attempt,
                    status=job.status.value,
                    mode=job.extraction_mode.value,
                    candidates=len(job.candidates),
                    aggregate_confidence=job.aggregate_confidence,
                    duplicates=job.duplicate_count,
                    attempt_errors=len(job.errors_for_attempt()),
                )
                clear_context()

    def _fail(self, context: JobContext, kind: ErrorKind, message: str) -> None:
        if context.job.status.is_terminal:
            return
        phase = context.job.status.value
        context.add_error(phase, kind, message, fatal=True)
        context.transition(ImportJobStatus.FAILED)

    def _begin_attempt(
        self, job: ImportJob, target: ImportJobStatus, operation: str
    ) -> None:
        job.previous_attempts.append(job.snapshot())
        job.attempt += 1
        job.candidates = []
        job.confidence_map = {}
        transition(job, target, operation)
        get_logger(COMPONENT).info(
            "import_job_reentered",
            job_id=job.id,
            operation=operation,
            attempt=job.attempt,
            status=job.status.value,
        )

    def _initial_mode(self, mode: Optional[ExtractionMode]) -> ExtractionMode:
        if mode is None:
            return self.settings.default_extraction_mode
        if mode == ExtractionMode.AI_ENHANCED:
            raise ValueError("ai_enhanced is only used by improve")
        return mode

    def _context(
        self,
        job: ImportJob,
        content: Optional[bytes] = None,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
        existing_records: Iterable[ExistingRecord] = (),
        mode: ExtractionMode = ExtractionMode.AI_ASSISTED,
        cancel_token: Optional[CancellationToken] = None,
    ) -> JobContext:
        return JobContext(
            job=job,
            format_extractor=self.format_extractor,
            structured_extractor=self.structured_extractor,
            rule_based_extractor=self.rule_based_extractor,
            duplicate_scorer=self.duplicate_scorer,
            settings=self.settings,
            store=self.store,
            content=content,
            file_name=file_name,
            mime_type=mime_type,
            existing_records=tuple(existing_records),
            mode=mode,
            cancel_token=cancel_token,
        )
