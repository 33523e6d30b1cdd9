"""Import job data models.

An ImportJob is the persisted unit of work for one ingested document.
It serializes to a single JSON document (``model_dump(mode="json")``)
with the candidates embedded.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from booking_intake.models.candidate import Candidate
from booking_intake.models.extraction import DocumentFormat, DocumentType


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImportJobStatus(str, Enum):
    PENDING = "pending"
    EXTRACTING = "extracting"
    STRUCTURING = "structuring"
    SCORING = "scoring"
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {ImportJobStatus.COMPLETED, ImportJobStatus.NEEDS_REVIEW, ImportJobStatus.FAILED}
)


class ExtractionMode(str, Enum):
    """How the candidates of an attempt were produced"""

    RULE_BASED = "rule_based"
    AI_ASSISTED = "ai_assisted"
    AI_ENHANCED = "ai_enhanced"


class ErrorKind(str, Enum):
    UNSUPPORTED_FORMAT = "unsupported_format"
    EXTRACTION_FAILURE = "extraction_failure"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    MALFORMED_MODEL_OUTPUT = "malformed_model_output"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    INTERNAL = "internal_error"


class JobError(BaseModel):
    """One audit-trail entry. Entries are appended, never removed."""

    attempt: int = Field(ge=1)
    phase: str
    kind: ErrorKind
    message: str
    fatal: bool = False
    recorded_at: datetime = Field(default_factory=utc_now)

    def render(self) -> str:
        level = "error" if self.fatal else "warning"
        return f"[attempt {self.attempt}] {self.phase} {level} ({self.kind.value}): {self.message}"


class SourceFileMetadata(BaseModel):
    file_name: str
    mime_type: Optional[str] = None
    size_bytes: int = Field(default=0, ge=0)
    format: Optional[DocumentFormat] = None
    document_type: DocumentType = DocumentType.OTHER
    page_count: Optional[int] = None
    word_count: Optional[int] = None
    is_low_text: bool = False


class AttemptSnapshot(BaseModel):
    """State of the job as it stood before a retry or improve re-ran it"""

    attempt: int
    status: ImportJobStatus
    extraction_mode: ExtractionMode
    candidates: List[Candidate] = Field(default_factory=list)
    confidence_map: Dict[str, float] = Field(default_factory=dict)
    recorded_at: datetime = Field(default_factory=utc_now)


class ImportJob(BaseModel):
    """Persisted record of one ingestion, reviewable and retryable"""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    org_id: str
    status: ImportJobStatus = ImportJobStatus.PENDING
    raw_text: str = ""
    normalized_text: str = ""
    extraction_mode: ExtractionMode = ExtractionMode.AI_ASSISTED
    candidates: List[Candidate] = Field(default_factory=list)
    confidence_map: Dict[str, float] = Field(default_factory=dict)
    errors: List[JobError] = Field(default_factory=list)
    source_file_metadata: Optional[SourceFileMetadata] = None
    attempt: int = Field(default=1, ge=1)
    previous_attempts: List[AttemptSnapshot] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def error_messages(self) -> List[str]:
        """Every recorded error, oldest first, rendered for display."""
        return [error.render() for error in self.errors]

    def errors_for_attempt(self, attempt: Optional[int] = None) -> List[JobError]:
        target = self.attempt if attempt is None else attempt
        return [error for error in self.errors if error.attempt == target]

    @property
    def duplicate_count(self) -> int:
        return sum(len(candidate.duplicates) for candidate in self.candidates)

    @property
    def aggregate_confidence(self) -> float:
        """Lowest candidate confidence, 0 when there are no candidates."""
        if not self.candidates:
            return 0.0
        return min(candidate.confidence for candidate in self.candidates)

    def snapshot(self) -> AttemptSnapshot:
        return AttemptSnapshot(
            attempt=self.attempt,
            status=self.status,
            extraction_mode=self.extraction_mode,
            candidates=[c.model_copy(deep=True) for c in self.candidates],
            confidence_map=dict(self.confidence_map),
        )

    def rebuild_confidence_map(self) -> Dict[str, float]:
        confidence_map: Dict[str, float] = {}
        for index, candidate in enumerate(self.candidates):
            confidence_map[f"candidates[{index}].confidence"] = candidate.confidence
            confidence_map.update(candidate.confidence_map(f"candidates[{index}]."))
        self.confidence_map = confidence_map
        return confidence_map

    def touch(self) -> None:
        self.updated_at = utc_now()
