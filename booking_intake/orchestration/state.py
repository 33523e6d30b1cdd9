"""Import job lifecycle transitions.

    pending -> extracting -> structuring -> scoring -> completed
                                                    -> needs_review
                                                    -> failed

``retry`` re-enters at ``pending`` from ``failed``/``needs_review``;
``improve`` re-enters at ``structuring`` from ``completed``/``needs_review``.
Any in-flight status may fall to ``failed`` (extraction failure or
cancellation).
"""

from typing import Dict, FrozenSet, Optional

import structlog

from booking_intake.models.import_job import ImportJob, ImportJobStatus
from booking_intake.utils.exceptions import InvalidTransitionError

logger = structlog.get_logger()

S = ImportJobStatus

ALLOWED_TRANSITIONS: Dict[ImportJobStatus, FrozenSet[ImportJobStatus]] = {
    S.PENDING: frozenset({S.EXTRACTING, S.FAILED}),
    S.EXTRACTING: frozenset({S.STRUCTURING, S.FAILED}),
    S.STRUCTURING: frozenset({S.SCORING, S.FAILED}),
    S.SCORING: frozenset({S.COMPLETED, S.NEEDS_REVIEW, S.FAILED}),
    S.COMPLETED: frozenset({S.STRUCTURING}),
    S.NEEDS_REVIEW: frozenset({S.PENDING, S.STRUCTURING}),
    S.FAILED: frozenset({S.PENDING}),
}

RETRYABLE_STATUSES = frozenset({S.FAILED, S.NEEDS_REVIEW})
IMPROVABLE_STATUSES = frozenset({S.COMPLETED, S.NEEDS_REVIEW})


def can_transition(current: ImportJobStatus, target: ImportJobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(
    job: ImportJob, target: ImportJobStatus, operation: Optional[str] = None
) -> ImportJob:
    """Move ``job`` to ``target`` in place.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the move
    """
    current = job.status
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value, operation)

    job.status = target
    job.touch()
    logger.debug(
        "job_transition",
        job_id=job.id,
        from_status=current.value,
        to_status=target.value,
        attempt=job.attempt,
    )
    return job
