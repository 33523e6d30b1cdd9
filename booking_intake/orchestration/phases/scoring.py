"""Scoring phase - duplicate detection and the terminal decision."""

from booking_intake.models.import_job import ImportJobStatus
from booking_intake.observability.metrics import CANDIDATE_CONFIDENCE, DUPLICATES_FLAGGED
from booking_intake.orchestration.phases.base import JobPhase


class ScoringPhase(JobPhase[ImportJobStatus]):
    """Scoring phase.

    Attaches duplicate matches to every candidate, refreshes the
    confidence map and decides the terminal status. ``completed``
    requires the aggregate confidence to reach the review threshold,
    no duplicate matches and no errors recorded during this attempt;
    anything else goes to ``needs_review``.
    """

    @property
    def name(self) -> str:
        return "scoring"

    @property
    def status(self) -> ImportJobStatus:
        return ImportJobStatus.SCORING

    async def execute(self) -> ImportJobStatus:
        context = self.context
        job = context.job

        for candidate in job.candidates:
            candidate.refresh_confidence()
            candidate.duplicates = context.duplicate_scorer.score(
                candidate, context.existing_records
            )
            if candidate.duplicates:
                DUPLICATES_FLAGGED.inc(len(candidate.duplicates))
            CANDIDATE_CONFIDENCE.observe(candidate.confidence)

        job.rebuild_confidence_map()

        threshold = context.settings.review_confidence_threshold
        reasons = []
        if job.aggregate_confidence < threshold:
            reasons.append("low_confidence")
        if job.duplicate_count:
            reasons.append("duplicates_found")
        if context.attempt_errors:
            reasons.append("attempt_errors")

        target = ImportJobStatus.NEEDS_REVIEW if reasons else ImportJobStatus.COMPLETED
        self.logger.info(
            "scoring_decided",
            target=target.value,
            aggregate_confidence=job.aggregate_confidence,
            duplicates=job.duplicate_count,
            reasons=reasons,
        )
        return target
