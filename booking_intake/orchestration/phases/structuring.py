"""Structuring phase - normalized text to candidates."""

from booking_intake.models.candidate import Candidate
from booking_intake.models.import_job import ExtractionMode, ImportJobStatus
from booking_intake.orchestration.phases.base import JobPhase
from booking_intake.services.structured_extractor import StructuringResult


class StructuringPhase(JobPhase[StructuringResult]):
    """Structuring phase.

    Rule-based mode runs the regex extractor locally; the AI modes call
    the structured extractor, ``ai_enhanced`` with the stricter prompt
    and the fallback provider first. Field-group issues are recorded as
    non-fatal errors. Blank text skips both extractors, so no backend
    call is made for an empty document. The phase always yields at least
    one candidate, possibly empty.
    """

    @property
    def name(self) -> str:
        return "structuring"

    @property
    def status(self) -> ImportJobStatus:
        return ImportJobStatus.STRUCTURING

    async def execute(self) -> StructuringResult:
        context = self.context
        job = context.job
        text = job.normalized_text

        if not (text or "").strip():
            result = StructuringResult(candidates=[Candidate.empty()], mode=context.mode)
            self.logger.info("structuring_skipped_empty_text", mode=context.mode.value)
        elif context.mode == ExtractionMode.RULE_BASED:
            result = context.rule_based_extractor.extract(text)
        else:
            result = await context.structured_extractor.structure(
                text,
                enhanced=context.mode == ExtractionMode.AI_ENHANCED,
                cancel_token=context.cancel_token,
            )

        for issue in result.issues:
            context.add_error(
                self.name, issue.kind, f"{issue.group}: {issue.message}", fatal=False
            )

        job.candidates = result.candidates or [Candidate.empty()]
        job.extraction_mode = result.mode
        job.rebuild_confidence_map()

        self.logger.info(
            "candidates_structured",
            mode=result.mode.value,
            candidates=len(job.candidates),
            issues=len(result.issues),
        )
        return result
