"""End-to-end tests for ImportJobRunner across the job lifecycle."""

import asyncio
from unittest.mock import patch

import pytest

from conftest import (
    MOHAWK_VENUE,
    PROMOTER_CONTACTS,
    SUMMER_TOUR_SHOW,
    FakeLLMService,
)
from booking_intake.models.candidate import ExistingRecord
from booking_intake.models.config import StructuringSettings
from booking_intake.models.import_job import (
    ErrorKind,
    ExtractionMode,
    ImportJobStatus,
)
from booking_intake.orchestration.runner import ImportJobRunner
from booking_intake.services.job_store import JobStore
from booking_intake.services.structured_extractor import StructuredExtractor
from booking_intake.utils.cancellation import CancellationToken
from booking_intake.utils.exceptions import InvalidTransitionError

OFFER_EMAIL = "Show at The Fillmore, March 3 2025, fee $5000"


@pytest.fixture
def store(tmp_path):
    return JobStore(tmp_path / "jobs")


def make_runner(llm, store=None, timeout=45.0) -> ImportJobRunner:
    return ImportJobRunner(
        structured_extractor=StructuredExtractor(
            llm_service=llm,
            settings=StructuringSettings(backend_timeout_seconds=timeout),
        ),
        store=store,
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_forwarded_email_is_never_failed(self, store) -> None:
        """Plain email text with no backend ends up reviewable."""
        runner = make_runner(None, store)

        job = await runner.submit_text(OFFER_EMAIL, org_id="org-1")

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        assert job.raw_text == OFFER_EMAIL
        assert len(job.candidates) >= 1
        assert job.source_file_metadata.mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_rule_based_pass_over_email(self, store) -> None:
        runner = make_runner(None, store)

        job = await runner.submit_text(
            OFFER_EMAIL, org_id="org-1", mode=ExtractionMode.RULE_BASED
        )

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        assert job.extraction_mode == ExtractionMode.RULE_BASED
        candidate = job.candidates[0]
        assert candidate.core.date.value == "2025-03-03"
        assert candidate.deal.fee.value == "5000"
        assert candidate.venue.name.value == "The Fillmore"
        # no title or artist: never confident enough to auto-complete
        assert candidate.confidence == 0.0
        assert job.errors == []

    @pytest.mark.asyncio
    async def test_empty_pdf_without_backend(self, store) -> None:
        runner = make_runner(None, store)

        job = await runner.submit(b"", "scan.pdf", "org-1", mime_type="application/pdf")

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        assert job.raw_text == ""
        assert job.source_file_metadata.is_low_text
        assert len(job.candidates) == 1
        assert job.candidates[0].confidence == 0.0
        # blank text never reaches the backend, so nothing is reported unavailable
        assert job.errors == []

    @pytest.mark.asyncio
    async def test_empty_pdf_with_healthy_backend_needs_review(
        self, healthy_llm, store
    ) -> None:
        runner = make_runner(healthy_llm, store)

        job = await runner.submit(b"", "scan.pdf", "org-1", mime_type="application/pdf")

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        assert job.source_file_metadata.is_low_text
        assert healthy_llm.calls == []
        assert len(job.candidates) == 1
        assert job.candidates[0].is_empty
        assert job.aggregate_confidence == 0.0
        assert job.errors == []

    @pytest.mark.asyncio
    async def test_blank_text_skips_rule_based_extraction(self, store) -> None:
        runner = make_runner(None, store)

        job = await runner.submit_text(
            "  \n\t ", org_id="org-1", mode=ExtractionMode.RULE_BASED
        )

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        assert job.extraction_mode == ExtractionMode.RULE_BASED
        assert job.candidates[0].is_empty

    @pytest.mark.asyncio
    async def test_confident_document_completes(self, healthy_llm, store) -> None:
        runner = make_runner(healthy_llm, store)

        job = await runner.submit_text("Summer Tour at Mohawk", org_id="org-1")

        assert job.status == ImportJobStatus.COMPLETED
        assert job.errors == []
        assert job.aggregate_confidence == pytest.approx(0.8)
        assert job.confidence_map["candidates[0].confidence"] == pytest.approx(0.8)
        assert job.confidence_map["candidates[0].core.date"] == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_duplicate_sends_job_to_review(self, healthy_llm, store) -> None:
        runner = make_runner(healthy_llm, store)
        records = [
            ExistingRecord(
                id="show-1",
                title="Summer Tour",
                date="2025-06-01",
                venue_name="Mohawk",
                city="Austin",
            )
        ]

        job = await runner.submit_text(
            "Summer Tour at Mohawk", org_id="org-1", existing_records=records
        )

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        duplicates = job.candidates[0].duplicates
        assert [d.existing_record_id for d in duplicates] == ["show-1"]
        assert duplicates[0].score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_unsupported_format_fails(self, store) -> None:
        runner = make_runner(None, store)

        job = await runner.submit(b"PK\x03\x04", "bundle.zip", "org-1")

        assert job.status == ImportJobStatus.FAILED
        assert job.candidates == []
        assert len(job.errors) == 1
        error = job.errors[0]
        assert error.kind == ErrorKind.UNSUPPORTED_FORMAT
        assert error.fatal
        assert error.message == "Unsupported format: zip"

    @pytest.mark.asyncio
    async def test_undecodable_text_fails(self, store) -> None:
        runner = make_runner(None, store)

        job = await runner.submit(b"\xff\xfe\xfa", "offer.txt", "org-1")

        assert job.status == ImportJobStatus.FAILED
        assert job.errors[0].kind == ErrorKind.EXTRACTION_FAILURE

    @pytest.mark.asyncio
    async def test_ai_enhanced_is_rejected_on_submit(self) -> None:
        runner = make_runner(None)

        with pytest.raises(ValueError):
            await runner.submit_text(
                OFFER_EMAIL, org_id="org-1", mode=ExtractionMode.AI_ENHANCED
            )

    @pytest.mark.asyncio
    async def test_job_is_persisted(self, healthy_llm, store) -> None:
        runner = make_runner(healthy_llm, store)

        job = await runner.submit_text("Summer Tour at Mohawk", org_id="org-1")
        reloaded = store.require(job.id)

        assert reloaded.status == job.status
        assert reloaded.candidates == job.candidates
        assert reloaded.raw_text == job.raw_text

    @pytest.mark.asyncio
    async def test_existing_records_are_snapshotted(self, healthy_llm) -> None:
        records = [ExistingRecord(id="show-1", title="Summer Tour", date="2025-06-01")]
        runner = make_runner(healthy_llm)

        job = await runner.submit_text(
            "Summer Tour", org_id="org-1", existing_records=iter(records)
        )

        assert job.candidates[0].duplicates[0].existing_record_id == "show-1"


class TestTimeoutThenRetry:
    @pytest.mark.asyncio
    async def test_timeout_then_healthy_retry(self, store) -> None:
        slow = FakeLLMService(
            show=SUMMER_TOUR_SHOW,
            venue=MOHAWK_VENUE,
            contacts=PROMOTER_CONTACTS,
            delay=1.0,
        )
        runner = make_runner(slow, store, timeout=0.05)

        job = await runner.submit_text("Summer Tour at Mohawk", org_id="org-1")

        assert job.status == ImportJobStatus.NEEDS_REVIEW
        assert {e.kind for e in job.errors} == {ErrorKind.TIMEOUT}
        first_errors = list(job.errors)

        runner.structured_extractor.llm_service = FakeLLMService(
            show=SUMMER_TOUR_SHOW, venue=MOHAWK_VENUE, contacts=PROMOTER_CONTACTS
        )
        job = await runner.retry(job)

        assert job.status == ImportJobStatus.COMPLETED
        assert job.attempt == 2
        assert job.errors == first_errors
        assert job.errors_for_attempt() == []
        assert len(job.previous_attempts) == 1
        snapshot = job.previous_attempts[0]
        assert snapshot.attempt == 1
        assert snapshot.status == ImportJobStatus.NEEDS_REVIEW
        assert snapshot.candidates[0].confidence == 0.0

    @pytest.mark.asyncio
    async def test_retry_of_failed_job_with_new_content(self, healthy_llm, store) -> None:
        runner = make_runner(healthy_llm, store)
        job = await runner.submit(b"PK\x03\x04", "bundle.zip", "org-1")
        assert job.status == ImportJobStatus.FAILED

        job = await runner.retry(job, content=b"Summer Tour at Mohawk")

        # the stored file name still says .zip, so the format is unchanged
        assert job.status == ImportJobStatus.FAILED
        assert len(job.errors) == 2
        assert [e.attempt for e in job.errors] == [1, 2]

    @pytest.mark.asyncio
    async def test_retry_without_any_text_fails(self, store) -> None:
        runner = make_runner(None, store)
        job = await runner.submit(b"PK\x03\x04", "bundle.zip", "org-1")

        job = await runner.retry(job)

        assert job.status == ImportJobStatus.FAILED
        latest = job.errors_for_attempt()
        assert latest[0].kind == ErrorKind.EXTRACTION_FAILURE
        assert "not available" in latest[0].message

    @pytest.mark.asyncio
    async def test_retry_keeps_previous_mode(self, store) -> None:
        runner = make_runner(None, store)
        job = await runner.submit_text(
            OFFER_EMAIL, org_id="org-1", mode=ExtractionMode.RULE_BASED
        )

        job = await runner.retry(job)

        assert job.extraction_mode == ExtractionMode.RULE_BASED
        assert job.raw_text == OFFER_EMAIL

    @pytest.mark.asyncio
    async def test_retry_from_completed_is_rejected(self, healthy_llm, store) -> None:
        runner = make_runner(healthy_llm, store)
        job = await runner.submit_text("Summer Tour at Mohawk", org_id="org-1")
        assert job.status == ImportJobStatus.COMPLETED

        with pytest.raises(InvalidTransitionError):
            await runner.retry(job)

        assert job.status == ImportJobStatus.COMPLETED
        assert job.attempt == 1


class TestImprove:
    @pytest.mark.asyncio
    async def test_improve_keeps_text_and_uses_enhanced_mode(
        self, healthy_llm, store
    ) -> None:
        runner = make_runner(healthy_llm, store)
        job = await runner.submit_text("Summer Tour at Mohawk", org_id="org-1")
        raw_text, normalized_text = job.raw_text, job.normalized_text
        calls_before = len(healthy_llm.calls)

        job = await runner.improve(job)

        assert job.status == ImportJobStatus.COMPLETED
        assert job.extraction_mode == ExtractionMode.AI_ENHANCED
        assert job.raw_text == raw_text
        assert job.normalized_text == normalized_text
        assert job.errors == []
        assert job.attempt == 2
        new_calls = healthy_llm.calls[calls_before:]
        assert new_calls and all(call["prefer_fallback"] for call in new_calls)

    @pytest.mark.asyncio
    async def test_improve_failed_job_is_rejected(self, store) -> None:
        runner = make_runner(None, store)
        job = await runner.submit(b"PK\x03\x04", "bundle.zip", "org-1")

        with pytest.raises(InvalidTransitionError):
            await runner.improve(job)

    @pytest.mark.asyncio
    async def test_retry_after_improve_leaves_enhanced_mode(self, store) -> None:
        runner = make_runner(None, store)
        job = await runner.submit_text(OFFER_EMAIL, org_id="org-1")
        job = await runner.improve(job)
        assert job.extraction_mode == ExtractionMode.AI_ENHANCED

        job = await runner.retry(job)

        assert job.extraction_mode == ExtractionMode.AI_ASSISTED
        assert len(job.previous_attempts) == 2


class TestCancellationAndCrashes:
    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, healthy_llm, store) -> None:
        runner = make_runner(healthy_llm, store)
        token = CancellationToken()
        token.cancel("user closed the upload dialog")

        job = await runner.submit_text(OFFER_EMAIL, org_id="org-1", cancel_token=token)

        assert job.status == ImportJobStatus.FAILED
        assert job.errors[-1].kind == ErrorKind.CANCELLED
        assert job.errors[-1].message == "user closed the upload dialog"
        assert healthy_llm.calls == []

    @pytest.mark.asyncio
    async def test_cancelled_while_structuring(self, store) -> None:
        slow = FakeLLMService(show=SUMMER_TOUR_SHOW, delay=5.0)
        runner = make_runner(slow, store)
        token = CancellationToken()

        async def cancel_soon() -> None:
            await asyncio.sleep(0.05)
            token.cancel()

        canceller = asyncio.create_task(cancel_soon())
        job = await runner.submit_text(OFFER_EMAIL, org_id="org-1", cancel_token=token)
        await canceller

        assert job.status == ImportJobStatus.FAILED
        cancelled = job.errors[-1]
        assert cancelled.kind == ErrorKind.CANCELLED
        assert cancelled.phase == "structuring"
        assert store.require(job.id).status == ImportJobStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_job_and_propagates(
        self, healthy_llm, store
    ) -> None:
        runner = make_runner(healthy_llm, store)

        with patch.object(
            runner.duplicate_scorer, "score", side_effect=RuntimeError("index corrupted")
        ):
            with pytest.raises(RuntimeError, match="index corrupted"):
                await runner.submit_text("Summer Tour", org_id="org-1")

        (job,) = store.list_jobs()
        assert job.status == ImportJobStatus.FAILED
        assert job.errors[-1].kind == ErrorKind.INTERNAL
        assert job.errors[-1].phase == "scoring"

    @pytest.mark.asyncio
    async def test_errors_are_only_appended(self, store) -> None:
        runner = make_runner(None, store)
        job = await runner.submit_text(OFFER_EMAIL, org_id="org-1")
        seen = list(job.errors)

        for _ in range(2):
            job = await runner.retry(job)
            assert job.errors[: len(seen)] == seen
            assert len(job.errors) > len(seen)
            seen = list(job.errors)
