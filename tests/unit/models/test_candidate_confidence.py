"""Tests for candidate confidence aggregation and job bookkeeping."""

import math

import pytest

from booking_intake.models.candidate import (
    Candidate,
    ContactEntry,
    CoreFields,
    DealFields,
    FieldValue,
    clamp_confidence,
)
from booking_intake.models.import_job import ErrorKind, ImportJob, JobError


@pytest.mark.parametrize(
    "raw,expected",
    [
        (0.5, 0.5),
        (1, 1.0),
        ("0.7", 0.7),
        (1.01, 0.0),
        (-0.1, 0.0),
        (math.nan, 0.0),
        (None, 0.0),
        (True, 0.0),
        ("high", 0.0),
        ([0.5], 0.0),
    ],
)
def test_clamp_confidence(raw, expected):
    assert clamp_confidence(raw) == pytest.approx(expected)


def test_field_value_clamps_on_construction():
    assert FieldValue(value="x", confidence=7).confidence == 0.0


class TestCandidateConfidence:
    def test_minimum_of_populated_fields(self):
        candidate = Candidate(
            core=CoreFields(
                title=FieldValue(value="Summer Tour", confidence=0.9),
                date=FieldValue(value="2025-06-01", confidence=0.8),
            ),
            deal=DealFields(fee=FieldValue(value="5000", confidence=0.65)),
            contacts=[ContactEntry(email=FieldValue(value="a@b.example", confidence=0.7))],
        )

        assert candidate.compute_confidence() == pytest.approx(0.65)

    def test_empty_fields_do_not_drag_the_minimum(self):
        candidate = Candidate(
            core=CoreFields(
                artist=FieldValue(value="The Wanderers", confidence=0.9),
                date=FieldValue(value="2025-06-01", confidence=0.9),
            )
        )

        assert candidate.compute_confidence() == pytest.approx(0.9)

    def test_missing_date_is_zero(self):
        candidate = Candidate(
            core=CoreFields(title=FieldValue(value="Summer Tour", confidence=0.9))
        )

        assert candidate.compute_confidence() == 0.0

    def test_missing_title_and_artist_is_zero(self):
        candidate = Candidate(
            core=CoreFields(date=FieldValue(value="2025-06-01", confidence=0.9))
        )

        assert candidate.compute_confidence() == 0.0

    def test_empty_candidate(self):
        candidate = Candidate.empty()

        assert candidate.is_empty
        assert candidate.compute_confidence() == 0.0

    def test_confidence_map_paths(self):
        candidate = Candidate(contacts=[ContactEntry()])

        paths = candidate.confidence_map()

        assert "core.date" in paths
        assert "venue.capacity" in paths
        assert "deal.fee" in paths
        assert "contacts[0].email" in paths


class TestImportJob:
    def test_aggregate_confidence_is_lowest_candidate(self):
        job = ImportJob(
            org_id="org-1",
            candidates=[Candidate(confidence=0.9), Candidate(confidence=0.4)],
        )

        assert job.aggregate_confidence == pytest.approx(0.4)

    def test_aggregate_confidence_without_candidates(self):
        assert ImportJob(org_id="org-1").aggregate_confidence == 0.0

    def test_errors_for_attempt_and_messages(self):
        job = ImportJob(org_id="org-1", attempt=2)
        job.errors = [
            JobError(attempt=1, phase="extraction", kind=ErrorKind.TIMEOUT, message="a"),
            JobError(
                attempt=2,
                phase="structuring",
                kind=ErrorKind.CANCELLED,
                message="b",
                fatal=True,
            ),
        ]

        assert [e.message for e in job.errors_for_attempt()] == ["b"]
        assert [e.message for e in job.errors_for_attempt(1)] == ["a"]
        assert job.error_messages == [
            "[attempt 1] extraction warning (timeout): a",
            "[attempt 2] structuring error (cancelled): b",
        ]

    def test_snapshot_is_a_deep_copy(self):
        job = ImportJob(org_id="org-1", candidates=[Candidate(confidence=0.5)])

        snapshot = job.snapshot()
        job.candidates[0].confidence = 0.9

        assert snapshot.candidates[0].confidence == 0.5

    def test_rebuild_confidence_map(self):
        job = ImportJob(org_id="org-1", candidates=[Candidate(confidence=0.3)])

        confidence_map = job.rebuild_confidence_map()

        assert confidence_map["candidates[0].confidence"] == pytest.approx(0.3)
        assert "candidates[0].core.title" in confidence_map
        assert job.confidence_map is confidence_map
