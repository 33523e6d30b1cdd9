"""Tests for the import job lifecycle table."""

import pytest

from booking_intake.models.import_job import ImportJob, ImportJobStatus
from booking_intake.orchestration.state import (
    ALLOWED_TRANSITIONS,
    can_transition,
    transition,
)
from booking_intake.utils.exceptions import InvalidTransitionError

S = ImportJobStatus

HAPPY_PATH = [S.EXTRACTING, S.STRUCTURING, S.SCORING, S.COMPLETED]


def test_every_status_has_an_entry():
    assert set(ALLOWED_TRANSITIONS) == set(ImportJobStatus)


def test_happy_path():
    job = ImportJob(org_id="org-1")
    before = job.updated_at

    for status in HAPPY_PATH:
        transition(job, status)

    assert job.status == S.COMPLETED
    assert job.updated_at >= before


@pytest.mark.parametrize("status", [S.PENDING, S.EXTRACTING, S.STRUCTURING, S.SCORING])
def test_in_flight_statuses_can_fail(status):
    assert can_transition(status, S.FAILED)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.COMPLETED),
        (S.EXTRACTING, S.SCORING),
        (S.COMPLETED, S.PENDING),
        (S.FAILED, S.STRUCTURING),
        (S.COMPLETED, S.FAILED),
        (S.NEEDS_REVIEW, S.COMPLETED),
    ],
)
def test_invalid_transitions_raise(current, target):
    job = ImportJob(org_id="org-1", status=current)

    with pytest.raises(InvalidTransitionError) as exc_info:
        transition(job, target, "retry")

    assert job.status == current
    assert exc_info.value.current == current.value
    assert exc_info.value.target == target.value
    assert str(exc_info.value).startswith("retry: ")


def test_reentry_points():
    assert can_transition(S.FAILED, S.PENDING)
    assert can_transition(S.NEEDS_REVIEW, S.PENDING)
    assert can_transition(S.NEEDS_REVIEW, S.STRUCTURING)
    assert can_transition(S.COMPLETED, S.STRUCTURING)


def test_terminal_statuses():
    assert {s for s in ImportJobStatus if s.is_terminal} == {
        S.COMPLETED,
        S.NEEDS_REVIEW,
        S.FAILED,
    }
