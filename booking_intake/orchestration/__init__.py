"""Import job orchestration: lifecycle, phases and the runner."""

from booking_intake.orchestration.context import JobContext
from booking_intake.orchestration.phases import (
    ExtractionPhase,
    JobPhase,
    ScoringPhase,
    StructuringPhase,
)
from booking_intake.orchestration.runner import ImportJobRunner
from booking_intake.orchestration.state import (
    ALLOWED_TRANSITIONS,
    can_transition,
    transition,
)

__all__ = [
    "ImportJobRunner",
    "JobContext",
    "JobPhase",
    "ExtractionPhase",
    "StructuringPhase",
    "ScoringPhase",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "transition",
]
