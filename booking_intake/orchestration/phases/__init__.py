"""Import job phases."""

from booking_intake.orchestration.phases.base import JobPhase
from booking_intake.orchestration.phases.extraction import ExtractionPhase
from booking_intake.orchestration.phases.scoring import ScoringPhase
from booking_intake.orchestration.phases.structuring import StructuringPhase

__all__ = [
    "JobPhase",
    "ExtractionPhase",
    "StructuringPhase",
    "ScoringPhase",
]
