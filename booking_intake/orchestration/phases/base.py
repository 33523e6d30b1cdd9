"""Abstract base class for import job phases."""

import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

import structlog

from booking_intake.models.import_job import ImportJobStatus
from booking_intake.observability.metrics import PHASE_DURATION
from booking_intake.orchestration.context import JobContext
from booking_intake.utils.exceptions import CancellationRequestedError

T = TypeVar("T")


class JobPhase(ABC, Generic[T]):
    """Abstract base class for import job phases.

    Each phase owns one in-flight status of the lifecycle. ``run`` moves
    the job into that status, then executes the phase.

    Type parameter T represents the return type of the execute method.
    """

    def __init__(self, context: JobContext) -> None:
        self.context = context
        self.logger = structlog.get_logger().bind(
            phase=self.name, job_id=context.job.id, attempt=context.job.attempt
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Phase name for logging and error entries."""
        pass  # pragma: no cover - abstract method

    @property
    @abstractmethod
    def status(self) -> ImportJobStatus:
        """Lifecycle status the job holds while this phase runs."""
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def execute(self) -> T:
        pass  # pragma: no cover - abstract method

    async def run(self) -> T:
        """Run the phase with status transition, timing and logging.

        Raises:
            CancellationRequestedError: If the attempt was abandoned
        """
        if self.context.job.status != self.status:
            self.context.transition(self.status)

        if self.context.cancel_token is not None:
            self.context.cancel_token.raise_if_cancelled()

        self.logger.info("phase_starting")
        start_time = time.time()

        try:
            result = await self.execute()
        except CancellationRequestedError:
            self.logger.warning("phase_cancelled")
            raise
        except Exception as e:
            self.logger.exception("phase_failed", error=str(e))
            raise
        finally:
            PHASE_DURATION.labels(phase=self.status.value).observe(
                time.time() - start_time
            )

        self.logger.info(
            "phase_completed", duration_seconds=round(time.time() - start_time, 3)
        )
        return result
