"""Cooperative cancellation for import job attempts.

A CancellationToken is created by whoever owns an attempt (the CLI, a
request handler) and handed down through the runner to the OCR worker
and the backend calls. ``guard`` races a piece of work against the
token so an abandoned job stops waiting immediately.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

import structlog

from booking_intake.utils.exceptions import CancellationRequestedError

logger = structlog.get_logger()

T = TypeVar("T")


class CancellationToken:
    """Event-backed cancellation signal shared by one job attempt."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Import job cancelled") -> None:
        """Signal cancellation. Repeated calls keep the first reason."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        logger.info("cancellation_requested", reason=reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequestedError(self.reason or "Import job cancelled")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises:
            CancellationRequestedError: If the token is (or becomes)
                cancelled before the work finishes. The inner task is
                cancelled in that case.
        """
        self.raise_if_cancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        work.cancel()
        try:
            await work
        except (asyncio.CancelledError, Exception) as exc:
            # outcome of the abandoned work is discarded
            logger.debug("cancelled_work_discarded", error_type=type(exc).__name__)
        raise CancellationRequestedError(self.reason or "Import job cancelled")


async def guarded(
    awaitable: Awaitable[T], token: Optional[CancellationToken]
) -> T:
    """Await through ``token.guard`` when a token is supplied."""
    if token is None:
        return await awaitable
    return await token.guard(awaitable)
