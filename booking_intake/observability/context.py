"""Correlation id for the import job attempt running in this context.

The runner uses the job id, so every log line emitted while an attempt
is in flight (format extraction, field-group calls, scoring) can be
grouped by job. Each asyncio task inherits the value of its creator.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_current_job: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def _new_id() -> str:
    return uuid.uuid4().hex


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set (or generate) the id for the current context and return it."""
    corr_id = corr_id or _new_id()
    _current_job.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    return _current_job.get()


def clear_correlation_id() -> None:
    _current_job.set(None)


@contextmanager
def correlation_id_context(corr_id: Optional[str] = None) -> Iterator[str]:
    """Use ``corr_id`` inside the block; the outer value comes back after."""
    token = _current_job.set(corr_id or _new_id())
    try:
        yield _current_job.get()
    finally:
        _current_job.reset(token)
