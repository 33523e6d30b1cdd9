"""structlog setup for the intake pipeline.

Every event is a snake_case name plus keyword fields. Lines are written
to stderr so commands that print JSON on stdout stay machine-readable:

    {"event": "field_group_degraded", "group": "venue", "kind": "timeout",
     "correlation_id": "<job id>", "org_id": "org-1", "attempt": 2,
     "level": "warning", "timestamp": "..."}
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from booking_intake.observability.context import get_correlation_id

NO_CORRELATION_ID = "none"


def add_correlation_id_processor(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["correlation_id"] = get_correlation_id() or NO_CORRELATION_ID
    return event_dict


def _processor_chain(json_output: bool, add_timestamp: bool) -> List[Processor]:
    chain: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain.append(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    return chain


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Install the processor chain and the level filter.

    Loggers are not cached, so calling this again (the CLI does once the
    config file is read) takes effect for module-level loggers too.
    """
    structlog.configure(
        processors=_processor_chain(json_output, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(component: Optional[str] = None, **initial_context: Any) -> Any:
    """Logger with ``component`` (and any extra fields) pre-bound."""
    logger = structlog.get_logger()
    if component:
        initial_context["component"] = component
    return logger.bind(**initial_context) if initial_context else logger


def bind_context(**context: Any) -> None:
    """Add fields to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
