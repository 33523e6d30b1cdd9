"""Prometheus metrics for the intake pipeline.

Usage:
    from booking_intake.observability.metrics import (
        IMPORT_JOBS_TOTAL,
        PHASE_DURATION,
    )

    IMPORT_JOBS_TOTAL.labels(status="completed").inc()

    with PHASE_DURATION.labels(phase="extracting").time():
        ...
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
)

# Custom registry to avoid conflicts with the default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

IMPORT_JOBS_TOTAL = Counter(
    name="booking_intake_jobs_total",
    documentation="Import job attempts by terminal status",
    labelnames=["status"],  # completed, needs_review, failed
    registry=REGISTRY,
)

FORMAT_EXTRACTIONS = Counter(
    name="booking_intake_format_extractions_total",
    documentation="Format extractions by format and outcome",
    labelnames=["format", "status"],  # text/pdf/docx/image/unknown, success/failed
    registry=REGISTRY,
)

LOW_TEXT_DOCUMENTS = Counter(
    name="booking_intake_low_text_documents_total",
    documentation="Documents flagged as likely scanned",
    labelnames=["format"],
    registry=REGISTRY,
)

LLM_REQUESTS = Counter(
    name="booking_intake_llm_requests_total",
    documentation="Structured-extraction backend requests",
    labelnames=["provider", "status"],  # anthropic/google, success/failed
    registry=REGISTRY,
)

STRUCTURING_DEGRADED = Counter(
    name="booking_intake_structuring_degraded_total",
    documentation="Field-group extractions that degraded to an empty result",
    labelnames=["group", "kind"],  # show/venue/contacts, timeout/backend_unavailable/...
    registry=REGISTRY,
)

DUPLICATES_FLAGGED = Counter(
    name="booking_intake_duplicates_flagged_total",
    documentation="Duplicate matches attached to candidates",
    registry=REGISTRY,
)

# =============================================================================
# GAUGES
# =============================================================================

ACTIVE_JOBS = Gauge(
    name="booking_intake_active_jobs",
    documentation="Import job attempts currently running",
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

PHASE_DURATION = Histogram(
    name="booking_intake_phase_duration_seconds",
    documentation="Import job phase duration in seconds",
    labelnames=["phase"],  # extracting, structuring, scoring
    buckets=(0.01, 0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)

LLM_REQUEST_DURATION = Histogram(
    name="booking_intake_llm_request_duration_seconds",
    documentation="Backend request duration in seconds",
    labelnames=["provider"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)

CANDIDATE_CONFIDENCE = Histogram(
    name="booking_intake_candidate_confidence",
    documentation="Distribution of aggregate candidate confidence",
    buckets=(0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
    registry=REGISTRY,
)
