"""Tests for structured logging, correlation ids and pipeline metrics."""

import json
import uuid

import pytest

from booking_intake.observability.context import (
    clear_correlation_id,
    correlation_id_context,
    get_correlation_id,
    set_correlation_id,
)
from booking_intake.observability.logging import (
    add_correlation_id_processor,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from booking_intake.observability.metrics import REGISTRY
from booking_intake.orchestration.runner import ImportJobRunner


def last_log_line(capsys):
    lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
    return json.loads(lines[-1])


class TestCorrelationId:
    def setup_method(self):
        clear_correlation_id()

    def test_set_generates_uuid(self):
        corr_id = set_correlation_id()

        assert get_correlation_id() == corr_id
        assert uuid.UUID(corr_id).hex == corr_id

    def test_context_restores_previous_value(self):
        set_correlation_id("outer")

        with correlation_id_context("job-1") as corr_id:
            assert corr_id == "job-1"
            assert get_correlation_id() == "job-1"

        assert get_correlation_id() == "outer"
        clear_correlation_id()

    def test_processor_marks_missing_id(self):
        result = add_correlation_id_processor(None, "info", {"event": "x", "n": 1})

        assert result == {"event": "x", "n": 1, "correlation_id": "none"}

    def test_processor_adds_current_id(self):
        with correlation_id_context("job-7"):
            result = add_correlation_id_processor(None, "info", {"event": "x"})

        assert result["correlation_id"] == "job-7"


class TestStructuredLogging:
    def setup_method(self):
        clear_context()
        clear_correlation_id()

    def teardown_method(self):
        clear_context()

    def test_json_line_carries_component_and_context(self, capsys):
        configure_logging(level="DEBUG", json_output=True, add_timestamp=False)
        bind_context(org_id="org-1")

        with correlation_id_context("job-3"):
            get_logger("import_runner", attempt=2).info("import_job_reentered")

        entry = last_log_line(capsys)
        assert entry["event"] == "import_job_reentered"
        assert entry["component"] == "import_runner"
        assert entry["attempt"] == 2
        assert entry["org_id"] == "org-1"
        assert entry["correlation_id"] == "job-3"
        assert entry["level"] == "info"
        assert "timestamp" not in entry

    def test_level_filters_lower_events(self, capsys):
        configure_logging(level="WARNING", json_output=True)

        logger = get_logger("format_extractor")
        logger.info("format_extraction_completed")
        logger.warning("format_extraction_failed")

        err = capsys.readouterr().err
        assert "format_extraction_completed" not in err
        assert "format_extraction_failed" in err

    def test_clear_context_drops_bound_values(self, capsys):
        configure_logging(level="INFO", json_output=True)
        bind_context(org_id="org-9")
        clear_context()

        get_logger().info("probe")

        assert "org_id" not in last_log_line(capsys)

    @pytest.mark.asyncio
    async def test_runner_events_follow_configuration_after_import(self, capsys):
        configure_logging(level="INFO", json_output=True)

        await ImportJobRunner().submit_text("Summer Tour at Mohawk", org_id="org-1")

        captured = capsys.readouterr()
        assert "import_job_finished" not in captured.out
        finished = [
            json.loads(line)
            for line in captured.err.splitlines()
            if "import_job_finished" in line
        ]
        assert finished[0]["component"] == "import_runner"
        assert finished[0]["org_id"] == "org-1"


class TestPipelineMetrics:
    @staticmethod
    def sample(name, **labels):
        return REGISTRY.get_sample_value(name, labels) or 0.0

    @pytest.mark.asyncio
    async def test_job_attempt_updates_counters(self):
        jobs_before = self.sample("booking_intake_jobs_total", status="needs_review")
        text_before = self.sample(
            "booking_intake_format_extractions_total", format="text", status="success"
        )

        job = await ImportJobRunner().submit_text(
            "Summer Tour at Mohawk", org_id="org-1"
        )

        assert job.status.value == "needs_review"
        assert self.sample("booking_intake_jobs_total", status="needs_review") == (
            jobs_before + 1
        )
        assert self.sample(
            "booking_intake_format_extractions_total", format="text", status="success"
        ) == (text_before + 1)
        assert self.sample("booking_intake_active_jobs") == 0.0

    @pytest.mark.asyncio
    async def test_unsupported_format_counts_as_failed(self):
        before = self.sample(
            "booking_intake_format_extractions_total", format="unknown", status="failed"
        )
        failed_before = self.sample("booking_intake_jobs_total", status="failed")

        await ImportJobRunner().submit(b"PK\x03\x04", "bundle.zip", org_id="org-1")

        assert self.sample(
            "booking_intake_format_extractions_total", format="unknown", status="failed"
        ) == (before + 1)
        assert self.sample("booking_intake_jobs_total", status="failed") == (
            failed_before + 1
        )
