"""Tests for CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from booking_intake.cli import app

runner = CliRunner()

OFFER_EMAIL = (
    "Subject: Fwd: Summer Tour\n"
    "From: dana@promo.example\n\n"
    "Show at The Fillmore, March 3 2025, fee $5000"
)


@pytest.fixture
def email_file(tmp_path):
    path = tmp_path / "forwarded.txt"
    path.write_text(OFFER_EMAIL, encoding="utf-8")
    return path


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "jobs"


def import_json(*args):
    result = runner.invoke(app, ["import", *args, "--json"])
    return result, (json.loads(result.stdout) if result.exit_code == 0 else None)


def test_extract_text_file(email_file):
    result = runner.invoke(app, ["extract", str(email_file), "--text"])

    assert result.exit_code == 0
    assert "Extracted 15 words from forwarded.txt" in result.stdout
    assert "Low text" in result.stdout
    assert "Show at The Fillmore" in result.stdout


def test_extract_unsupported_file(tmp_path):
    path = tmp_path / "bundle.zip"
    path.write_bytes(b"PK\x03\x04")

    result = runner.invoke(app, ["extract", str(path)])

    assert result.exit_code == 1
    assert "Unsupported format: zip" in result.stdout


def test_import_without_backend_needs_review(email_file, store_dir):
    result, job = import_json(
        str(email_file), "--org", "org-1", "--email", "--store", str(store_dir)
    )

    assert result.exit_code == 0
    assert job["status"] == "needs_review"
    assert job["org_id"] == "org-1"
    assert {e["kind"] for e in job["errors"]} == {"backend_unavailable"}
    assert (store_dir / f"{job['id']}.json").exists()


def test_import_rule_based_with_records(email_file, store_dir, tmp_path):
    records = tmp_path / "shows.json"
    records.write_text(
        json.dumps(
            [{"id": "show-9", "title": "Summer Tour", "date": "2025-03-03"}]
        ),
        encoding="utf-8",
    )

    result, job = import_json(
        str(email_file),
        "--org",
        "org-1",
        "--mode",
        "rule_based",
        "--records",
        str(records),
        "--store",
        str(store_dir),
    )

    assert result.exit_code == 0
    assert job["extraction_mode"] == "rule_based"
    candidate = job["candidates"][0]
    assert candidate["core"]["date"]["value"] == "2025-03-03"
    assert candidate["duplicates"][0]["existing_record_id"] == "show-9"


def test_import_rejects_enhanced_mode(email_file, store_dir):
    result = runner.invoke(
        app,
        [
            "import",
            str(email_file),
            "--org",
            "org-1",
            "--mode",
            "ai_enhanced",
            "--store",
            str(store_dir),
        ],
    )

    assert result.exit_code == 2
    assert "improve" in result.stdout


def test_import_unsupported_exits_nonzero(tmp_path, store_dir):
    path = tmp_path / "bundle.zip"
    path.write_bytes(b"PK\x03\x04")

    result = runner.invoke(
        app, ["import", str(path), "--org", "org-1", "--store", str(store_dir)]
    )

    assert result.exit_code == 1
    assert "failed" in result.stdout
    assert "Unsupported format: zip" in result.stdout


def test_import_malformed_records_file(email_file, store_dir, tmp_path):
    records = tmp_path / "shows.json"
    records.write_text('{"id": "not-a-list"}', encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "import",
            str(email_file),
            "--org",
            "org-1",
            "--records",
            str(records),
            "--store",
            str(store_dir),
        ],
    )

    assert result.exit_code == 1
    assert "Could not read existing records" in result.stdout


def test_show_list_retry_and_improve(email_file, store_dir):
    _, job = import_json(
        str(email_file), "--org", "org-1", "--email", "--store", str(store_dir)
    )
    job_id = job["id"]

    shown = runner.invoke(app, ["show", job_id, "--store", str(store_dir)])
    assert shown.exit_code == 0
    assert f"Job {job_id}: needs_review" in shown.stdout
    assert "backend_unavailable" in shown.stdout

    listed = runner.invoke(app, ["list", "--org", "org-1", "--store", str(store_dir)])
    assert listed.exit_code == 0
    assert job_id in listed.stdout

    retried = runner.invoke(app, ["retry", job_id, "--store", str(store_dir), "--json"])
    assert retried.exit_code == 0
    retried_job = json.loads(retried.stdout.split("\n", 1)[1])
    assert retried_job["attempt"] == 2
    assert len(retried_job["previous_attempts"]) == 1

    improved = runner.invoke(app, ["improve", job_id, "--store", str(store_dir)])
    assert improved.exit_code == 0
    assert "attempt 3" in improved.stdout


def test_show_unknown_job(store_dir):
    result = runner.invoke(app, ["show", "missing-job", "--store", str(store_dir)])

    assert result.exit_code == 1
    assert "Import job not found: missing-job" in result.stdout


def test_list_empty_store(store_dir):
    result = runner.invoke(app, ["list", "--store", str(store_dir)])

    assert result.exit_code == 0
    assert "No import jobs found" in result.stdout


def test_validate_config(tmp_path):
    config_file = tmp_path / "intake_config.yaml"
    config_file.write_text("scoring:\n  threshold: 0.5\n", encoding="utf-8")

    result = runner.invoke(app, ["validate", str(config_file)])

    assert result.exit_code == 0
    assert "Configuration is valid!" in result.stdout
    assert "No LLM credentials" in result.stdout


def test_validate_invalid_config(tmp_path):
    config_file = tmp_path / "intake_config.yaml"
    config_file.write_text("scoring:\n  threshold: 7\n", encoding="utf-8")

    result = runner.invoke(app, ["validate", str(config_file)])

    assert result.exit_code == 1
    assert "Validation failed" in result.stdout
