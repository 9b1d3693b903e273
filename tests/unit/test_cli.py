"""Unit tests for the clarity CLI (typer CliRunner, temp files only)."""

from __future__ import annotations

import csv
import io
import json

import pytest
from typer.testing import CliRunner

from clarity.main import app
from clarity.models.history import HistoryAdapter

runner = CliRunner()


@pytest.fixture
def findings_file(tmp_path, dog_payload):
    def _write(**kwargs):
        path = tmp_path / "findings.json"
        path.write_text(json.dumps(dog_payload(**kwargs)), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def history_file(tmp_path, history):
    path = tmp_path / "history.json"
    path.write_bytes(HistoryAdapter.dump_json(history))
    return path


# ── clarity validate ──────────────────────────────────────────


def test_validate_valid_file(findings_file):
    result = runner.invoke(app, ["validate", str(findings_file())])
    assert result.exit_code == 0, result.output
    assert "valid" in result.output
    assert "2 pain points" in result.output


def test_validate_reports_violations(findings_file):
    result = runner.invoke(app, ["validate", str(findings_file(p2_source="c_missing"))])
    assert result.exit_code == 1
    assert "1 violation" in result.output
    assert "c_missing" in result.output


def test_validate_missing_file(tmp_path):
    result = runner.invoke(app, ["validate", str(tmp_path / "nope.json")])
    assert result.exit_code == 2


def test_validate_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    result = runner.invoke(app, ["validate", str(path)])
    assert result.exit_code == 2


# ── clarity research run ──────────────────────────────────────


def test_research_run_completes(findings_file, tmp_path):
    out = tmp_path / "job.json"
    result = runner.invoke(
        app,
        ["research", "run", "dog walking app", "-f", str(findings_file()), "-p", "dog-walk", "-o", str(out)],
    )
    assert result.exit_code == 0, result.output
    job = json.loads(out.read_text(encoding="utf-8"))
    assert job["status"] == "completed"
    assert job["project_id"] == "dog-walk"
    assert job["progress_steps"] == ["submitted", "collecting", "validating", "completed"]
    assert len(job["insight_data"]["pain_points"]) == 2


def test_research_run_failed_job_exits_1(findings_file, tmp_path):
    out = tmp_path / "job.json"
    result = runner.invoke(
        app,
        ["research", "run", "dog walking app", "-f", str(findings_file(p2_source="c_missing")), "-o", str(out)],
    )
    assert result.exit_code == 1
    job = json.loads(out.read_text(encoding="utf-8"))
    assert job["status"] == "failed"
    assert job["error"]["code"] == "validation_error"
    assert job["insight_data"] is None


def test_research_run_rejects_empty_query(findings_file):
    result = runner.invoke(app, ["research", "run", "   ", "-f", str(findings_file())])
    assert result.exit_code == 2


def test_research_run_missing_findings(tmp_path):
    result = runner.invoke(app, ["research", "run", "dog walking app", "-f", str(tmp_path / "nope.json")])
    assert result.exit_code == 2


# ── clarity export ────────────────────────────────────────────


def test_export_csv(history_file, tmp_path):
    out = tmp_path / "history.csv"
    result = runner.invoke(app, ["export", str(history_file), "--format", "csv", "-o", str(out)])
    assert result.exit_code == 0, result.output
    rows = list(csv.reader(io.StringIO(out.read_text(encoding="utf-8"), newline="")))
    assert len(rows) == 4


def test_export_document(history_file, tmp_path):
    out = tmp_path / "history.pdf"
    result = runner.invoke(app, ["export", str(history_file), "-f", "document", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes().startswith(b"%PDF")


def test_export_unsupported_format(history_file):
    result = runner.invoke(app, ["export", str(history_file), "-f", "xml"])
    assert result.exit_code == 2
    assert "unsupported export format" in result.output


def test_export_invalid_history(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps([{"sequence": 1}]), encoding="utf-8")
    result = runner.invoke(app, ["export", str(path), "-f", "json", "-o", str(tmp_path / "x.json")])
    assert result.exit_code == 2
    assert "project_id" in result.output
    assert not (tmp_path / "x.json").exists()
