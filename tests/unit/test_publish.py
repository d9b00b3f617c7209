from __future__ import annotations

import json
from pathlib import Path

from artstage.executor import summarize
from artstage.formatting import format_bytes, humanize_duration_ms, truncate
from artstage.models import (
    CopyPlanEntry,
    CopyResult,
    CopyStatus,
    PhaseContext,
    PhaseRole,
    SpecError,
    StageReport,
)
from artstage.publish import report_to_dict, write_stage_report, write_step_summary


def _report() -> StageReport:
    ok = CopyResult(
        entry=CopyPlanEntry(Path("bin/a.dll"), Path("dist/a.dll"), "a.dll"),
        status=CopyStatus.COPIED,
        bytes_copied=2048,
    )
    bad = CopyResult(
        entry=CopyPlanEntry(Path("bin/b.dll"), Path("dist/b.dll"), "b.dll"),
        status=CopyStatus.FAILED,
        reason="PermissionError: [Errno 13] Permission denied",
        error_kind="CopyIOError",
    )
    results = [ok, bad]
    return StageReport(
        phase=PhaseContext(role=PhaseRole.OUTER, configurations=("net46", "net472")),
        authoritative=True,
        results=results,
        summary=summarize(results),
        spec_errors=[SpecError(1, Path("LICENSE"), "SourceNotFoundError", "Source not found: LICENSE")],
        duration_ms=1500,
    )


def test_report_dict_contents() -> None:
    data = report_to_dict(_report(), "run-123", "0.1.0")
    assert data["phase"]["role"] == "outer"
    assert data["counts"] == {"copied": 1, "skipped": 0, "failed": 1, "total": 2, "bytes_copied": 2048}
    assert data["succeeded"] is False
    assert data["entries"][1]["error_kind"] == "CopyIOError"
    assert data["spec_errors"][0]["error_kind"] == "SourceNotFoundError"


def test_write_stage_report(tmp_path: Path) -> None:
    path = write_stage_report(_report(), tmp_path / "reports", "run-123", "0.1.0")
    assert path.name == "STAGE_REPORT.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["run_id"] == "run-123"


def test_step_summary_writes_file(tmp_path: Path, monkeypatch) -> None:
    summary_file = tmp_path / "summary.md"
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary_file))

    write_step_summary(_report(), "run-123456789", "0.1.0")

    content = summary_file.read_text(encoding="utf-8")
    assert "Artifact staging" in content
    assert "FAILED" in content
    assert "Permission denied" in content
    assert "SourceNotFoundError" in content
    assert "run_id=run-1234" in content


def test_step_summary_for_skipped_phase(tmp_path: Path, monkeypatch) -> None:
    summary_file = tmp_path / "summary.md"
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary_file))
    report = StageReport(phase=PhaseContext(role=PhaseRole.INNER, configuration="net46"), authoritative=False)

    write_step_summary(report, "run-1", "0.1.0")

    content = summary_file.read_text(encoding="utf-8")
    assert "SKIPPED" in content
    assert "inner:net46" in content


def test_step_summary_noop_without_env(tmp_path: Path) -> None:
    write_step_summary(_report(), "run-1", "0.1.0")
    assert list(tmp_path.iterdir()) == []


def test_formatting_helpers() -> None:
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 KiB"
    assert format_bytes(5 * 1024 * 1024) == "5.0 MiB"
    assert humanize_duration_ms(1500) == "1.5s"
    assert humanize_duration_ms(None) == "n/a"
    assert humanize_duration_ms(125_000) == "2m 5s"
    assert truncate("abcdef", 4) == "abc…"
