from __future__ import annotations

import json
from pathlib import Path

import pytest

from artstage.constants import ExitCode
from artstage.errors import (
    ConfigError,
    CopyIOError,
    DestinationCreateError,
    InvalidFilterSyntaxError,
    SourceNotFoundError,
    StageError,
)
from artstage.logging import StageLogger, escape_workflow_command
from artstage.models import CopyPlanEntry, CopyResult, CopyStatus, CopySummary


def test_logger_emits_json(capsys) -> None:
    logger = StageLogger("run-1", annotations=False)
    logger.info("hello", detail="world")
    captured = capsys.readouterr()

    payload = json.loads(captured.err.strip().splitlines()[0])
    assert payload["run_id"] == "run-1"
    assert payload["message"] == "hello"
    assert payload["detail"] == "world"


def test_logger_emits_error_annotation(capsys) -> None:
    logger = StageLogger("run-2", annotations=True)
    logger.error("copy_failed", source="a.dll")
    captured = capsys.readouterr()
    assert "::error::copy_failed source=a.dll" in captured.err


def test_logger_annotations_follow_github_actions_env(monkeypatch, capsys) -> None:
    monkeypatch.setenv("GITHUB_ACTIONS", "true")
    StageLogger("run-3").warning("careful")
    assert "::warning::careful" in capsys.readouterr().err

    monkeypatch.delenv("GITHUB_ACTIONS")
    StageLogger("run-3").warning("careful")
    assert "::warning::" not in capsys.readouterr().err


def test_logger_redacts_sensitive_keys(capsys) -> None:
    logger = StageLogger("run-4", annotations=False)
    logger.info("secret", api_token="abc")
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[0])
    assert payload["api_token"] == "***"


def test_stage_context_logs_duration(capsys) -> None:
    logger = StageLogger("run-5", annotations=False)
    with logger.stage("copy"):
        pass
    lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
    assert [line["message"] for line in lines] == ["stage_start", "stage_end"]
    assert lines[1]["status"] == "ok"


def test_escape_workflow_command() -> None:
    assert escape_workflow_command("50%\nnext") == "50%25%0Anext"


def test_error_hierarchy_and_exit_codes() -> None:
    assert issubclass(DestinationCreateError, CopyIOError)
    assert isinstance(SourceNotFoundError(Path("x")), StageError)
    assert ConfigError().exit_code == ExitCode.ERROR
    assert InvalidFilterSyntaxError("a/b", "bad").exit_code == ExitCode.ERROR
    assert SourceNotFoundError(Path("x")).exit_code == ExitCode.FAILED
    assert [code.value for code in ExitCode] == [0, 1, 2]


def test_summary_raise_for_failures() -> None:
    entry = CopyPlanEntry(Path("s/a.dll"), Path("d/a.dll"), "a.dll")
    summary = CopySummary(
        failed=1,
        failures=[CopyResult(entry=entry, status=CopyStatus.FAILED, reason="PermissionError: denied")],
    )
    with pytest.raises(CopyIOError) as excinfo:
        summary.raise_for_failures()
    assert "PermissionError: denied" in str(excinfo.value)
    assert excinfo.value.source == Path("s/a.dll")

    CopySummary(copied=2).raise_for_failures()
