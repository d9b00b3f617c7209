from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict

from ..constants import Defaults
from ..models import StageReport


def report_to_dict(report: StageReport, run_id: str, version: str) -> Dict[str, Any]:
    return {
        "schema_version": Defaults.SCHEMA_VERSION,
        "run_id": run_id,
        "tool_version": version,
        "timestamp_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "phase": {
            "role": report.phase.role.value,
            "configuration": report.phase.configuration,
            "configurations": list(report.phase.configurations),
        },
        "authoritative": report.authoritative,
        "dry_run": report.dry_run,
        "succeeded": report.succeeded,
        "duration_ms": report.duration_ms,
        "counts": report.summary.to_dict(),
        "spec_errors": [err.to_dict() for err in report.spec_errors],
        "entries": [result.to_dict() for result in report.results],
    }


def write_stage_report(report: StageReport, report_dir: Path, run_id: str, version: str) -> Path:
    """Write STAGE_REPORT.json into report_dir and return its path. OSError propagates."""
    report_dir.mkdir(parents=True, exist_ok=True)
    out = report_dir / Defaults.REPORT_FILE
    payload = report_to_dict(report, run_id, version)
    out.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return out
