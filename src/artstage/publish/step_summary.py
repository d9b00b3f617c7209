from __future__ import annotations

import os

from ..formatting import format_bytes, format_int, humanize_duration_ms, truncate
from ..models import StageReport

MAX_LISTED_FAILURES = 10


def _status(report: StageReport) -> tuple[str, str]:
    if not report.authoritative:
        return "⏭️", "SKIPPED"
    if report.succeeded:
        return "✅", "STAGED"
    return "❌", "FAILED"


def write_step_summary(report: StageReport, run_id: str, version: str) -> None:
    """
    Append a markdown summary of the staging run to the GitHub Actions Step
    Summary. No-op outside GitHub Actions.
    """
    summary_path = os.environ.get("GITHUB_STEP_SUMMARY")
    if not summary_path:
        return

    icon, label = _status(report)
    counts = report.summary
    md = [
        f"## 📦 Artifact staging: {icon} {label}",
        "",
        f"**Phase:** `{report.phase.label}`",
    ]
    if report.dry_run:
        md.append("**Mode:** dry run (nothing written)")
    md.append("")

    if not report.authoritative:
        md.append("This phase is not authoritative for artifacts; the aggregating phase stages them.")
        md.append("")
    else:
        md.extend(
            [
                "| Outcome | Files |",
                "|---------|------:|",
                f"| Copied | {format_int(counts.copied)} |",
                f"| Up to date | {format_int(counts.skipped)} |",
                f"| Failed | {format_int(counts.failed)} |",
                "",
                f"**Bytes copied:** {format_bytes(counts.bytes_copied)} · "
                f"**Duration:** {humanize_duration_ms(report.duration_ms)}",
                "",
            ]
        )

    if report.spec_errors:
        md.append("### Declaration errors")
        md.append("")
        for err in report.spec_errors:
            md.append(f"- `{err.source_path}` · **{err.error_kind}**: {truncate(err.message, 200)}")
        md.append("")

    if counts.failures:
        md.append("### Failed copies")
        md.append("")
        for result in counts.failures[:MAX_LISTED_FAILURES]:
            entry = result.entry
            md.append(
                f"- `{entry.source_file}` → `{entry.destination_file}`: {truncate(result.reason, 200)}"
            )
        hidden = len(counts.failures) - MAX_LISTED_FAILURES
        if hidden > 0:
            md.append(f"- … and {hidden} more (see STAGE_REPORT.json)")
        md.append("")

    md.append(f"<sub>artstage v{version} • run_id={run_id[:8]}</sub>")
    md.append("")

    with open(summary_path, "a", encoding="utf-8") as summary_file:
        summary_file.write("\n".join(md))
