from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from . import __version__
from .authority import classify_phase
from .config import StageConfig
from .constants import ExitCode
from .errors import StageError
from .executor import CopyOptions
from .logging import StageLogger
from .manifest import collect_specs
from .models import StageReport
from .publish import write_stage_report, write_step_summary
from .stage import stage_artifacts


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="artstage",
        description="Stage build outputs into a distribution tree.",
    )
    parser.add_argument("--manifest", type=Path, help="TOML manifest declaring artifacts")
    parser.add_argument("--phase-role", choices=["single", "outer", "inner"], help="Role of this build phase")
    parser.add_argument("--configuration", help="Configuration built by this phase")
    parser.add_argument("--report-dir", type=Path, help="Directory for STAGE_REPORT.json")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be copied without writing")
    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.manifest is not None:
        overrides["manifest"] = args.manifest
    if args.phase_role:
        overrides["phase_role"] = args.phase_role
    if args.configuration is not None:
        overrides["configuration"] = args.configuration
    if args.report_dir is not None:
        overrides["report_dir"] = args.report_dir
    if args.dry_run:
        overrides["dry_run"] = True
    return overrides


def exit_code_for(report: StageReport, fail_on_error: bool) -> ExitCode:
    if report.succeeded or not fail_on_error:
        return ExitCode.SUCCESS
    return ExitCode.FAILED


def load_config(overrides: Optional[Dict[str, Any]] = None) -> StageConfig:
    """Environment-backed config; explicit overrides take priority."""
    return StageConfig(**(overrides or {}))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = _parse_args(argv)
    run_id = str(uuid.uuid4())
    logger = StageLogger(run_id)

    try:
        config = load_config(_cli_overrides(args))
    except ValidationError as exc:
        logger.error("config_error", error=str(exc))
        return int(ExitCode.ERROR)

    phase = classify_phase(
        config.configuration_list(),
        config.configuration,
        role=config.phase_role,
    )
    logger.info("artstage starting", version=__version__, phase=phase.label, dry_run=config.dry_run)

    try:
        with logger.stage("declarations"):
            specs = collect_specs(config)
    except StageError as exc:
        logger.error("declaration_error", error_kind=type(exc).__name__, error=str(exc))
        return int(exc.exit_code)

    options = CopyOptions(
        always_copy=config.always_copy,
        compare_size=config.compare_size,
        retry_count=config.retry_count,
        retry_wait_ms=config.retry_wait_ms,
        max_workers=config.max_workers,
        dry_run=config.dry_run,
    )
    report = stage_artifacts(
        specs,
        phase,
        options,
        logger=logger,
        case_sensitivity=config.case_sensitivity,
        flatten_collisions=config.flatten_collisions,
    )

    if config.report_dir is not None:
        try:
            path = write_stage_report(report, config.report_dir, run_id, __version__)
            logger.info("report_written", path=str(path))
        except OSError as exc:
            logger.warning("report_write_failed", error=str(exc))
    write_step_summary(report, run_id, __version__)

    exit_code = exit_code_for(report, config.fail_on_error)
    counts = report.summary
    summary_fields = dict(
        phase=phase.label,
        authoritative=report.authoritative,
        copied=counts.copied,
        skipped=counts.skipped,
        failed=counts.failed,
        spec_errors=len(report.spec_errors),
        duration_ms=report.duration_ms,
        exit_code=int(exit_code),
    )
    if report.succeeded:
        logger.info("artstage finished", **summary_fields)
    else:
        logger.error("artstage finished with failures", **summary_fields)
    return int(exit_code)


if __name__ == "__main__":
    sys.exit(main())
