from __future__ import annotations

import time
from contextlib import nullcontext
from typing import ContextManager, Iterable, List, Optional, Tuple

from .authority import gate_specs, should_produce_artifacts
from .errors import StageError
from .executor import CopyExecutor, CopyOptions, summarize
from .logging import StageLogger
from .models import (
    ArtifactSpec,
    CaseSensitivity,
    CopyPlanEntry,
    FlattenCollisionPolicy,
    PhaseContext,
    SpecError,
    StageReport,
)
from .resolver import resolve


def _stage(logger: Optional[StageLogger], name: str) -> ContextManager[None]:
    return logger.stage(name) if logger else nullcontext()


def _resolve_all(
    specs: List[ArtifactSpec],
    *,
    case_sensitivity: CaseSensitivity,
    flatten_collisions: FlattenCollisionPolicy,
    logger: Optional[StageLogger],
) -> Tuple[List[CopyPlanEntry], List[SpecError]]:
    entries: List[CopyPlanEntry] = []
    errors: List[SpecError] = []
    for index, spec in enumerate(specs):
        try:
            resolved = resolve(
                spec,
                case_sensitivity=case_sensitivity,
                flatten_collisions=flatten_collisions,
            )
            spec_entries = resolved.entries()
        except (StageError, OSError) as exc:
            error = SpecError(
                spec_index=index,
                source_path=spec.source_path,
                error_kind=type(exc).__name__,
                message=str(exc),
            )
            errors.append(error)
            if logger:
                logger.error(
                    "spec_failed",
                    spec_index=index,
                    source=str(spec.source_path),
                    error_kind=error.error_kind,
                    error=error.message,
                )
            continue
        if logger:
            for directory in resolved.unreadable:
                logger.warning(
                    "directory_unreadable",
                    spec_index=index,
                    source=str(spec.source_path),
                    directory=str(directory),
                )
            logger.info(
                "spec_resolved",
                spec_index=index,
                source=str(spec.source_path),
                destination=str(spec.destination_folder),
                entries=len(spec_entries),
            )
        entries.extend(spec_entries)
    return entries, errors


def plan_artifacts(
    specs: Iterable[ArtifactSpec],
    phase: PhaseContext,
    *,
    case_sensitivity: CaseSensitivity = "auto",
    flatten_collisions: FlattenCollisionPolicy = "last_wins",
) -> List[CopyPlanEntry]:
    """
    Resolved copy plan for this phase; empty for non-authoritative phases.

    Resolution errors propagate.
    """
    entries: List[CopyPlanEntry] = []
    for spec in gate_specs(phase, specs):
        entries.extend(
            resolve(spec, case_sensitivity=case_sensitivity, flatten_collisions=flatten_collisions)
        )
    return entries


def stage_artifacts(
    specs: Iterable[ArtifactSpec],
    phase: PhaseContext,
    options: Optional[CopyOptions] = None,
    *,
    logger: Optional[StageLogger] = None,
    case_sensitivity: CaseSensitivity = "auto",
    flatten_collisions: FlattenCollisionPolicy = "last_wins",
) -> StageReport:
    """Gate, resolve and copy. Only reports; the caller decides pass/fail."""
    options = options or CopyOptions()
    start = time.monotonic()
    authoritative = should_produce_artifacts(phase)
    report = StageReport(phase=phase, authoritative=authoritative, dry_run=options.dry_run)

    if not authoritative:
        if logger:
            logger.info("phase_not_authoritative", phase=phase.label)
        return report

    gated = gate_specs(phase, specs)
    with _stage(logger, "resolve"):
        entries, report.spec_errors = _resolve_all(
            gated,
            case_sensitivity=case_sensitivity,
            flatten_collisions=flatten_collisions,
            logger=logger,
        )
    with _stage(logger, "copy"):
        report.results = CopyExecutor(options, logger=logger).execute(entries)

    report.summary = summarize(report.results)
    report.duration_ms = int((time.monotonic() - start) * 1000)
    return report
