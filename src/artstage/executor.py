from __future__ import annotations

import os
import shutil
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .constants import Defaults
from .logging import StageLogger
from .models import CopyPlanEntry, CopyResult, CopyStatus, CopySummary


@dataclass(frozen=True)
class CopyOptions:
    always_copy: bool = False
    compare_size: bool = True
    retry_count: int = Defaults.RETRY_COUNT
    retry_wait_ms: int = Defaults.RETRY_WAIT_MS
    max_workers: int = 1
    dry_run: bool = False


def is_stale(source: os.stat_result, destination: Optional[os.stat_result], *, compare_size: bool = True) -> bool:
    """Return True when the destination needs to be (re)written."""
    if destination is None:
        return True
    if source.st_mtime_ns > destination.st_mtime_ns:
        return True
    return compare_size and source.st_size != destination.st_size


def _describe(exc: OSError) -> str:
    name = type(exc).__name__
    if exc.strerror:
        return f"{name}: [Errno {exc.errno}] {exc.strerror}"
    return f"{name}: {exc}"


class CopyExecutor:
    """
    Incremental copier for resolved plan entries.

    Failures are recorded per entry and never abort the batch. When several
    entries share a destination file only the last one in plan order is
    considered for copying; the earlier ones are reported as superseded.
    """

    def __init__(
        self,
        options: Optional[CopyOptions] = None,
        *,
        logger: Optional[StageLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.options = options or CopyOptions()
        self.logger = logger
        self._sleep = sleep
        self._dir_errors: Dict[Path, str] = {}
        self._dir_lock = threading.Lock()

    def execute(self, entries: Iterable[CopyPlanEntry]) -> List[CopyResult]:
        plan = list(entries)
        groups: Dict[Path, List[int]] = {}
        for index, entry in enumerate(plan):
            groups.setdefault(entry.destination_file, []).append(index)

        results: List[Optional[CopyResult]] = [None] * len(plan)

        def run_group(indexes: List[int]) -> List[Tuple[int, CopyResult]]:
            *earlier, last = indexes
            batch = [(i, self._superseded(plan[i], plan[last])) for i in earlier]
            batch.append((last, self._process(plan[last])))
            return batch

        workers = max(1, int(self.options.max_workers))
        if workers == 1 or len(groups) <= 1:
            for indexes in groups.values():
                for i, result in run_group(indexes):
                    results[i] = result
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                for batch in pool.map(run_group, groups.values()):
                    for i, result in batch:
                        results[i] = result

        return [r for r in results if r is not None]

    def _ensure_dir(self, directory: Path) -> Optional[str]:
        with self._dir_lock:
            if directory in self._dir_errors:
                return self._dir_errors[directory]
        if self.options.dry_run:
            return None
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            reason = _describe(exc)
            with self._dir_lock:
                self._dir_errors[directory] = reason
            return reason
        return None

    def _process(self, entry: CopyPlanEntry) -> CopyResult:
        try:
            source_stat = entry.source_file.stat()
        except OSError as exc:
            return self._failed(entry, _describe(exc), "CopyIOError")

        dir_error = self._ensure_dir(entry.destination_file.parent)
        if dir_error:
            return self._failed(entry, dir_error, "DestinationCreateError")

        try:
            dest_stat: Optional[os.stat_result] = entry.destination_file.stat()
        except FileNotFoundError:
            dest_stat = None
        except OSError as exc:
            return self._failed(entry, _describe(exc), "CopyIOError")

        force = self.options.always_copy or entry.always_copy
        if not force and not is_stale(source_stat, dest_stat, compare_size=self.options.compare_size):
            return CopyResult(entry=entry, status=CopyStatus.SKIPPED, reason="up-to-date")

        if self.options.dry_run:
            return CopyResult(entry=entry, status=CopyStatus.COPIED, reason="dry-run")

        attempts = max(0, int(self.options.retry_count)) + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                shutil.copyfile(entry.source_file, entry.destination_file)
                try:
                    shutil.copystat(entry.source_file, entry.destination_file)
                except OSError:
                    # a destination without the source mtime would look up to date next run
                    entry.destination_file.unlink(missing_ok=True)
                    raise
            except OSError as exc:
                last_error = _describe(exc)
                if attempt < attempts:
                    if self.logger:
                        self.logger.warning(
                            "copy_retry",
                            source=str(entry.source_file),
                            destination=str(entry.destination_file),
                            attempt=attempt,
                            error=last_error,
                        )
                    self._sleep(self.options.retry_wait_ms / 1000.0)
                continue
            if self.logger:
                self.logger.info(
                    "copied",
                    source=str(entry.source_file),
                    destination=str(entry.destination_file),
                )
            return CopyResult(
                entry=entry,
                status=CopyStatus.COPIED,
                bytes_copied=source_stat.st_size,
            )
        return self._failed(entry, last_error, "CopyIOError")

    def _superseded(self, entry: CopyPlanEntry, winner: CopyPlanEntry) -> CopyResult:
        if self.logger:
            self.logger.info(
                "copy_superseded",
                source=str(entry.source_file),
                destination=str(entry.destination_file),
                winner=str(winner.source_file),
            )
        return CopyResult(entry=entry, status=CopyStatus.SKIPPED, reason="superseded")

    def _failed(self, entry: CopyPlanEntry, reason: str, kind: str) -> CopyResult:
        if self.logger:
            self.logger.error(
                "copy_failed",
                source=str(entry.source_file),
                destination=str(entry.destination_file),
                error_kind=kind,
                error=reason,
            )
        return CopyResult(entry=entry, status=CopyStatus.FAILED, reason=reason, error_kind=kind)


def summarize(results: Iterable[CopyResult]) -> CopySummary:
    summary = CopySummary()
    for result in results:
        if result.status == CopyStatus.COPIED:
            summary.copied += 1
            summary.bytes_copied += result.bytes_copied
        elif result.status == CopyStatus.SKIPPED:
            summary.skipped += 1
        else:
            summary.failed += 1
            summary.failures.append(result)
    return summary
