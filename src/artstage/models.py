from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from .errors import CopyIOError

CaseSensitivity = Literal["auto", "sensitive", "insensitive"]
SourceKind = Literal["auto", "directory", "file"]
FlattenCollisionPolicy = Literal["last_wins", "error"]


@dataclass(frozen=True)
class ArtifactSpec:
    """A declared unit of staging work. Never mutated by the engine."""

    source_path: Path
    destination_folder: Path
    include_filters: Tuple[str, ...] = ()
    exclude_filters: Tuple[str, ...] = ()
    dir_excludes: Tuple[str, ...] = ()
    flatten: bool = False
    recursive: bool = True
    source_kind: SourceKind = "auto"
    verify_exists: bool = False
    always_copy: bool = False


@dataclass(frozen=True)
class CopyPlanEntry:
    source_file: Path
    destination_file: Path
    relative_path: str
    always_copy: bool = False


class PhaseRole(str, Enum):
    SINGLE = "single"
    OUTER = "outer"
    INNER = "inner"


@dataclass(frozen=True)
class PhaseContext:
    """Identifies the build phase this invocation runs in."""

    role: PhaseRole = PhaseRole.SINGLE
    configuration: Optional[str] = None
    configurations: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        if self.configuration:
            return f"{self.role.value}:{self.configuration}"
        return self.role.value


class CopyStatus(str, Enum):
    COPIED = "copied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class CopyResult:
    entry: CopyPlanEntry
    status: CopyStatus
    reason: str = ""
    error_kind: Optional[str] = None
    bytes_copied: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "source": str(self.entry.source_file),
            "destination": str(self.entry.destination_file),
            "status": self.status.value,
        }
        if self.reason:
            payload["reason"] = self.reason
        if self.error_kind:
            payload["error_kind"] = self.error_kind
        if self.bytes_copied:
            payload["bytes"] = self.bytes_copied
        return payload


@dataclass
class CopySummary:
    copied: int = 0
    skipped: int = 0
    failed: int = 0
    bytes_copied: int = 0
    failures: List[CopyResult] = field(default_factory=list)

    def total(self) -> int:
        return self.copied + self.skipped + self.failed

    @property
    def succeeded(self) -> bool:
        return self.failed == 0

    def raise_for_failures(self) -> None:
        if not self.failures:
            return
        lines = [
            f"{r.entry.source_file} -> {r.entry.destination_file}: {r.reason}"
            for r in self.failures
        ]
        first = self.failures[0].entry
        raise CopyIOError(
            f"{len(self.failures)} file(s) failed to copy:\n" + "\n".join(lines),
            source=first.source_file,
            destination=first.destination_file,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "copied": self.copied,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total(),
            "bytes_copied": self.bytes_copied,
        }


@dataclass(frozen=True)
class SpecError:
    """Resolution-time error local to one artifact spec."""

    spec_index: int
    source_path: Path
    error_kind: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spec_index": self.spec_index,
            "source": str(self.source_path),
            "error_kind": self.error_kind,
            "message": self.message,
        }


@dataclass
class StageReport:
    phase: PhaseContext
    authoritative: bool
    results: List[CopyResult] = field(default_factory=list)
    summary: CopySummary = field(default_factory=CopySummary)
    spec_errors: List[SpecError] = field(default_factory=list)
    duration_ms: int = 0
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.summary.succeeded and not self.spec_errors
