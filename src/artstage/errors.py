from __future__ import annotations

from pathlib import Path
from typing import Optional

from .constants import ExitCode


class StageError(Exception):
    """Base exception for all staging errors."""

    exit_code: ExitCode = ExitCode.ERROR


class ConfigError(StageError):
    """Configuration or manifest validation failed."""

    exit_code = ExitCode.ERROR


class InvalidFilterSyntaxError(StageError):
    """A filter pattern cannot be used for filename matching."""

    exit_code = ExitCode.ERROR

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid filter pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class SourceNotFoundError(StageError):
    """An explicit file source does not exist."""

    exit_code = ExitCode.FAILED

    def __init__(self, source: Path):
        super().__init__(f"Source not found: {source}")
        self.source = source


class DestinationCollisionError(StageError):
    """Two flattened files resolve to the same destination."""

    exit_code = ExitCode.FAILED

    def __init__(self, destination: Path, first: Path, second: Path):
        super().__init__(
            f"Flatten collision at {destination}: {first} and {second}"
        )
        self.destination = destination
        self.first = first
        self.second = second


class CopyIOError(StageError):
    """A file could not be copied."""

    exit_code = ExitCode.FAILED

    def __init__(self, message: str, source: Optional[Path] = None, destination: Optional[Path] = None):
        super().__init__(message)
        self.source = source
        self.destination = destination


class DestinationCreateError(CopyIOError):
    """A destination directory could not be created."""
