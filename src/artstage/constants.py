from __future__ import annotations

from enum import Enum


class ExitCode(int, Enum):
    """Process exit codes."""

    SUCCESS = 0
    FAILED = 1
    ERROR = 2


class Defaults:
    """Shared defaults."""

    INCLUDE = "*exe *dll *exe.config *nupkg"
    MAX_WORKERS = 4
    RETRY_COUNT = 2
    RETRY_WAIT_MS = 250
    REPORT_FILE = "STAGE_REPORT.json"
    SCHEMA_VERSION = "1.0"
