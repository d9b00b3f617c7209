from __future__ import annotations

import json
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional


def _annotations_default() -> bool:
    return os.environ.get("GITHUB_ACTIONS", "").lower() == "true"


def escape_workflow_command(value: str) -> str:
    """Escape a string for GitHub workflow commands (annotation messages)."""
    if value is None:
        return ""
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class StageLogger:
    """Structured JSON logger with optional GitHub Actions annotations."""

    def __init__(self, run_id: str, *, annotations: Optional[bool] = None):
        self.run_id = run_id
        self.annotations = _annotations_default() if annotations is None else annotations
        self._stage_starts: dict[str, datetime] = {}

    def info(self, message: str, **kwargs: Any) -> None:
        self._emit("info", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._emit("warning", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._emit("error", message, **kwargs)

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Context manager that tracks stage timing."""
        start = datetime.now(timezone.utc)
        self._stage_starts[name] = start
        self.info("stage_start", stage=name)
        status = "ok"
        try:
            yield
        except Exception as exc:  # pragma: no cover - pass-through
            status = "error"
            self.error("stage_error", stage=name, error=str(exc))
            raise
        finally:
            end = datetime.now(timezone.utc)
            duration_ms = int((end - start).total_seconds() * 1000)
            self.info("stage_end", stage=name, duration_ms=duration_ms, status=status)

    def _emit(self, level: str, message: str, **kwargs: Any) -> None:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "run_id": self.run_id,
            "message": message,
        }
        fields = self._sanitize(kwargs)
        payload.update(fields)

        sys.stderr.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        sys.stderr.flush()

        if not self.annotations or level not in ("error", "warning"):
            return
        detail = " ".join(f"{key}={value}" for key, value in fields.items())
        text = f"{message} {detail}".strip()
        sys.stderr.write(f"::{level}::{escape_workflow_command(text)}\n")
        sys.stderr.flush()

    @staticmethod
    def _sanitize(fields: Dict[str, Any]) -> Dict[str, Any]:
        redacted: Dict[str, Any] = {}
        for key, value in fields.items():
            if StageLogger._is_sensitive_key(key):
                redacted[key] = "***"
            else:
                redacted[key] = value
        return redacted

    @staticmethod
    def _is_sensitive_key(key: str) -> bool:
        lowered = key.lower()
        return any(token in lowered for token in ("token", "secret", "password", "api_key", "apikey"))
