from __future__ import annotations

from typing import Optional


def humanize_duration_ms(duration_ms: Optional[int]) -> str:
    if duration_ms is None or duration_ms < 0:
        return "n/a"
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    seconds = duration_ms / 1000.0
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rem_s = divmod(int(round(seconds)), 60)
    return f"{minutes}m {rem_s}s"


def format_int(value: int) -> str:
    return f"{value:,}"


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KiB", "MiB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GiB"


def truncate(text: str, max_len: int) -> str:
    """Shorten text to max_len characters, ending with an ellipsis when cut."""
    if len(text) <= max_len:
        return text
    return text[: max(max_len - 1, 0)].rstrip() + "…"
