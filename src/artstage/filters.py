from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Pattern, Sequence, Tuple, Union

from .errors import InvalidFilterSyntaxError
from .models import CaseSensitivity

_DELIMITERS = re.compile(r"[\s;]+")
_FORBIDDEN = set('/\\:<>|"')

PatternInput = Union[str, Iterable[str], None]


def split_patterns(text: PatternInput) -> List[str]:
    """
    Split a space- or semicolon-delimited pattern string into patterns.

    Delimiters cannot be escaped, so patterns containing spaces or ';' are
    not expressible. Lists are flattened the same way, element by element.
    """
    if text is None:
        return []
    if isinstance(text, str):
        chunks: Iterable[str] = [text]
    else:
        chunks = text
    patterns: List[str] = []
    for chunk in chunks:
        patterns.extend(token for token in _DELIMITERS.split(chunk) if token)
    return patterns


def validate_pattern(pattern: str) -> str:
    if not pattern:
        raise InvalidFilterSyntaxError(pattern, "empty pattern")
    for ch in pattern:
        if ch in _FORBIDDEN:
            raise InvalidFilterSyntaxError(pattern, f"unsupported character {ch!r}")
        if ord(ch) < 32:
            raise InvalidFilterSyntaxError(pattern, "control character")
    return pattern


def parse_patterns(text: PatternInput) -> Tuple[str, ...]:
    return tuple(validate_pattern(p) for p in split_patterns(text))


def is_case_sensitive(policy: CaseSensitivity = "auto") -> bool:
    if policy == "sensitive":
        return True
    if policy == "insensitive":
        return False
    return not (sys.platform.startswith("win") or sys.platform == "darwin")


@lru_cache(maxsize=1024)
def _compile(pattern: str, case_sensitive: bool) -> Pattern[str]:
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile("".join(parts) + r"\Z", flags)


def pattern_matches(filename: str, pattern: str, *, case_sensitive: bool) -> bool:
    return _compile(pattern, case_sensitive).match(filename) is not None


def matches(
    filename: str,
    includes: Sequence[str],
    excludes: Sequence[str],
    *,
    case_sensitivity: CaseSensitivity = "auto",
) -> bool:
    """Include-then-exclude evaluation; empty includes behaves as a single '*'."""
    sensitive = is_case_sensitive(case_sensitivity)
    if includes and not any(pattern_matches(filename, p, case_sensitive=sensitive) for p in includes):
        return False
    return not any(pattern_matches(filename, p, case_sensitive=sensitive) for p in excludes)


@dataclass(frozen=True)
class FilterSet:
    """Validated include/exclude pattern lists bound to a case policy."""

    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    case_sensitivity: CaseSensitivity = "auto"

    @classmethod
    def parse(
        cls,
        includes: PatternInput = None,
        excludes: PatternInput = None,
        *,
        case_sensitivity: CaseSensitivity = "auto",
    ) -> "FilterSet":
        return cls(
            includes=parse_patterns(includes),
            excludes=parse_patterns(excludes),
            case_sensitivity=case_sensitivity,
        )

    def matches(self, filename: str) -> bool:
        return matches(
            filename,
            self.includes,
            self.excludes,
            case_sensitivity=self.case_sensitivity,
        )


@dataclass(frozen=True)
class RobocopyFilters:
    includes: Tuple[str, ...]
    excludes: Tuple[str, ...]
    dir_excludes: Tuple[str, ...]


def split_robocopy_filters(text: str) -> RobocopyFilters:
    """
    Split a legacy robocopy-style filter string into separate lists.

    Bare tokens are file includes, tokens following ``/XF`` are file excludes
    and tokens following ``/XD`` are directory excludes, e.g.
    ``"*exe *dll /XF *.vshost.exe /XD obj"``.
    """
    includes: List[str] = []
    excludes: List[str] = []
    dir_excludes: List[str] = []
    target = includes
    for token in split_patterns(text):
        switch = token.upper()
        if switch == "/XF":
            target = excludes
            continue
        if switch == "/XD":
            target = dir_excludes
            continue
        if token.startswith("/"):
            raise InvalidFilterSyntaxError(token, "unsupported robocopy switch")
        target.append(validate_pattern(token))
    return RobocopyFilters(tuple(includes), tuple(excludes), tuple(dir_excludes))
