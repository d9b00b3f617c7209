"""artstage: declarative, incremental staging of build outputs."""

from __future__ import annotations

__version__ = "0.1.0"
