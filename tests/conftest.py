from __future__ import annotations

import os
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest


@pytest.fixture
def make_files(tmp_path: Path):
    """Create empty-ish files under a directory relative to tmp_path."""

    def _make(dirname: str, *names: str) -> Path:
        root = tmp_path / dirname
        root.mkdir(parents=True, exist_ok=True)
        for name in names:
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"content of {name}", encoding="utf-8")
        return root

    return _make


@pytest.fixture
def build_output(make_files) -> Path:
    return make_files(
        "bin",
        "foo.exe",
        "foo.pdb",
        "foo.exe.config",
        "bar.dll",
        "bar.pdb",
        "bar.cs",
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_STEP_SUMMARY", raising=False)
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)
    for key in list(os.environ):
        if key.startswith("ARTSTAGE_"):
            monkeypatch.delenv(key, raising=False)
