"""Pytest configuration for filedb test runs."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _isolated_filedb_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FILEDB_* variables from the shell out of every test."""
    for variable in [name for name in os.environ if name.startswith("FILEDB_")]:
        monkeypatch.delenv(variable)
