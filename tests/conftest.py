"""Shared test fixtures for the scripted test suite.

WHY: Most test modules need an isolated bank directory, the default
Config, and a View double that records what a user would have seen.
Centralizing them here keeps every test independent of the developer's
environment and working directory.

HOW: Pytest fixtures provide a Paths rooted in tmp_path, the default
Config, a RecordingView, and a helper that writes bank files. An autouse
fixture strips SCRIPTED_* variables so a developer's .env or shell never
changes identifier formatting under test.

RULES:
- Every test gets its own directory (tmp_path); nothing touches ./banks
- RecordingView keeps every notification in call order
- Bank files written by fixtures use the default format (prefix x, base 16)
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from scripted.config import CONFIG_KEYS, Config, Paths
from scripted.core.model import Row
from scripted.views.base import View


class RecordingView(View):
    """View double that records every notification."""

    def __init__(self) -> None:
        self.statuses: List[str] = []
        self.rows: List[Row] = []
        self.current: Optional[int] = None
        self.banks: List[Tuple[int, str]] = []
        self.busy_changes: List[bool] = []

    @property
    def last_status(self) -> str:
        return self.statuses[-1] if self.statuses else ""

    def show_status(self, text: str) -> None:
        self.statuses.append(text)

    def show_rows(self, rows: List[Row]) -> None:
        self.rows = list(rows)

    def show_current(self, bank_id: Optional[int]) -> None:
        self.current = bank_id

    def show_bank_list(self, banks: List[Tuple[int, str]]) -> None:
        self.banks = list(banks)

    def set_busy(self, busy: bool) -> None:
        self.busy_changes.append(busy)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove SCRIPTED_* overrides for the duration of each test."""
    for key in CONFIG_KEYS.values():
        monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("SCRIPTED_ROOT", raising=False)


@pytest.fixture
def config() -> Config:
    """Default identifier settings: prefix x, base 16, widths 5/2/2."""
    return Config()


@pytest.fixture
def paths(tmp_path) -> Paths:
    """Paths rooted in an empty per-test bank directory."""
    p = Paths(tmp_path / "banks")
    p.ensure()
    return p


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def write_bank(paths):
    """Return a helper that writes ``<root>/<stem>.txt`` with given content."""

    def _write(stem: str, content: str) -> Path:
        path = paths.root / (stem + ".txt")
        path.write_text(content, encoding="utf-8")
        return path

    return _write
