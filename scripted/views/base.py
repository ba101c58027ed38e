"""Capability interface that every front end implements.

WHY: The presenter drives a desktop window, a console shell, and test
doubles with the same logic. Putting the outbound notifications behind
one abstract class keeps the presenter free of any widget or terminal
code, and lets tests record exactly what a user would have seen.

HOW: View is an ABC with one method per notification. Front ends call
the presenter's public methods for the inbound operations (switch_or_open,
preload, save, resolve, export, insert, delete, set_filter).

RULES:
- Every method is called on the control flow (never from a worker thread)
- Methods must not call back into the presenter synchronously
- rows are always passed in ascending (register, address) order
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from scripted.core.model import Row


class View(ABC):
    """Outbound notifications from the presenter to a front end."""

    @abstractmethod
    def show_status(self, text: str) -> None:
        """Show a one-line status message."""

    @abstractmethod
    def show_rows(self, rows: List[Row]) -> None:
        """Replace the visible rows of the current bank (already filtered)."""

    @abstractmethod
    def show_current(self, bank_id: Optional[int]) -> None:
        """Show which bank is selected, or None."""

    @abstractmethod
    def show_bank_list(self, banks: List[Tuple[int, str]]) -> None:
        """Replace the list of loaded banks as (id, title) pairs."""

    @abstractmethod
    def set_busy(self, busy: bool) -> None:
        """Reflect whether a background job is running."""
