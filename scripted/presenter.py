"""Application core: session state, user intents, and background jobs.

WHY: Every front end (tkinter window, console shell, tests) offers the
same operations (switch bank, preload, edit, save, resolve, export,
filter). Keeping them in one presenter, behind the View capability
interface, means the rules about the current bank, the dirty flag, and
the single background job are written once.

HOW: Presenter owns the Config, Paths, Workspace, and session state
(current bank, dirty flag, filter text). Synchronous intents mutate the
workspace and push fresh rows/bank list/status to the View. resolve() and
export() pass a JobGate compare-and-set, take a deep snapshot of the banks
the job needs, and start a worker via run_job(). The worker posts a
JobResult to self._results; the control flow drains it with poll_jobs()
(or wait_for_job()), which frees the gate and reports the outcome.

RULES:
- Operations needing a bank report "No current context" before doing anything
- A second resolve/export while one runs reports "Busy..." and starts nothing
- Workers only see their snapshot; edits after dispatch never reach them
- dirty is set by an effective insert/delete, cleared by a successful save
  or by switching banks, and left set by a failed save
- Failures become status text; no operation raises to the front end
"""

from __future__ import annotations

import functools
import logging
import queue
from pathlib import Path
from typing import List, Optional, Tuple

from scripted.config import Config, Paths, load_config
from scripted.core.codec import MAX_IDENTIFIER, decode, encode
from scripted.core.context import bank_stem, open_context, preload_all, save_bank
from scripted.core.errors import ContextError, ParseError
from scripted.core.jobs import JobGate, JobKind, JobResult, JobState, run_job
from scripted.core.model import Bank, Row, Workspace
from scripted.formatters import FORMATTERS
from scripted.formatters.base import BaseFormatter, save_outputs
from scripted.formatters.resolved_text import referenced_banks
from scripted.views.base import View

logger = logging.getLogger(__name__)

NO_CONTEXT = "No current context"
BUSY = "Busy..."

_DONE_MESSAGES = {
    JobKind.RESOLVE: ("Resolved -> {}", "Resolve failed: {}"),
    JobKind.EXPORT: ("Exported JSON -> {}", "Export failed: {}"),
}


def filter_rows(config: Config, rows: List[Row], query: str) -> List[Row]:
    """Keep rows whose encoded reg, encoded addr, or value contains ``query``.

    Matching is a case-insensitive substring test. An empty query keeps
    every row.
    """
    if not query:
        return list(rows)
    needle = query.lower()
    kept: List[Row] = []
    for row in rows:
        fields = (
            encode(row.reg, config.base, config.width_reg),
            encode(row.addr, config.base, config.width_addr),
            row.value,
        )
        if any(needle in field.lower() for field in fields):
            kept.append(row)
    return kept


def _render_artifact(
    formatter: BaseFormatter,
    config: Config,
    snapshot: Workspace,
    bank_id: int,
    out_dir: Path,
) -> Path:
    """Worker body: format the snapshot and write the artifact(s)."""
    outputs = formatter.format(config, snapshot, bank_id)
    return save_outputs(config, out_dir, bank_id, outputs)[0]


class Presenter:
    """Owns session state and implements every user intent.

    Args:
        view: The front end receiving notifications.
        paths: Data directory layout.
        config: Identifier settings; loaded from ``paths`` when omitted.
        preload: Load every bank file in the root on construction.
    """

    def __init__(
        self,
        view: View,
        paths: Paths,
        config: Optional[Config] = None,
        preload: bool = True,
    ) -> None:
        self._view = view
        self.paths = paths
        self.config = config if config is not None else load_config(paths)
        self.workspace = Workspace()

        self._current: Optional[int] = None
        self._dirty = False
        self._filter = ""

        self._gate = JobGate()
        self._results: "queue.Queue[JobResult]" = queue.Queue()

        self.paths.ensure()
        if preload:
            preload_all(self.config, self.paths, self.workspace)
        self._push_banks()
        self._view.show_status("Ready. Loaded {} banks.".format(len(self.workspace)))

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def current(self) -> Optional[int]:
        return self._current

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def filter_text(self) -> str:
        return self._filter

    @property
    def job_state(self) -> JobState:
        return self._gate.state

    @property
    def busy(self) -> bool:
        return self._gate.running

    def current_bank(self) -> Optional[Bank]:
        if self._current is None:
            return None
        return self.workspace.get(self._current)

    def rows(self) -> List[Row]:
        """All rows of the current bank, unfiltered."""
        bank = self.current_bank()
        return bank.rows() if bank is not None else []

    def visible_rows(self) -> List[Row]:
        """Rows of the current bank that match the active filter."""
        return filter_rows(self.config, self.rows(), self._filter)

    def stem(self, bank_id: int) -> str:
        return bank_stem(self.config, bank_id)

    def row_key(self, reg: int, addr: int) -> str:
        """Render ``reg.addr`` with the configured widths."""
        return "{}.{}".format(
            encode(reg, self.config.base, self.config.width_reg),
            encode(addr, self.config.base, self.config.width_addr),
        )

    # ------------------------------------------------------------------
    # View refresh
    # ------------------------------------------------------------------

    def _push_banks(self) -> None:
        self._view.show_bank_list(self.workspace.bank_list())
        self._view.show_current(self._current)

    def _refresh_rows(self) -> None:
        self._view.show_rows(self.visible_rows())
        self._view.show_current(self._current)

    def _require_current(self) -> Optional[Bank]:
        bank = self.current_bank()
        if bank is None:
            self._view.show_status(NO_CONTEXT)
        return bank

    # ------------------------------------------------------------------
    # Bank selection and loading
    # ------------------------------------------------------------------

    def switch_or_open(self, name_or_stem: str) -> bool:
        """Select a bank by name, loading or creating it as needed.

        Returns True if the selection changed to the named bank.
        """
        try:
            result = open_context(self.config, self.paths, self.workspace, name_or_stem)
        except ParseError:
            status = "Bad context id: {}".format(name_or_stem.strip())
            ok = False
        except ContextError as exc:
            status = "Open failed: {}".format(exc)
            ok = False
        else:
            if self._dirty and self._current is not None and self._current != result.bank_id:
                logger.warning("Switching away from %s with unsaved edits", self.stem(self._current))
            self._current = result.bank_id
            self._dirty = False
            status = result.status
            ok = True

        self._push_banks()
        self._refresh_rows()
        self._view.show_status(status)
        return ok

    def preload(self) -> int:
        """Reload every bank file from disk, replacing same-id banks in memory."""
        try:
            loaded = preload_all(self.config, self.paths, self.workspace)
        except OSError as exc:
            self._view.show_status("Preload failed: {}".format(exc.strerror or exc))
            return 0
        self._push_banks()
        self._refresh_rows()
        self._view.show_status("Preloaded {} banks.".format(len(self.workspace)))
        return loaded

    def set_filter(self, text: str) -> None:
        self._filter = text
        self._refresh_rows()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _valid_ids(self, reg: int, addr: int) -> bool:
        for label, value in (("reg", reg), ("addr", addr)):
            if not 0 <= value <= MAX_IDENTIFIER:
                self._view.show_status("Bad {}: {}".format(label, value))
                return False
        return True

    def insert(self, reg: int, addr: int, value: str) -> bool:
        """Insert or overwrite one address in the current bank."""
        bank = self._require_current()
        if bank is None or not self._valid_ids(reg, addr):
            return False
        bank.set_value(reg, addr, value)
        self._dirty = True
        self._refresh_rows()
        self._view.show_status("Updated {}".format(self.row_key(reg, addr)))
        return True

    def delete(self, reg: int, addr: int) -> bool:
        """Remove one address from the current bank. Missing entries are a no-op."""
        bank = self._require_current()
        if bank is None or not self._valid_ids(reg, addr):
            return False
        if not bank.remove_value(reg, addr):
            self._view.show_status("Nothing to delete")
            return False
        self._dirty = True
        self._refresh_rows()
        self._view.show_status("Deleted {}".format(self.row_key(reg, addr)))
        return True

    def _parse_pair(self, reg_text: str, addr_text: str) -> Optional[Tuple[int, int]]:
        """Decode editor text fields; an empty register defaults to 1."""
        if not addr_text.strip():
            self._view.show_status("Address required")
            return None
        try:
            reg = decode(reg_text, self.config.base) if reg_text.strip() else 1
        except ParseError:
            self._view.show_status("Bad reg: {}".format(reg_text.strip()))
            return None
        try:
            addr = decode(addr_text, self.config.base)
        except ParseError:
            self._view.show_status("Bad addr: {}".format(addr_text.strip()))
            return None
        return reg, addr

    def insert_text(self, reg_text: str, addr_text: str, value: str) -> bool:
        """insert() taking identifiers as typed by the user."""
        if self._require_current() is None:
            return False
        pair = self._parse_pair(reg_text, addr_text)
        if pair is None:
            return False
        return self.insert(pair[0], pair[1], value)

    def delete_text(self, reg_text: str, addr_text: str) -> bool:
        """delete() taking identifiers as typed by the user."""
        if self._require_current() is None:
            return False
        pair = self._parse_pair(reg_text, addr_text)
        if pair is None:
            return False
        return self.delete(pair[0], pair[1])

    def save(self) -> bool:
        """Write the current bank to its file; clears dirty on success."""
        bank = self._require_current()
        if bank is None:
            return False
        try:
            path = save_bank(self.config, self.paths, bank)
        except ContextError as exc:
            self._view.show_status("Save failed: {}".format(exc))
            return False
        self._dirty = False
        self._view.show_status("Saved {}".format(path))
        return True

    # ------------------------------------------------------------------
    # Background jobs
    # ------------------------------------------------------------------

    def resolve(self) -> bool:
        """Start resolving the current bank in the background."""
        return self._start_job(JobKind.RESOLVE)

    def export(self) -> bool:
        """Start exporting the current bank to JSON in the background."""
        return self._start_job(JobKind.EXPORT)

    def _snapshot_for(self, kind: JobKind, bank: Bank) -> Workspace:
        if kind is JobKind.RESOLVE:
            return self.workspace.snapshot(referenced_banks(self.config, bank))
        return self.workspace.snapshot([bank.id])

    def _start_job(self, kind: JobKind) -> bool:
        bank = self._require_current()
        if bank is None:
            return False
        if not self._gate.try_start():
            self._view.show_status(BUSY)
            return False

        try:
            snapshot = self._snapshot_for(kind, bank)
            work = functools.partial(
                _render_artifact,
                FORMATTERS[kind.value](),
                self.config,
                snapshot,
                bank.id,
                self.paths.out_dir,
            )
            run_job(kind, bank.id, work, self._results)
        except Exception:
            self._gate.finish()
            raise

        self._view.set_busy(True)
        self._view.show_status("{} {}...".format(
            "Resolving" if kind is JobKind.RESOLVE else "Exporting", self.stem(bank.id),
        ))
        return True

    def _complete(self, result: JobResult) -> None:
        self._gate.finish()
        self._view.set_busy(False)
        ok_message, fail_message = _DONE_MESSAGES[result.kind]
        if result.ok:
            self._view.show_status(ok_message.format(result.path))
        else:
            self._view.show_status(fail_message.format(result.error))

    def poll_jobs(self) -> int:
        """Apply every finished job waiting in the hand-off queue.

        Never blocks. Returns the number of results applied.
        """
        handled = 0
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                return handled
            self._complete(result)
            handled += 1

    def wait_for_job(self, timeout: Optional[float] = None) -> Optional[JobResult]:
        """Block until the running job finishes, then apply its result.

        For console and test use; interactive front ends use poll_jobs().
        Returns None if no job is running or the timeout expires.
        """
        if not self.busy and self._results.empty():
            return None
        try:
            result = self._results.get(timeout=timeout)
        except queue.Empty:
            return None
        self._complete(result)
        return result
