"""Console front end: a text View and an interactive command shell.

WHY: Banks are often edited over SSH or from scripts where no window is
available. The console shell offers every presenter operation as a short
command, and ConsoleView is also what the one-shot CLI commands use to
report status.

HOW: ConsoleView prints status lines to a stream and keeps the latest rows
and bank list so the ``show`` and ``list`` commands can print them on
demand. BankShell is a cmd.Cmd loop; before and after every command it
drains finished background jobs with Presenter.poll_jobs(), which is this
front end's completion hand-off point.

RULES:
- Status lines are printed immediately; rows and bank lists only on request
- Identifiers are typed and shown in the configured base
- Values are shown escaped (\\n, \\r, \\\\) so each row stays on one line
- ``set`` takes the rest of the line as the value, spaces included
"""

from __future__ import annotations

import cmd
import shlex
import sys
from typing import IO, List, Optional, Tuple

from scripted.core.context import escape_value
from scripted.core.model import Row
from scripted.views.base import View


class ConsoleView(View):
    """View that writes to a text stream."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self.rows: List[Row] = []
        self.banks: List[Tuple[int, str]] = []
        self.current: Optional[int] = None
        self.busy = False

    def write(self, text: str) -> None:
        print(text, file=self._stream, flush=True)

    def show_status(self, text: str) -> None:
        self.write(text)

    def show_rows(self, rows: List[Row]) -> None:
        self.rows = list(rows)

    def show_current(self, bank_id: Optional[int]) -> None:
        self.current = bank_id

    def show_bank_list(self, banks: List[Tuple[int, str]]) -> None:
        self.banks = list(banks)

    def set_busy(self, busy: bool) -> None:
        self.busy = busy


class BankShell(cmd.Cmd):
    """Interactive shell over a Presenter.

    Args:
        presenter: The application core (scripted.presenter.Presenter).
        view: The ConsoleView the presenter was built with.
    """

    intro = "Scripted bank editor. Type 'help' for commands."

    def __init__(self, presenter, view: ConsoleView, stdin=None, stdout=None) -> None:
        super().__init__(stdin=stdin, stdout=stdout)
        self.presenter = presenter
        self.view = view
        if stdin is not None:
            self.use_rawinput = False
        self._update_prompt()

    # ------------------------------------------------------------------
    # cmd.Cmd hooks
    # ------------------------------------------------------------------

    def _update_prompt(self) -> None:
        current = self.presenter.current
        name = self.presenter.stem(current) if current is not None else "-"
        marks = ("*" if self.presenter.dirty else "") + ("~" if self.presenter.busy else "")
        self.prompt = "[{}{}]> ".format(name, marks)

    def precmd(self, line: str) -> str:
        self.presenter.poll_jobs()
        return line

    def postcmd(self, stop: bool, line: str) -> bool:
        self.presenter.poll_jobs()
        self._update_prompt()
        return stop

    def emptyline(self) -> bool:
        return False

    def default(self, line: str) -> bool:
        self.view.write("Unknown command: {}".format(line.split()[0]))
        return False

    def _args(self, arg: str, count: int, usage: str) -> Optional[List[str]]:
        try:
            parts = shlex.split(arg)
        except ValueError as exc:
            self.view.write("Parse error: {}".format(exc))
            return None
        if len(parts) != count:
            self.view.write("Usage: {}".format(usage))
            return None
        return parts

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def do_open(self, arg: str) -> bool:
        """open NAME  -- switch to a bank, loading or creating it (e.g. open x00001)"""
        parts = self._args(arg, 1, "open NAME")
        if parts is not None:
            self.presenter.switch_or_open(parts[0])
        return False

    def do_preload(self, arg: str) -> bool:
        """preload  -- reload every bank file from disk (discards unsaved edits)"""
        self.presenter.preload()
        return False

    def do_list(self, arg: str) -> bool:
        """list  -- show loaded banks"""
        if not self.view.banks:
            self.view.write("(no banks loaded)")
        for bank_id, title in self.view.banks:
            marker = "*" if bank_id == self.presenter.current else " "
            self.view.write("{} {}  ({})".format(marker, self.presenter.stem(bank_id), title))
        return False

    def do_show(self, arg: str) -> bool:
        """show  -- show the rows of the current bank (after filtering)"""
        if self.presenter.current is None:
            self.view.write("No current context")
            return False
        if not self.view.rows:
            self.view.write("(no rows)")
        for row in self.view.rows:
            self.view.write("{}  {}".format(
                self.presenter.row_key(row.reg, row.addr), escape_value(row.value),
            ))
        return False

    def do_set(self, arg: str) -> bool:
        """set REG ADDR VALUE...  -- insert or overwrite one address"""
        parts = arg.split(None, 2)
        if len(parts) < 2:
            self.view.write("Usage: set REG ADDR VALUE...")
            return False
        value = parts[2] if len(parts) > 2 else ""
        self.presenter.insert_text(parts[0], parts[1], value)
        return False

    def do_del(self, arg: str) -> bool:
        """del REG ADDR  -- delete one address"""
        parts = self._args(arg, 2, "del REG ADDR")
        if parts is not None:
            self.presenter.delete_text(parts[0], parts[1])
        return False

    def do_filter(self, arg: str) -> bool:
        """filter [TEXT]  -- only show rows containing TEXT (no TEXT clears it)"""
        self.presenter.set_filter(arg.strip())
        self.view.write("{} of {} rows shown".format(len(self.view.rows), len(self.presenter.rows())))
        return False

    def do_save(self, arg: str) -> bool:
        """save  -- write the current bank to its file"""
        self.presenter.save()
        return False

    def do_resolve(self, arg: str) -> bool:
        """resolve  -- write out/<id>.resolved.txt in the background"""
        self.presenter.resolve()
        return False

    def do_export(self, arg: str) -> bool:
        """export  -- write out/<id>.json in the background"""
        self.presenter.export()
        return False

    def do_wait(self, arg: str) -> bool:
        """wait  -- block until the running background job finishes"""
        if self.presenter.wait_for_job() is None:
            self.view.write("No job running")
        return False

    def do_quit(self, arg: str) -> bool:
        """quit  -- leave the shell"""
        if self.presenter.dirty:
            self.view.write("Warning: unsaved edits in the current bank were discarded")
        return True

    do_exit = do_quit

    def do_EOF(self, arg: str) -> bool:
        self.view.write("")
        return self.do_quit(arg)
