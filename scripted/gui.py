"""Tkinter desktop GUI for the scripted bank editor.

WHY: Most bank edits are small: pick a bank, change a few values, save,
then resolve or export. A single window with a bank picker, a row table,
and a handful of buttons covers that without any terminal.

HOW: BankEditorApp builds the window and implements the View interface,
so the Presenter drives every widget through show_status/show_rows/
show_current/show_bank_list/set_busy. Buttons call presenter methods.
Background jobs post their results to the presenter's queue; the window
drains it with presenter.poll_jobs() from a root.after() timer every
100ms, which keeps all widget access on the Tk main thread.

RULES:
- tkinter widgets are ONLY touched from the main thread
- The bank combobox is editable: typing a name and pressing Enter or
  Switch opens that bank (creating it when no file exists)
- Resolve and Export are disabled while a job runs
- Selecting a row copies its reg/addr/value into the edit fields
- Closing the window with unsaved edits asks for confirmation
"""

from __future__ import annotations

import logging
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Dict, List, Optional, Tuple

from scripted.config import Paths, default_paths
from scripted.core.codec import encode
from scripted.core.context import BANK_SUFFIX, escape_value, unescape_value
from scripted.core.errors import ConfigError
from scripted.core.model import Row
from scripted.presenter import Presenter
from scripted.views.base import View

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WINDOW_TITLE = "Scripted Bank Editor"
_WINDOW_MIN_WIDTH = 640
_WINDOW_MIN_HEIGHT = 480
_PAD = 8
_POLL_MS = 100


class BankEditorApp(View):
    """Main tkinter window; the View half of the presenter pair.

    RULES:
    - All tkinter widget access happens on the main thread only
    - .after() drains finished jobs every 100ms for the window's lifetime
    """

    def __init__(self, root: tk.Tk, paths: Paths) -> None:
        self._root = root
        self._root.title(_WINDOW_TITLE)
        self._root.minsize(_WINDOW_MIN_WIDTH, _WINDOW_MIN_HEIGHT)

        self._bank_names: Dict[str, int] = {}
        self._row_items: Dict[str, Row] = {}
        self._shown_bank: Optional[int] = None

        self._build_ui()

        # Presenter pushes status during preload, so widgets must exist first
        self._presenter = Presenter(self, paths)
        self.show_bank_list(self._presenter.workspace.bank_list())

        self._root.protocol("WM_DELETE_WINDOW", self._on_close)
        self._root.after(_POLL_MS, self._poll_jobs)

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        """Build the main window layout."""
        main = ttk.Frame(self._root, padding=_PAD)
        main.pack(fill=tk.BOTH, expand=True)

        # --- Bank selection ---
        bank_frame = ttk.LabelFrame(main, text="Bank", padding=_PAD)
        bank_frame.pack(fill=tk.X, pady=(0, _PAD))

        self._bank_var = tk.StringVar()
        self._bank_combo = ttk.Combobox(bank_frame, textvariable=self._bank_var, width=28)
        self._bank_combo.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self._bank_combo.bind("<Return>", lambda _event: self._switch())
        self._bank_combo.bind("<<ComboboxSelected>>", lambda _event: self._switch())

        ttk.Button(bank_frame, text="Switch", command=self._switch).pack(side=tk.LEFT, padx=(4, 0))
        ttk.Button(bank_frame, text="Open...", command=self._browse_bank).pack(side=tk.LEFT, padx=(4, 0))
        ttk.Button(bank_frame, text="Preload", command=self._preload).pack(side=tk.LEFT, padx=(4, 0))

        # --- Rows ---
        rows_frame = ttk.LabelFrame(main, text="Addresses", padding=_PAD)
        rows_frame.pack(fill=tk.BOTH, expand=True, pady=(0, _PAD))

        filter_row = ttk.Frame(rows_frame)
        filter_row.pack(fill=tk.X, pady=(0, 4))
        ttk.Label(filter_row, text="Filter:").pack(side=tk.LEFT)
        self._filter_var = tk.StringVar()
        self._filter_var.trace_add("write", lambda *_args: self._presenter.set_filter(self._filter_var.get()))
        ttk.Entry(filter_row, textvariable=self._filter_var).pack(side=tk.LEFT, fill=tk.X, expand=True, padx=(4, 0))

        tree_row = ttk.Frame(rows_frame)
        tree_row.pack(fill=tk.BOTH, expand=True)
        self._tree = ttk.Treeview(tree_row, columns=("reg", "addr", "value"), show="headings", height=12)
        self._tree.heading("reg", text="Reg")
        self._tree.heading("addr", text="Addr")
        self._tree.heading("value", text="Value")
        self._tree.column("reg", width=70, stretch=False)
        self._tree.column("addr", width=70, stretch=False)
        self._tree.column("value", width=420)
        self._tree.bind("<<TreeviewSelect>>", self._on_row_selected)
        scroll = ttk.Scrollbar(tree_row, orient=tk.VERTICAL, command=self._tree.yview)
        self._tree.configure(yscrollcommand=scroll.set)
        self._tree.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scroll.pack(side=tk.RIGHT, fill=tk.Y)

        # --- Editing ---
        edit_frame = ttk.LabelFrame(main, text="Edit", padding=_PAD)
        edit_frame.pack(fill=tk.X, pady=(0, _PAD))

        self._reg_var = tk.StringVar()
        self._addr_var = tk.StringVar()
        self._value_var = tk.StringVar()
        ttk.Label(edit_frame, text="Reg:").pack(side=tk.LEFT)
        ttk.Entry(edit_frame, textvariable=self._reg_var, width=6).pack(side=tk.LEFT, padx=(4, 8))
        ttk.Label(edit_frame, text="Addr:").pack(side=tk.LEFT)
        ttk.Entry(edit_frame, textvariable=self._addr_var, width=6).pack(side=tk.LEFT, padx=(4, 8))
        ttk.Label(edit_frame, text="Value:").pack(side=tk.LEFT)
        ttk.Entry(edit_frame, textvariable=self._value_var).pack(side=tk.LEFT, fill=tk.X, expand=True, padx=(4, 8))
        ttk.Button(edit_frame, text="Insert", command=self._insert).pack(side=tk.LEFT)
        ttk.Button(edit_frame, text="Delete", command=self._delete).pack(side=tk.LEFT, padx=(4, 0))

        # --- Actions ---
        action_frame = ttk.Frame(main)
        action_frame.pack(fill=tk.X, pady=(0, _PAD))
        ttk.Button(action_frame, text="Save", command=lambda: self._presenter.save()).pack(side=tk.LEFT)
        self._resolve_btn = ttk.Button(action_frame, text="Resolve", command=lambda: self._presenter.resolve())
        self._resolve_btn.pack(side=tk.LEFT, padx=(4, 0))
        self._export_btn = ttk.Button(action_frame, text="Export JSON", command=lambda: self._presenter.export())
        self._export_btn.pack(side=tk.LEFT, padx=(4, 0))

        # --- Status ---
        self._status_var = tk.StringVar(value="Starting...")
        ttk.Label(main, textvariable=self._status_var, anchor=tk.W, relief=tk.SUNKEN).pack(fill=tk.X)

    # ------------------------------------------------------------------
    # View interface
    # ------------------------------------------------------------------

    def show_status(self, text: str) -> None:
        self._status_var.set(text)

    def show_rows(self, rows: List[Row]) -> None:
        self._tree.delete(*self._tree.get_children())
        self._row_items = {}
        config = self._presenter.config
        for row in rows:
            item = self._tree.insert("", tk.END, values=(
                encode(row.reg, config.base, config.width_reg),
                encode(row.addr, config.base, config.width_addr),
                escape_value(row.value),
            ))
            self._row_items[item] = row

    def show_current(self, bank_id: Optional[int]) -> None:
        # Called on every row refresh; leave typed combobox text alone
        # unless the bank really changed
        if bank_id == self._shown_bank:
            return
        self._shown_bank = bank_id
        if bank_id is None:
            self._root.title(_WINDOW_TITLE)
            return
        stem = self._presenter.stem(bank_id)
        self._bank_var.set(stem)
        self._root.title("{} - {}".format(stem, _WINDOW_TITLE))

    def show_bank_list(self, banks: List[Tuple[int, str]]) -> None:
        self._bank_names = {}
        labels = []
        for bank_id, title in banks:
            label = "{}  ({})".format(self._presenter_stem(bank_id), title)
            self._bank_names[label] = bank_id
            labels.append(label)
        self._bank_combo.configure(values=labels)

    def set_busy(self, busy: bool) -> None:
        state = tk.DISABLED if busy else tk.NORMAL
        self._resolve_btn.configure(state=state)
        self._export_btn.configure(state=state)
        self._root.configure(cursor="watch" if busy else "")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _presenter_stem(self, bank_id: int) -> str:
        # show_bank_list runs once from inside Presenter.__init__
        presenter = getattr(self, "_presenter", None)
        if presenter is not None:
            return presenter.stem(bank_id)
        return str(bank_id)

    def _switch(self) -> None:
        text = self._bank_var.get().strip()
        bank_id = self._bank_names.get(text)
        name = self._presenter.stem(bank_id) if bank_id is not None else text
        self._presenter.switch_or_open(name)

    def _browse_bank(self) -> None:
        path = filedialog.askopenfilename(
            title="Open bank",
            initialdir=str(self._presenter.paths.root),
            filetypes=[("Bank files", "*" + BANK_SUFFIX), ("All files", "*.*")],
        )
        if path:
            self._presenter.switch_or_open(Path(path).name)

    def _preload(self) -> None:
        if self._presenter.dirty and not messagebox.askokcancel(
            "Preload", "Reloading discards unsaved edits in the current bank. Continue?"
        ):
            return
        self._presenter.preload()

    def _insert(self) -> None:
        self._presenter.insert_text(
            self._reg_var.get(), self._addr_var.get(), unescape_value(self._value_var.get()),
        )

    def _delete(self) -> None:
        self._presenter.delete_text(self._reg_var.get(), self._addr_var.get())

    def _on_row_selected(self, _event: object) -> None:
        selection = self._tree.selection()
        if not selection:
            return
        row = self._row_items.get(selection[0])
        if row is None:
            return
        config = self._presenter.config
        self._reg_var.set(encode(row.reg, config.base, config.width_reg))
        self._addr_var.set(encode(row.addr, config.base, config.width_addr))
        self._value_var.set(escape_value(row.value))

    def _poll_jobs(self) -> None:
        """Apply finished background jobs, then reschedule."""
        self._presenter.poll_jobs()
        self._root.after(_POLL_MS, self._poll_jobs)

    def _on_close(self) -> None:
        if self._presenter.dirty and not messagebox.askokcancel(
            "Quit", "The current bank has unsaved edits. Quit anyway?"
        ):
            return
        self._root.destroy()


def main(paths: Optional[Paths] = None) -> None:
    """Launch the Tkinter GUI application.

    WHY: Provides a standalone entry point for the GUI, callable via
    ``python -m scripted.gui`` or the --gui CLI flag.

    RULES:
    - This function blocks until the window is closed
    - Must be called from the main thread
    """
    root = tk.Tk()
    try:
        BankEditorApp(root, paths if paths is not None else default_paths())
    except ConfigError as exc:
        logger.error("Cannot start: %s", exc)
        messagebox.showerror("Configuration Error", str(exc))
        root.destroy()
        return
    root.mainloop()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    main()
