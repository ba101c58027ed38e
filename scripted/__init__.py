"""Scripted bank editor: hierarchical bank/register/address config store.

WHY: Register banks live as small text files on disk, one file per bank.
Editing them by hand is error-prone and cross-references between banks
are only checked when something downstream breaks. This package loads the
whole directory into memory, edits banks interactively, and produces
resolved text and JSON artifacts without blocking the editor.

HOW: Four layers, each independently testable:
  core: identifier codec, in-memory model, bank file store, job gate
  formatters: resolver (flattened text) and exporter (canonical JSON)
  presenter: session state, user intents, single-flight background jobs
  views / gui: console shell, tkinter window, any other capability backend

RULES:
- Identifiers are non-negative 64-bit integers rendered in a configurable radix
- Only the control flow mutates the Workspace; workers read private snapshots
- At most one background job runs at a time
"""

__version__ = "0.1.0"
