"""Exception hierarchy for the bank editor.

WHY: The presenter turns every failure into a short status line, but it
needs to tell apart a typo in an identifier, a broken bank file, and a
dangling cross-reference to pick the right message. Typed exceptions make
that distinction explicit instead of string matching.

HOW: All domain errors derive from ScriptedError so the presenter can
catch one base class at its boundary. ParseError also derives from
ValueError since it is raised for bad user input.

RULES:
- Core modules raise these; only the presenter and CLI convert them to text
- str(exc) is always a complete, human-readable message
"""

from __future__ import annotations


class ScriptedError(Exception):
    """Base class for all bank editor errors."""


class ParseError(ScriptedError, ValueError):
    """Raised when identifier text is malformed for the configured base.

    RULES:
    - text: the offending input exactly as given (before trimming)
    - base: the radix the text was parsed against
    """

    def __init__(self, text: str, base: int, reason: str = "") -> None:
        self.text = text
        self.base = base
        self.reason = reason
        detail = " ({})".format(reason) if reason else ""
        super().__init__("Bad identifier {!r} for base {}{}".format(text, base, detail))


class ContextError(ScriptedError):
    """Raised when a bank file cannot be read, parsed, or written.

    WHY: Load and save failures must leave the workspace untouched and
    report the OS-level error text to the user.

    RULES:
    - path: the bank file involved, or None when not file-specific
    - message already includes the OS error text where there is one
    """

    def __init__(self, message: str, path=None) -> None:
        self.path = path
        super().__init__(message)


class ResolutionError(ScriptedError):
    """Raised on the first cross-reference that cannot be resolved.

    RULES:
    - reference: the reference text as written in the value, e.g. "${x1:01:0a}"
    - Raised before any output is written
    """

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        super().__init__("Unresolved reference {}: {}".format(reference, reason))


class ConfigError(ScriptedError):
    """Raised when the config file or environment holds invalid values."""
