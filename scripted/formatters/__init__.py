"""Bank artifact formatter registry.

WHY: The presenter and the CLI need a single lookup to find the right
formatter for a job kind. A central dict makes adding a new artifact a
one-line change here plus one new module.

HOW: FORMATTERS maps job kind keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["export"]()``.

RULES:
- Keys match scripted.core.jobs.JobKind values exactly
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scripted.formatters.json_export import JsonExportFormatter
from scripted.formatters.resolved_text import ResolvedTextFormatter

if TYPE_CHECKING:
    from scripted.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "resolve": ResolvedTextFormatter,
    "export": JsonExportFormatter,
}
