"""Abstract base formatter, output container, and output writer.

WHY: Resolving and exporting both turn one bank (seen through a
Workspace) into an artifact under ``out/``. A shared interface lets the
presenter, the CLI, and the tests run either one generically and write
the result the same way.

HOW: BaseFormatter is an ABC with a file ``suffix`` property and a
``format()`` method. FormatterOutput bundles the suffix with the
content. save_outputs() writes outputs as ``<out_dir>/<encoded id><suffix>``.

RULES:
- Subclasses MUST implement ``suffix`` and ``format()``
- ``format()`` returns a list; both built-in formatters return one item
- ``format()`` reads only the Workspace it is given and never mutates it
- Artifacts overwrite any previous artifact of the same name
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List

from scripted.config import Config
from scripted.core.codec import encode
from scripted.core.model import Workspace

logger = logging.getLogger(__name__)


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: Appended to the encoded bank id, e.g. ``".json"`` →
                ``"00001.json"``.
        content: The complete file content.
    """

    suffix: str
    content: str


class BaseFormatter(ABC):
    """Abstract base for bank artifact formatters.

    To add a new artifact type:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement suffix and format()
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def suffix(self) -> str:
        """File suffix of the main output, e.g. '.json'."""

    @abstractmethod
    def format(self, config: Config, workspace: Workspace, bank_id: int) -> List[FormatterOutput]:
        """Render one bank into one or more output files.

        Args:
            config: Identifier rendering settings.
            workspace: The banks visible to this run (usually a snapshot).
            bank_id: The bank to render; must be present in ``workspace``.

        Returns:
            List of FormatterOutput objects.
        """


def output_path(config: Config, out_dir: Path, bank_id: int, suffix: str) -> Path:
    """Return ``<out_dir>/<encoded bank id><suffix>``."""
    return out_dir / "{}{}".format(encode(bank_id, config.base, config.width_bank), suffix)


def save_outputs(
    config: Config,
    out_dir: Path,
    bank_id: int,
    outputs: List[FormatterOutput],
) -> List[Path]:
    """Write formatter outputs to disk and return their paths.

    Raises:
        OSError: If the directory cannot be created or a file cannot be written.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    saved: List[Path] = []
    for output in outputs:
        path = output_path(config, out_dir, bank_id, output.suffix)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(output.content)
        logger.info("Wrote %s (%d chars)", path, len(output.content))
        saved.append(path)
    return saved
