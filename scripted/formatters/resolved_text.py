"""Resolver: flatten one bank into text with cross-references substituted.

WHY: Address values may point at other addresses, in the same bank or in
any other loaded bank. Downstream tools want a flat file with those
pointers already replaced, and want a broken pointer reported before any
file is produced.

HOW: Rows are walked in ascending (register, address) order. Every
``${...}`` reference inside a value is looked up in the Workspace and
replaced by the referenced raw value. The first reference that cannot be
parsed or found raises ResolutionError and the whole run is abandoned.

Reference syntax:
  ${BANK:REG:ADDR}: any loaded bank; BANK may carry the prefix character
  ${REG:ADDR}: shorthand for the bank being resolved

Output layout:
  # <prefix><bank id> <title>
  <reg>.<addr>=<resolved value, escaped like bank files>

RULES:
- Single pass: substituted text is not scanned for further references
- Lookups go against the whole Workspace, not just the resolved bank
- Fail fast on the first unresolved reference, in row order
- No partial output: the text is only returned when every row resolved
- Output suffix: ".resolved.txt"
"""

from __future__ import annotations

import re
from typing import List, Set, Tuple

from scripted.config import Config
from scripted.core.codec import decode, encode
from scripted.core.context import bank_stem, escape_value
from scripted.core.errors import ParseError, ResolutionError
from scripted.core.model import Bank, Workspace
from scripted.formatters.base import BaseFormatter, FormatterOutput

REFERENCE_RE = re.compile(r"\$\{([^{}]*)\}")


def parse_reference(
    config: Config,
    reference: str,
    inner: str,
    home_bank: int,
) -> Tuple[int, int, int]:
    """Split a reference body into (bank, reg, addr) ids.

    Raises:
        ResolutionError: If the body does not have two or three tokens or a
            token does not decode.
    """
    parts = inner.split(":")
    if len(parts) not in (2, 3):
        raise ResolutionError(reference, "expected ${bank:reg:addr} or ${reg:addr}")

    try:
        if len(parts) == 3:
            bank_token = parts[0].strip()
            if bank_token.startswith(config.prefix):
                bank_token = bank_token[len(config.prefix):]
            bank_id = decode(bank_token, config.base)
        else:
            bank_id = home_bank
        reg = decode(parts[-2], config.base)
        addr = decode(parts[-1], config.base)
    except ParseError as exc:
        raise ResolutionError(reference, "bad identifier {!r}".format(exc.text)) from exc
    return bank_id, reg, addr


def referenced_banks(config: Config, bank: Bank) -> Set[int]:
    """Return the ids of every bank the values of ``bank`` point at.

    Includes ``bank.id`` itself. Malformed references are ignored here;
    resolve_bank() reports them.
    """
    found = {bank.id}
    for row in bank.rows():
        for match in REFERENCE_RE.finditer(row.value):
            try:
                bank_id, _, _ = parse_reference(config, match.group(0), match.group(1), bank.id)
            except ResolutionError:
                continue
            found.add(bank_id)
    return found


def _lookup(config: Config, workspace: Workspace, reference: str, inner: str, home_bank: int) -> str:
    bank_id, reg, addr = parse_reference(config, reference, inner, home_bank)
    target = workspace.get(bank_id)
    if target is None:
        raise ResolutionError(reference, "bank {} is not loaded".format(bank_stem(config, bank_id)))
    value = target.get_value(reg, addr)
    if value is None:
        raise ResolutionError(reference, "no address {}.{} in {}".format(
            encode(reg, config.base, config.width_reg),
            encode(addr, config.base, config.width_addr),
            bank_stem(config, bank_id),
        ))
    return value


def resolve_value(config: Config, workspace: Workspace, value: str, home_bank: int) -> str:
    """Substitute every reference in one value (single pass)."""
    return REFERENCE_RE.sub(
        lambda m: _lookup(config, workspace, m.group(0), m.group(1), home_bank),
        value,
    )


def resolve_bank(config: Config, workspace: Workspace, bank_id: int) -> str:
    """Render ``bank_id`` as flattened text with all references resolved.

    Raises:
        ResolutionError: On the first reference that cannot be resolved, or
            if ``bank_id`` itself is not in the workspace.
    """
    bank = workspace.get(bank_id)
    if bank is None:
        raise ResolutionError(bank_stem(config, bank_id), "bank is not loaded")

    lines: List[str] = ["# {} {}".format(bank_stem(config, bank_id), escape_value(bank.title))]
    for row in bank.rows():
        resolved = resolve_value(config, workspace, row.value, bank_id)
        lines.append("{}.{}={}".format(
            encode(row.reg, config.base, config.width_reg),
            encode(row.addr, config.base, config.width_addr),
            escape_value(resolved),
        ))
    return "\n".join(lines) + "\n"


class ResolvedTextFormatter(BaseFormatter):
    """Formatter that writes the resolved, flattened text of a bank."""

    @property
    def suffix(self) -> str:
        return ".resolved.txt"

    def format(self, config: Config, workspace: Workspace, bank_id: int) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix=self.suffix,
                content=resolve_bank(config, workspace, bank_id),
            )
        ]
