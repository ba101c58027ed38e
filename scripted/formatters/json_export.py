"""Exporter: serialize one bank to canonical JSON.

WHY: Other tools consume banks as JSON rather than the bank file layout.
The export must be deterministic so artifacts can be diffed and tested,
and it must round-trip back into the same set of addresses.

HOW: Builds a nested dict ``{reg: {addr: value}}`` with codec-rendered
keys, inserting registers and addresses in ascending id order. The
result is validated with jsonschema against bank_export_schema.json and
dumped with a stable indent.

RULES:
- Keys are register/address ids rendered with the configured base and widths
- Values are the raw, unresolved strings (no reference substitution)
- Emission order is ascending by id even though JSON consumers ignore key order
- Round-trip law: import_bank_json(export_bank_json(b)) has b's (reg, addr, value) set
- Output is validated against the schema before returning; raise on failure
- Output suffix: ".json"
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import jsonschema

from scripted.config import Config
from scripted.core.codec import decode, encode
from scripted.core.context import bank_stem
from scripted.core.errors import ContextError, ParseError, ResolutionError
from scripted.core.model import DEFAULT_TITLE, Bank, Workspace
from scripted.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent / "bank_export_schema.json"

_CACHED_SCHEMA: Dict[str, Any] | None = None


def _get_schema() -> Dict[str, Any]:
    """Load the export schema once and cache it."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def bank_to_dict(config: Config, bank: Bank) -> Dict[str, Dict[str, str]]:
    """Build the ordered ``{reg: {addr: value}}`` mapping for a bank."""
    data: Dict[str, Dict[str, str]] = {}
    for register in bank.iter_registers():
        reg_key = encode(register.id, config.base, config.width_reg)
        data[reg_key] = {
            encode(addr, config.base, config.width_addr): value
            for addr, value in register.items()
        }
    return data


def export_bank_json(config: Config, workspace: Workspace, bank_id: int) -> str:
    """Serialize ``bank_id`` to canonical JSON text.

    Raises:
        ResolutionError: If ``bank_id`` is not in the workspace.
        jsonschema.ValidationError: If the generated document does not
            match the export schema.
    """
    bank = workspace.get(bank_id)
    if bank is None:
        raise ResolutionError(bank_stem(config, bank_id), "bank is not loaded")

    data = bank_to_dict(config, bank)
    jsonschema.validate(instance=data, schema=_get_schema())
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def import_bank_json(config: Config, bank_id: int, text: str, title: str = DEFAULT_TITLE) -> Bank:
    """Rebuild a Bank from export_bank_json() output.

    Raises:
        ContextError: If the text is not valid JSON, does not match the
            schema, or holds an undecodable key.
    """
    try:
        data = json.loads(text)
        jsonschema.validate(instance=data, schema=_get_schema())
    except (ValueError, jsonschema.ValidationError) as exc:
        raise ContextError("Invalid bank JSON: {}".format(exc)) from exc

    bank = Bank(id=bank_id, title=title)
    try:
        for reg_key, addresses in data.items():
            reg = decode(reg_key, config.base)
            for addr_key, value in addresses.items():
                bank.set_value(reg, decode(addr_key, config.base), value)
    except ParseError as exc:
        raise ContextError("Invalid bank JSON key: {}".format(exc)) from exc
    return bank


class JsonExportFormatter(BaseFormatter):
    """Formatter that writes the canonical JSON export of a bank."""

    @property
    def suffix(self) -> str:
        return ".json"

    def format(self, config: Config, workspace: Workspace, bank_id: int) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix=self.suffix,
                content=export_bank_json(config, workspace, bank_id),
            )
        ]
