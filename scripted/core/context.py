"""Context store: bank files on disk, loaded into and saved from the Workspace.

WHY: Each bank ("context") lives in its own text file named after its
id, e.g. ``x00001.txt``. The editor needs to open one bank by name,
create it if it does not exist yet, bulk-load a whole directory, and
write a bank back deterministically so diffs stay small.

HOW: file_name_for() derives the path from the Config. parse_bank_text()
and format_bank_text() define the file layout; open_context(),
preload_all(), and save_bank() add the disk I/O around them.

File layout (one bank per file):
  # comment lines and blank lines are ignored
  @title <escaped title>
  [<register id>]
  <address id>=<escaped value>

RULES:
- Values and titles escape backslash, newline, and carriage return
  (\\\\, \\n, \\r); everything else is stored verbatim
- Files are read as UTF-8 and may use LF or CRLF line endings
- Written files list registers then addresses in ascending id order
- open_context() is open-or-create: it only fails if the name cannot be parsed
  or an existing file is unreadable; the workspace is unchanged on failure
- preload_all() overwrites same-id banks already in memory (bulk refresh)
- Unreadable files found by preload_all() are logged and skipped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from scripted.config import Config, Paths
from scripted.core.codec import decode, encode, is_valid
from scripted.core.errors import ContextError, ParseError
from scripted.core.model import DEFAULT_TITLE, Bank, Register, Workspace

logger = logging.getLogger(__name__)

BANK_SUFFIX = ".txt"
_TITLE_DIRECTIVE = "@title"

# Open outcomes reported in OpenResult.action
OPEN_EXISTING = "existing"
OPEN_LOADED = "loaded"
OPEN_CREATED = "created"


@dataclass
class OpenResult:
    """Outcome of open_context(): which bank, what happened, and a status line."""

    bank_id: int
    action: str
    status: str


# ---------------------------------------------------------------------------
# Names and escaping
# ---------------------------------------------------------------------------


def bank_stem(config: Config, bank_id: int) -> str:
    """Return the file stem for a bank, e.g. ``x00001``."""
    return config.prefix + encode(bank_id, config.base, config.width_bank)


def file_name_for(config: Config, paths: Paths, bank_id: int) -> Path:
    """Return ``<root>/<prefix><encoded id>.txt`` for a bank."""
    return paths.root / (bank_stem(config, bank_id) + BANK_SUFFIX)


def normalize_name(config: Config, name_or_stem: str) -> int:
    """Turn a file name, path, or stem into a bank id.

    Accepts ``x00001``, ``x00001.txt``, ``00001``, or a full path to the
    file. The directory part and one trailing extension are dropped, then
    a leading prefix character, then the rest is decoded.

    Raises:
        ParseError: If the remaining token is not a valid identifier.
    """
    name = Path(name_or_stem.strip()).name
    suffix = Path(name).suffix
    if suffix:
        name = name[: -len(suffix)]
    if name.startswith(config.prefix):
        name = name[len(config.prefix):]
    try:
        return decode(name, config.base)
    except ParseError as exc:
        raise ParseError(name_or_stem, config.base, exc.reason) from exc


def escape_value(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")


def unescape_value(text: str) -> str:
    """Reverse escape_value(). Unknown escapes are kept as written."""
    out: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt == "n":
                out.append("\n")
            elif nxt == "r":
                out.append("\r")
            elif nxt == "\\":
                out.append("\\")
            else:
                out.append(char + nxt)
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


# ---------------------------------------------------------------------------
# Text layout
# ---------------------------------------------------------------------------


def parse_bank_text(config: Config, bank_id: int, text: str, source: str = "<text>") -> Bank:
    """Parse bank file content into a Bank.

    Raises:
        ContextError: On an address line outside a register section, a line
            without ``=``, or an undecodable register/address id. The message
            names ``source`` and the 1-based line number.
    """
    bank = Bank(id=bank_id)
    current: Register | None = None

    for lineno, line in enumerate(text.split("\n"), start=1):
        if line.endswith("\r"):
            line = line[:-1]
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        try:
            if stripped == _TITLE_DIRECTIVE or line.lstrip().startswith(_TITLE_DIRECTIVE + " "):
                # One space separates the directive; the rest is the title verbatim
                bank.title = unescape_value(line.lstrip()[len(_TITLE_DIRECTIVE) + 1:])
            elif stripped.startswith("[") and stripped.endswith("]"):
                reg_id = decode(stripped[1:-1], config.base)
                current = bank.registers.get(reg_id)
                if current is None:
                    current = Register(id=reg_id)
                    bank.registers[reg_id] = current
            else:
                key, sep, value = line.partition("=")
                if not sep:
                    raise ContextError("expected <addr>=<value>")
                if current is None:
                    raise ContextError("address outside of a [register] section")
                current.addresses[decode(key, config.base)] = unescape_value(value)
        except (ParseError, ContextError) as exc:
            raise ContextError("{}:{}: {}".format(source, lineno, exc)) from exc

    return bank


def format_bank_text(config: Config, bank: Bank) -> str:
    """Serialize a Bank into the file layout, ascending ids, newline-terminated."""
    lines = ["{} {}".format(_TITLE_DIRECTIVE, escape_value(bank.title))]
    for register in bank.iter_registers():
        lines.append("[{}]".format(encode(register.id, config.base, config.width_reg)))
        for addr, value in register.items():
            lines.append("{}={}".format(
                encode(addr, config.base, config.width_addr), escape_value(value),
            ))
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Disk I/O
# ---------------------------------------------------------------------------


def load_bank_file(config: Config, path: Path, bank_id: int) -> Bank:
    """Read and parse one bank file.

    Raises:
        ContextError: If the file cannot be read or parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        reason = getattr(exc, "strerror", None) or str(exc)
        raise ContextError("Cannot read {}: {}".format(path, reason), path=path) from exc
    return parse_bank_text(config, bank_id, text, source=str(path))


def open_context(config: Config, paths: Paths, workspace: Workspace, name_or_stem: str) -> OpenResult:
    """Open a bank by name: reuse it, load it from disk, or create it.

    WHY: The editor's "switch" box accepts any bank name. Typing a name
    that has no file yet is how new banks get started.

    RULES:
    - Already loaded → no-op, action "existing"
    - File present → parsed and inserted, action "loaded"
    - File absent → empty bank with the default title, action "created"

    Raises:
        ParseError: If the name does not decode to an identifier.
        ContextError: If the file exists but cannot be read or parsed.
    """
    bank_id = normalize_name(config, name_or_stem)
    stem = bank_stem(config, bank_id)

    if bank_id in workspace:
        return OpenResult(bank_id, OPEN_EXISTING, "Switched to {}".format(stem))

    path = file_name_for(config, paths, bank_id)
    if path.is_file():
        bank = load_bank_file(config, path, bank_id)
        workspace.put(bank)
        count = sum(len(reg.addresses) for reg in bank.registers.values())
        logger.info("Loaded %s (%d addresses)", path, count)
        return OpenResult(bank_id, OPEN_LOADED, "Loaded {} ({} addresses)".format(stem, count))

    workspace.put(Bank(id=bank_id, title=DEFAULT_TITLE))
    logger.info("Created new bank %s", stem)
    return OpenResult(bank_id, OPEN_CREATED, "Created {} (new bank)".format(stem))


def _bank_token(config: Config, filename: str) -> str | None:
    """Return the id token of a ``<prefix><digits>.txt`` name, else None."""
    if not filename.startswith(config.prefix) or not filename.endswith(BANK_SUFFIX):
        return None
    token = filename[len(config.prefix): -len(BANK_SUFFIX)]
    if token != token.strip() or not is_valid(token, config.base):
        return None
    return token


def preload_all(config: Config, paths: Paths, workspace: Workspace) -> int:
    """Load every bank file in the root directory into the workspace.

    Returns:
        Number of files successfully loaded.
    """
    if not paths.root.is_dir():
        logger.warning("Bank directory %s does not exist", paths.root)
        return 0

    loaded = 0
    seen = {}
    for path in sorted(paths.root.iterdir()):
        if not path.is_file():
            continue
        token = _bank_token(config, path.name)
        if token is None:
            continue
        bank_id = decode(token, config.base)
        try:
            bank = load_bank_file(config, path, bank_id)
        except ContextError as exc:
            logger.warning("Skipping %s: %s", path.name, exc)
            continue
        if bank_id in seen:
            logger.warning("%s and %s both name bank %d; keeping %s",
                           seen[bank_id], path.name, bank_id, path.name)
        seen[bank_id] = path.name
        workspace.put(bank)
        loaded += 1

    logger.info("Preloaded %d bank file(s) from %s", loaded, paths.root)
    return loaded


def save_bank(config: Config, paths: Paths, bank: Bank) -> Path:
    """Write a bank to its file, replacing any previous content.

    Raises:
        ContextError: With the OS error text if the write fails.
    """
    path = file_name_for(config, paths, bank.id)
    content = format_bank_text(config, bank)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
    except OSError as exc:
        reason = exc.strerror or str(exc)
        raise ContextError("Cannot write {}: {}".format(path, reason), path=path) from exc
    logger.info("Saved %s", path)
    return path
