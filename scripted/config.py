"""Configuration: identifier format settings, data paths, and .env loading.

WHY: Bank ids, register ids, and address ids are all rendered with the
same prefix/base/width settings, and every file name depends on them.
Centralizing the settings and their validation means the rest of the code
receives one immutable, already-checked Config object.

HOW: python-dotenv loads a .env file on import, then load_config() reads
the per-directory ``scripted.cfg`` key-value file with dotenv_values() and
layers environment variables on top. The merged values are validated by a
frozen pydantic model. save_config() writes the file back with set_key().

RULES:
- Config is immutable for a session (frozen model); reload to change it
- Precedence: environment variable > scripted.cfg > built-in default
- Keys: SCRIPTED_PREFIX, SCRIPTED_BASE, SCRIPTED_WIDTH_BANK,
  SCRIPTED_WIDTH_REG, SCRIPTED_WIDTH_ADDR
- SCRIPTED_ROOT selects the default data directory
- Invalid values raise ConfigError, never a bare ValidationError
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values, load_dotenv, set_key
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from scripted.core.codec import DIGITS, MAX_BASE, MIN_BASE
from scripted.core.errors import ConfigError

logger = logging.getLogger(__name__)

load_dotenv()

# ---------------------------------------------------------------------------
# Defaults and key names
# ---------------------------------------------------------------------------

DEFAULT_ROOT = os.getenv("SCRIPTED_ROOT", "banks")
CONFIG_FILENAME = "scripted.cfg"
OUT_DIRNAME = "out"

CONFIG_KEYS: Dict[str, str] = {
    "prefix": "SCRIPTED_PREFIX",
    "base": "SCRIPTED_BASE",
    "width_bank": "SCRIPTED_WIDTH_BANK",
    "width_reg": "SCRIPTED_WIDTH_REG",
    "width_addr": "SCRIPTED_WIDTH_ADDR",
}
"""Config field name -> key used in scripted.cfg and the environment."""


class Config(BaseModel):
    """Identifier rendering settings for one session.

    RULES:
    - prefix: exactly one character, prepended to bank file names; never a
      path character (/, \\, .), whitespace, or a digit of the chosen base
    - base: radix in [2, 36]
    - width_*: minimum digit counts for bank, register, and address ids
    """

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(default="x", min_length=1, max_length=1)
    base: int = Field(default=16, ge=MIN_BASE, le=MAX_BASE)
    width_bank: int = Field(default=5, ge=0)
    width_reg: int = Field(default=2, ge=0)
    width_addr: int = Field(default=2, ge=0)

    @model_validator(mode="after")
    def _check_prefix(self) -> "Config":
        # The prefix is stripped from file names before decoding, so it
        # must not be readable as part of the id or the path
        char = self.prefix
        if char in "/\\." or char.isspace():
            raise ValueError("prefix {!r} is not allowed in a file name".format(char))
        if char.lower() in DIGITS[: self.base]:
            raise ValueError("prefix {!r} is a base-{} digit".format(char, self.base))
        return self


@dataclass
class Paths:
    """Filesystem locations derived from the data root.

    HOW: out_dir and config_file default to fixed names under root.
    """

    root: Path
    out_dir: Path = field(init=False)
    config_file: Path = field(init=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        self.out_dir = self.root / OUT_DIRNAME
        self.config_file = self.root / CONFIG_FILENAME

    def ensure(self) -> None:
        """Create the root and output directories if missing."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.out_dir.mkdir(parents=True, exist_ok=True)


def default_paths(root: Optional[str] = None) -> Paths:
    """Build Paths from an explicit root or SCRIPTED_ROOT."""
    return Paths(Path(root or DEFAULT_ROOT))


def load_config(paths: Paths) -> Config:
    """Load and validate the Config for a data directory.

    WHY: Each bank directory carries its own identifier format, while
    the environment can still override it for one-off runs.

    HOW: Reads paths.config_file with dotenv_values() if it exists, then
    applies any matching environment variables, then validates.

    Raises:
        ConfigError: If any value fails validation.
    """
    raw: Dict[str, Optional[str]] = {}
    if paths.config_file.is_file():
        raw.update(dotenv_values(paths.config_file))
        logger.debug("Read config file %s", paths.config_file)

    values: Dict[str, str] = {}
    for name, key in CONFIG_KEYS.items():
        value = os.getenv(key, raw.get(key))
        if value is not None and value != "":
            values[name] = value

    try:
        config = Config(**values)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration in {}: {}".format(
            paths.config_file, exc
        )) from exc

    logger.info(
        "Config: prefix=%r base=%d widths=%d/%d/%d",
        config.prefix, config.base,
        config.width_bank, config.width_reg, config.width_addr,
    )
    return config


def save_config(paths: Paths, config: Config) -> None:
    """Write every Config field to paths.config_file.

    RULES:
    - Existing unrelated keys in the file are preserved
    - The root directory is created if needed
    """
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.config_file.touch(exist_ok=True)
    for name, key in CONFIG_KEYS.items():
        set_key(paths.config_file, key, str(getattr(config, name)), quote_mode="never")
    logger.info("Saved config to %s", paths.config_file)


def update_config(config: Config, **changes: str) -> Config:
    """Return a validated copy of ``config`` with ``changes`` applied.

    Raises:
        ConfigError: If a change names an unknown field or fails validation.
    """
    unknown = set(changes) - set(CONFIG_KEYS)
    if unknown:
        raise ConfigError("Unknown config field(s): {}".format(", ".join(sorted(unknown))))
    data = config.model_dump()
    data.update(changes)
    try:
        return Config(**data)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration: {}".format(exc)) from exc
