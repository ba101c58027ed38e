"""Fixed-width radix codec for bank, register, and address identifiers.

WHY: Every identifier is a 64-bit integer, but files, JSON keys, and the
editor all show it as a zero-padded string in a configurable base (hex by
default). Ordering and lookup use the integer; everything a human reads
uses the string. One codec keeps the two renderings consistent.

HOW: encode() repeatedly divides by the base and maps remainders onto a
fixed 0-9a-z alphabet, then left-pads with "0". decode() trims, checks each
character against the base's alphabet, and accumulates the value.

RULES:
- Alphabet is 0-9 then a-z; encode emits lowercase, decode accepts either case
- Width is a minimum: wider values are rendered in full, never truncated
- Negative values are outside the domain: encode rejects them, and decode
  rejects any sign character instead of returning a negative number
- Decoded values must fit in 64 unsigned bits
"""

from __future__ import annotations

import logging

from scripted.core.errors import ParseError

logger = logging.getLogger(__name__)

DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

MIN_BASE = 2
MAX_BASE = 36
MAX_IDENTIFIER = 2 ** 64 - 1


def _check_base(base: int) -> None:
    if not MIN_BASE <= base <= MAX_BASE:
        raise ValueError(
            "Base must be between {} and {}, got {}".format(MIN_BASE, MAX_BASE, base)
        )


def encode(value: int, base: int, width: int) -> str:
    """Render a non-negative integer as a zero-padded radix-``base`` string.

    Examples:
        encode(10, 16, 2) -> "0a"
        encode(255, 16, 1) -> "ff"   (wider than requested, not truncated)

    Raises:
        ValueError: If value is negative or base is outside [2, 36].
    """
    _check_base(base)
    if value < 0:
        raise ValueError("Identifiers are non-negative, got {}".format(value))

    digits = []
    remaining = value
    while True:
        remaining, digit = divmod(remaining, base)
        digits.append(DIGITS[digit])
        if remaining == 0:
            break
    text = "".join(reversed(digits))

    if len(text) > width:
        logger.debug("Identifier %d renders as %r, wider than %d", value, text, width)
    return text.rjust(width, "0")


def decode(text: str, base: int) -> int:
    """Parse a radix-``base`` identifier string back into its integer value.

    Surrounding whitespace is ignored. Letters may be upper or lower case.

    Raises:
        ParseError: If the text is empty, contains a sign or any character
            outside the base alphabet, or exceeds 64 unsigned bits.
        ValueError: If base is outside [2, 36].
    """
    _check_base(base)
    token = text.strip()
    if not token:
        raise ParseError(text, base, "empty")
    if token[0] in "+-":
        raise ParseError(text, base, "signed identifiers are not allowed")

    allowed = DIGITS[:base]
    value = 0
    for char in token.lower():
        digit = allowed.find(char)
        if digit < 0:
            raise ParseError(text, base, "invalid digit {!r}".format(char))
        value = value * base + digit

    if value > MAX_IDENTIFIER:
        raise ParseError(text, base, "exceeds 64 bits")
    return value


def is_valid(text: str, base: int) -> bool:
    """Return True if ``text`` decodes cleanly in ``base``."""
    try:
        decode(text, base)
    except ParseError:
        return False
    return True
