"""Number parsing and formatting used by the descriptor editor and CLI."""

import logging
import re

log = logging.getLogger(__name__)

DIGITS = "0123456789abcdef"

_PREFIX_BASES = {"0b": 2, "0o": 8, "0d": 10, "0x": 16}
_BYTE_SEPARATORS = re.compile(r"[\s,:]+")


def parse_number(text: str) -> int | None:
    """Parse an unsigned number, picking the base from its prefix.

    Supported forms (case-insensitive, underscores ignored):
     - no prefix: base 10
     - 0b, 0o, 0d, 0x: base 2, 8, 10, 16
     - h suffix: base 16

    Returns None if the text is malformed.
    """
    text = text.strip().lower().replace("_", "")

    base = 10
    if text[:2] in _PREFIX_BASES:
        base = _PREFIX_BASES[text[:2]]
        text = text[2:]
    elif text.endswith("h"):
        base = 16
        text = text[:-1]

    if not text:
        return None

    result = 0
    for char in text:
        index = DIGITS.find(char)
        if index == -1 or index >= base:
            return None
        result = result * base + index
    return result


def format_hex8(num: int) -> str:
    """Format the low 8 bits of a number as two hex digits."""
    return f"{num & 0xFF:02x}"


def format_hex32(num: int) -> str:
    """Format a 32-bit number as hex with an underscore between the halves."""
    if num > 0xFFFF_FFFF:
        log.warning("format_hex32: got too big number %#x", num)
    num &= 0xFFFF_FFFF
    return f"{num >> 16:04x}_{num & 0xFFFF:04x}"


def format_bytes(value: int) -> str:
    """Format a descriptor value as its 8 bytes in memory order."""
    return " ".join(format_hex8(value >> (8 * i)) for i in range(8))


def parse_bytes(text: str) -> int | None:
    """Parse 8 hex bytes in memory order back into a descriptor value.

    Returns None unless the text holds exactly 8 two-digit hex bytes.
    """
    tokens = [token for token in _BYTE_SEPARATORS.split(text.strip()) if token]
    if len(tokens) != 8:
        return None

    result = 0
    for i, token in enumerate(tokens):
        if len(token) > 2:
            return None
        byte = parse_number(f"0x{token}")
        if byte is None:
            return None
        result |= byte << (8 * i)
    return result


def format_bits(value: int) -> str:
    """Format a descriptor value as 64 bits, most significant first, grouped by byte."""
    bits = f"{value & 0xFFFF_FFFF_FFFF_FFFF:064b}"
    return " ".join(bits[i : i + 8] for i in range(0, 64, 8))
