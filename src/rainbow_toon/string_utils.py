"""String utilities for TOON encoding and tabular row scanning."""

import re
from functools import lru_cache
from typing import TYPE_CHECKING

from wcwidth import wcswidth

if TYPE_CHECKING:
    from .types import Delimiter

# TOON only allows these 5 escape sequences
ESCAPE_MAP = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

# Reserved literals that can't be unquoted strings
RESERVED_LITERALS = {"true", "false", "null"}

# Structural, quoting and control characters that require quoting
UNSAFE_CHARS = frozenset(':[]{}"\\\n\r\t')

# Keys that may be written without quotes
UNQUOTED_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")

NUMERIC_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?$")


def escape_string(value: str) -> str:
    """Escape a string for the inside of TOON double quotes."""
    return "".join(ESCAPE_MAP.get(char, char) for char in value)


def is_safe_unquoted(value: str, delimiter: "Delimiter" = ",") -> bool:
    """
    Check if a string cell can be written bare.

    A bare token must read back as the same string inside a row that uses
    ``delimiter``. Literal and number look-alikes stay quoted, and a leading
    ``-`` would read as a list marker.
    """
    if not value or value != value.strip():
        return False

    if value in RESERVED_LITERALS or looks_like_number(value):
        return False

    if value.startswith("-"):
        return False

    return not any(c in UNSAFE_CHARS or c == delimiter for c in value)


def looks_like_number(value: str) -> bool:
    """Check if a bare token could be read back as a number.

    Zero-padded forms like ``007`` count, as do spellings only ``float()``
    accepts (``.5``, ``inf``, ``1_000``).
    """
    if NUMERIC_PATTERN.match(value):
        return True
    try:
        float(value)
    except ValueError:
        return False
    return True


def is_safe_unquoted_key(key: str) -> bool:
    """Check if an object key or field name can be written bare."""
    return bool(UNQUOTED_KEY_PATTERN.match(key))


def split_cells(line: str, delimiter: "Delimiter", start: int = 0) -> list[tuple[int, int]]:
    """
    Split ``line[start:]`` at delimiters that sit outside double quotes.

    Escape sequences inside quotes are skipped, so ``\\"`` never closes a
    quoted section.

    Args:
        line: The line to split.
        delimiter: The delimiter character.
        start: Column where the first cell begins.

    Returns:
        ``(start, end)`` column pairs, one per cell, covering the rest of the
        line with the delimiters excluded.
    """
    spans = []
    cell_start = start
    in_quotes = False
    i = start

    while i < len(line):
        char = line[i]
        if char == "\\" and in_quotes and i + 1 < len(line):
            i += 2
            continue
        elif char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            spans.append((cell_start, i))
            cell_start = i + 1
        i += 1

    spans.append((cell_start, len(line)))
    return spans


def find_unquoted(line: str, char: str, start: int = 0) -> int:
    """
    Find the first occurrence of ``char`` outside double quotes.

    Returns:
        Index of the character, or -1 if not found.
    """
    in_quotes = False
    i = start
    while i < len(line):
        current = line[i]
        if current == "\\" and in_quotes and i + 1 < len(line):
            i += 2
            continue
        elif current == '"':
            in_quotes = not in_quotes
        elif current == char and not in_quotes:
            return i
        i += 1
    return -1


@lru_cache(4096)
def display_width(text: str) -> int:
    """Terminal column width of ``text``; wide east-asian characters count twice."""
    if text.isascii():
        return len(text)
    width = wcswidth(text)
    # Non-printable characters make wcswidth give up
    return width if width >= 0 else len(text)
