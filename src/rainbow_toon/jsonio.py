"""JSON loading that keeps every number exact."""

import json
from decimal import Decimal
from pathlib import Path
from typing import IO

from .errors import NumericPrecisionError
from .types import JsonValue


def loads(text: str | bytes) -> JsonValue:
    """
    Parse JSON text, reading non-integer numbers as ``Decimal``.

    Raises:
        json.JSONDecodeError: For malformed JSON.
        NumericPrecisionError: For the non-standard ``NaN`` and ``Infinity``
            constants, which have no TOON form.
    """
    return json.loads(text, parse_float=Decimal, parse_constant=_reject_constant)


def load(fp: IO[str]) -> JsonValue:
    """Parse JSON from an open text file."""
    return loads(fp.read())


def load_path(path: str | Path) -> JsonValue:
    """Parse a UTF-8 JSON file."""
    with open(path, encoding="utf-8") as f:
        return load(f)


def _reject_constant(name: str) -> JsonValue:
    raise NumericPrecisionError(name)
