"""Errors and diagnostics for the TOON tabular codec."""

from dataclasses import dataclass
from typing import Literal

DiagnosticKind = Literal[
    "DelimiterExhausted",
    "MalformedTabularBlock",
    "NumericOverflowOrPrecisionLoss",
]


class ToonError(ValueError):
    """Base class for codec errors."""

    kind: DiagnosticKind


class DelimiterExhaustedError(ToonError):
    """Every delimiter candidate occurs in some cell of a tabular array."""

    kind = "DelimiterExhausted"

    def __init__(self, candidates: tuple[str, ...], path: str = ""):
        self.candidates = candidates
        self.path = path
        shown = ", ".join(repr(c) for c in candidates)
        super().__init__(f"No delimiter free of collisions (tried {shown})")


class MalformedTabularBlockError(ToonError):
    """A tabular row does not have one cell per header field."""

    kind = "MalformedTabularBlock"

    def __init__(self, line: int, expected: int, actual: int):
        self.line = line
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Line {line + 1}: Expected {expected} values, got {actual}"
        )


class NumericPrecisionError(ToonError):
    """A number has no exact TOON representation (NaN, infinity)."""

    kind = "NumericOverflowOrPrecisionLoss"

    def __init__(self, value: object, path: str = ""):
        self.value = value
        self.path = path
        where = f" at {path}" if path else ""
        super().__init__(f"Cannot represent number {value!r}{where} exactly")


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem attached to a position in the encoded value."""

    kind: DiagnosticKind
    path: str
    message: str

    @classmethod
    def from_error(cls, error: ToonError, path: str) -> "Diagnostic":
        return cls(kind=error.kind, path=path, message=str(error))
