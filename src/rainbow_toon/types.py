"""Type definitions for the TOON tabular codec."""

from dataclasses import dataclass, field, fields, is_dataclass, replace
from decimal import Decimal
from typing import Any, Literal

from .errors import Diagnostic, MalformedTabularBlockError

# JSON type aliases
JsonPrimitive = str | int | float | Decimal | bool | None
JsonArray = list["JsonValue"]
JsonObject = dict[str, "JsonValue"]
JsonValue = JsonPrimitive | JsonArray | JsonObject

# Delimiter options
Delimiter = Literal[",", "|", "\t"]

DELIMITERS: tuple[Delimiter, ...] = (",", "|", "\t")

DELIMITER_NAMES = {",": "comma", "|": "pipe", "\t": "tab"}


@dataclass
class EncodeOptions:
    """Options for TOON encoding."""

    indent: int = 2
    """Number of spaces per indentation level."""

    delimiters: tuple[Delimiter, ...] = DELIMITERS
    """Delimiter candidates for tabular blocks, in priority order.

    The first entry is also the delimiter used for quoting checks outside
    tabular blocks.
    """

    field_order: Literal["lexicographic", "first_seen"] = "lexicographic"
    """How tabular header fields are ordered."""

    delimiter_scope: Literal["block", "document"] = "block"
    """Pick a delimiter per tabular block, or one for the whole document."""

    inline_primitive_arrays: bool = False
    """Render arrays of scalars inline (``key[N]: a,b,c``) instead of as lists."""

    def __post_init__(self) -> None:
        if self.indent < 1:
            raise ValueError(f"indent must be >= 1, got {self.indent}")
        if not self.delimiters:
            raise ValueError("delimiters must not be empty")
        for delimiter in self.delimiters:
            if delimiter not in DELIMITERS:
                raise ValueError(f"Unsupported delimiter: {delimiter!r}")
        if len(set(self.delimiters)) != len(self.delimiters):
            raise ValueError(f"Duplicate delimiter in {self.delimiters!r}")
        if self.field_order not in ("lexicographic", "first_seen"):
            raise ValueError(f"Unknown field order: {self.field_order!r}")
        if self.delimiter_scope not in ("block", "document"):
            raise ValueError(f"Unknown delimiter scope: {self.delimiter_scope!r}")

    @property
    def document_delimiter(self) -> Delimiter:
        """Delimiter that governs quoting outside tabular blocks."""
        return self.delimiters[0]


@dataclass(frozen=True)
class FieldDescriptor:
    """A tabular header field and its position."""

    name: str
    order: int


@dataclass
class TabularLayout:
    """Result of tabular detection for one array."""

    fields: list[FieldDescriptor]
    """Header fields in emission order."""

    delimiter: Delimiter
    """Delimiter shared by the header and every row."""

    rows: list[list[str]]
    """Rendered cell tokens, one list per array element, in field order."""

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass
class ParsedLine:
    """A parsed line with indentation info."""

    raw: str
    """Original line content."""

    content: str
    """Content after stripping indentation."""

    indent: int
    """Number of leading spaces."""

    line_number: int
    """0-based line index."""


@dataclass
class ArrayHeaderInfo:
    """Parsed tabular header information."""

    length: int
    """Declared array length."""

    delimiter: Delimiter
    """Delimiter for this array's fields and rows."""

    fields_start: int
    """Column just past the opening ``{``."""

    fields_end: int
    """Column of the closing ``}``."""


@dataclass
class Cell:
    """One cell of a tabular row, as written in the source line."""

    raw: str
    """Verbatim text between delimiters, padding included."""

    start: int
    """Column of the first character of ``raw`` in its line."""

    end: int
    """Column just past the last character of ``raw``."""

    @property
    def value(self) -> str:
        """The cell token without surrounding padding."""
        return self.raw.strip()

    @property
    def value_start(self) -> int:
        return self.start + (len(self.raw) - len(self.raw.lstrip()))

    @property
    def value_end(self) -> int:
        return self.end - (len(self.raw) - len(self.raw.rstrip()))


@dataclass
class Row:
    """A line of a tabular block split into cells."""

    line: int
    """0-based line index in the source text."""

    text: str
    """The full source line."""

    cells: list[Cell]

    @property
    def values(self) -> list[str]:
        return [c.value for c in self.cells]


@dataclass
class TabularBlock:
    """A tabular array as written in TOON text: header plus data rows."""

    header: Row
    """The header line; its cells are the field names inside ``{...}``."""

    rows: list[Row]
    """Data rows, in source order."""

    delimiter: Delimiter

    declared_length: int
    """The ``N`` written in the header bracket."""

    @property
    def field_names(self) -> list[str]:
        return self.header.values

    @property
    def start(self) -> int:
        """Line index of the header."""
        return self.header.line

    @property
    def end(self) -> int:
        """Line index just past the last row."""
        if self.rows:
            return self.rows[-1].line + 1
        return self.header.line + 1

    def values(self) -> tuple[list[str], list[list[str]]]:
        """Field names and cell values, without any padding."""
        return self.field_names, [row.values for row in self.rows]


@dataclass(frozen=True)
class ColumnRange:
    """A highlightable span of one cell value."""

    line: int
    start: int
    end: int
    column: int
    """0-based field index."""


@dataclass
class Replacement:
    """Replacement text for the line range ``[start, end)``."""

    start: int
    end: int
    lines: list[str]


@dataclass
class TokenCounterConfig:
    """Options for the session token counter."""

    enabled: bool = False
    """Start counting when the session opens."""

    debounce_ms: int = 500
    """Delay before a recount; a newer request restarts the delay."""

    encoding: str = "cl100k_base"
    """tiktoken encoding name."""

    format: str = " {count} tokens "
    """Label template; ``{count}`` is replaced with the token count."""

    def __post_init__(self) -> None:
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        if "{count}" not in self.format:
            raise ValueError("format must contain '{count}'")


@dataclass
class SessionConfig:
    """Per-session settings."""

    align_on_save: bool = False
    """Align tabular blocks when the buffer is saved."""

    token_counter: TokenCounterConfig = field(default_factory=TokenCounterConfig)

    @classmethod
    def from_mapping(cls, mapping: dict[str, Any]) -> "SessionConfig":
        """Build a config by merging ``mapping`` over the defaults.

        Nested tables are merged key by key; unknown keys raise ``ValueError``.
        """
        return _merge(cls(), mapping)


def _merge(base: Any, overrides: dict[str, Any]) -> Any:
    known = {f.name: f for f in fields(base)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ValueError(f"Unknown option for {type(base).__name__}: {key!r}")
        current = getattr(base, key)
        if is_dataclass(current):
            if not isinstance(value, dict):
                raise ValueError(f"Option {key!r} expects a table")
            changes[key] = _merge(current, value)
        else:
            changes[key] = value
    return replace(base, **changes)


@dataclass
class EncodeResult:
    """Encoded text plus the problems that made parts of it fall back."""

    text: str
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class RewriteResult:
    """A document after align or shrink."""

    text: str
    replacements: list[Replacement] = field(default_factory=list)
    """One per rewritten block, in line order."""
    errors: list[MalformedTabularBlockError] = field(default_factory=list)
    """Blocks left untouched because their rows are malformed."""
