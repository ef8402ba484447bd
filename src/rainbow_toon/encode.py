"""TOON encoder implementation."""

import logging
from collections.abc import Generator, Iterator
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .errors import DelimiterExhaustedError, Diagnostic, NumericPrecisionError
from .primitives import encode_key, encode_primitive, format_array_header
from .tabular import collect_fields, detect, free_delimiters, is_primitive, is_tabular_shape
from .types import Delimiter, EncodeOptions, EncodeResult, JsonValue, TabularLayout

logger = logging.getLogger(__name__)


def encode(value: Any, options: EncodeOptions | None = None) -> str:
    """
    Encode a Python value to TOON format.

    Arrays whose tabular delimiter candidates are all taken fall back to list
    form; use ``encode_document`` to get those diagnostics back.

    Args:
        value: The value to encode (dict, list, or scalar).
        options: Encoding options.

    Returns:
        The TOON-formatted string.

    Raises:
        NumericPrecisionError: If a number has no exact representation.
    """
    return encode_document(value, options).text


def encode_document(value: Any, options: EncodeOptions | None = None) -> EncodeResult:
    """
    Encode a Python value and collect the diagnostics of every fallback.

    Args:
        value: The value to encode.
        options: Encoding options.

    Returns:
        The text and the list of diagnostics, in document order.
    """
    ctx = _Context.create(value, options)
    text = "\n".join(_encode_root(ctx.value, ctx))
    return EncodeResult(text=text, diagnostics=ctx.diagnostics)


def encode_lines(
    value: Any, options: EncodeOptions | None = None
) -> Generator[str, None, None]:
    """
    Encode a Python value to TOON format, yielding lines.

    Args:
        value: The value to encode.
        options: Encoding options.

    Yields:
        Lines of TOON output.
    """
    ctx = _Context.create(value, options)
    yield from _encode_root(ctx.value, ctx)


@dataclass
class _Context:
    """State shared by one encoding pass."""

    value: JsonValue
    options: EncodeOptions
    table_delimiter: Delimiter | None = None
    """Delimiter fixed for every tabular block (document scope)."""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @classmethod
    def create(cls, value: Any, options: EncodeOptions | None) -> "_Context":
        opts = options or EncodeOptions()
        normalized = normalize_value(value)
        table_delimiter = None
        if opts.delimiter_scope == "document":
            table_delimiter = _choose_document_delimiter(normalized, opts)
        return cls(value=normalized, options=opts, table_delimiter=table_delimiter)

    @property
    def delimiter(self) -> Delimiter:
        return self.options.document_delimiter

    def indent(self, depth: int) -> str:
        return " " * (self.options.indent * depth)

    def report(self, error: DelimiterExhaustedError, path: str) -> None:
        diagnostic = Diagnostic.from_error(error, path)
        logger.warning("%s: %s; using list form", path or "<root>", diagnostic.message)
        self.diagnostics.append(diagnostic)


def _encode_root(value: JsonValue, ctx: _Context) -> Generator[str, None, None]:
    if isinstance(value, dict):
        yield from _encode_object_lines(value, ctx, 0, "")
    elif isinstance(value, list):
        yield from _encode_array(None, value, ctx, 0, "")
    else:
        yield _encode_scalar(value, ctx.delimiter, "")


def _encode_object_lines(
    obj: dict, ctx: _Context, depth: int, path: str
) -> Generator[str, None, None]:
    """Encode an object's key-value pairs, in insertion order."""
    for key, value in obj.items():
        yield from _encode_field(key, value, ctx, depth, _key_path(path, key))


def _encode_field(
    key: str, value: JsonValue, ctx: _Context, depth: int, path: str
) -> Generator[str, None, None]:
    indent = ctx.indent(depth)
    encoded_key = encode_key(key)

    if isinstance(value, dict):
        # An empty object is just the bare key
        yield f"{indent}{encoded_key}:"
        yield from _encode_object_lines(value, ctx, depth + 1, path)
    elif isinstance(value, list):
        yield from _encode_array(key, value, ctx, depth, path)
    else:
        yield f"{indent}{encoded_key}: {_encode_scalar(value, ctx.delimiter, path)}"


def _encode_array(
    key: str | None, arr: list, ctx: _Context, depth: int, path: str
) -> Generator[str, None, None]:
    """Encode an array with the best format."""
    indent = ctx.indent(depth)

    if not arr:
        yield f"{indent}{format_array_header(0, key)}"
        return

    layout = _detect(arr, ctx, path)
    if layout is not None:
        yield from _encode_tabular(key, layout, ctx, depth)
    elif ctx.options.inline_primitive_arrays and all(is_primitive(v) for v in arr):
        delimiter = ctx.delimiter
        values = [
            _encode_scalar(v, delimiter, _index_path(path, i)) for i, v in enumerate(arr)
        ]
        header = format_array_header(len(arr), key, delimiter=delimiter)
        yield f"{indent}{header} " + delimiter.join(values)
    else:
        yield f"{indent}{format_array_header(len(arr), key)}"
        for i, item in enumerate(arr):
            yield from _encode_list_item(item, ctx, depth + 1, _index_path(path, i))


def _encode_tabular(
    key: str | None, layout: TabularLayout, ctx: _Context, depth: int
) -> Generator[str, None, None]:
    """Encode a tabular header followed by one row per element."""
    header = format_array_header(
        len(layout.rows), key, fields=layout.field_names, delimiter=layout.delimiter
    )
    yield f"{ctx.indent(depth)}{header}"
    row_indent = ctx.indent(depth + 1)
    for cells in layout.rows:
        yield row_indent + layout.delimiter.join(cells)


def _encode_list_item(
    item: JsonValue, ctx: _Context, depth: int, path: str
) -> Generator[str, None, None]:
    """Encode a list item (after the - marker)."""
    indent = ctx.indent(depth)

    if isinstance(item, dict):
        if not item:
            # Empty object as list item
            yield f"{indent}-"
        else:
            # First field on the hyphen line, the rest aligned under it
            lines = _encode_object_lines(item, ctx, depth + 1, path)
            yield from _hyphenate(lines, ctx, depth)
    elif isinstance(item, list):
        lines = _encode_array(None, item, ctx, depth + 1, path)
        yield from _hyphenate(lines, ctx, depth)
    else:
        yield f"{indent}- {_encode_scalar(item, ctx.delimiter, path)}"


def _hyphenate(
    lines: Iterator[str], ctx: _Context, depth: int
) -> Generator[str, None, None]:
    """Put the list marker on the first of ``lines``, which sit one level deeper."""
    first = next(lines)
    yield ctx.indent(depth) + "- " + first[len(ctx.indent(depth + 1)) :]
    yield from lines


def _detect(arr: list, ctx: _Context, path: str) -> TabularLayout | None:
    try:
        return detect(arr, ctx.options, ctx.table_delimiter, path)
    except DelimiterExhaustedError as e:
        ctx.report(e, path)
        return None


def _encode_scalar(value: JsonValue, delimiter: Delimiter, path: str) -> str:
    try:
        return encode_primitive(value, delimiter)
    except NumericPrecisionError as e:
        raise NumericPrecisionError(e.value, path) from None


def _choose_document_delimiter(value: JsonValue, opts: EncodeOptions) -> Delimiter | None:
    """Pick the first candidate that is free in every tabular array of ``value``."""
    candidates = list(opts.delimiters)
    found = False

    for arr, path in _iter_tabular_arrays(value, ""):
        found = True
        names = [f.name for f in collect_fields(arr, opts.field_order)]
        candidates = free_delimiters(arr, names, candidates, path)
        if not candidates:
            logger.debug("No delimiter is free across the document; choosing per block")
            return None

    return candidates[0] if found else None


def _iter_tabular_arrays(
    value: JsonValue, path: str
) -> Generator[tuple[list, str], None, None]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _iter_tabular_arrays(child, _key_path(path, key))
    elif isinstance(value, list):
        if is_tabular_shape(value):
            yield value, path
            return
        for i, child in enumerate(value):
            yield from _iter_tabular_arrays(child, _index_path(path, i))


def _key_path(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _index_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


def normalize_value(value: Any) -> JsonValue:
    """
    Normalize a value for JSON compatibility.

    Converts:
    - Date objects to ISO strings
    - Tuples, sets and other iterables to lists
    - Non-string object keys to strings

    Numbers are kept as they are, including NaN and infinities, so the
    formatter can report them.

    Args:
        value: The value to normalize.

    Returns:
        A JSON-compatible value.
    """
    if value is None or isinstance(value, (bool, int, float, Decimal, str)):
        return value

    if isinstance(value, dict):
        return {str(k): normalize_value(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]

    if isinstance(value, (set, frozenset)):
        return [normalize_value(v) for v in sorted(value, key=str)]

    if hasattr(value, "isoformat"):
        return value.isoformat()

    if hasattr(value, "__iter__"):
        return [normalize_value(v) for v in value]

    # Last resort: string conversion
    return str(value)
