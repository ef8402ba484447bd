"""Tabular array detection: eligibility, field order and delimiter choice."""

import logging
from collections.abc import Iterable, Sequence

from .errors import DelimiterExhaustedError, NumericPrecisionError
from .primitives import encode_key, encode_primitive
from .types import (
    DELIMITER_NAMES,
    Delimiter,
    EncodeOptions,
    FieldDescriptor,
    JsonValue,
    TabularLayout,
)

logger = logging.getLogger(__name__)


def is_primitive(value: JsonValue) -> bool:
    """Check if value is a scalar (not dict or list)."""
    return not isinstance(value, (dict, list))


def is_tabular_shape(arr: Sequence[JsonValue]) -> bool:
    """
    Check if an array has the shape of a tabular block.

    Every element must be an object, all objects must have the same non-empty
    key set, and every value must be a scalar.
    """
    if not arr:
        return False

    if not all(isinstance(v, dict) for v in arr):
        return False

    first_keys = set(arr[0].keys())
    if not first_keys:
        return False

    for item in arr[1:]:
        if set(item.keys()) != first_keys:
            return False

    return all(is_primitive(v) for item in arr for v in item.values())


def collect_fields(arr: Sequence[dict], field_order: str = "lexicographic") -> list[FieldDescriptor]:
    """Build the header field list for a tabular-shaped array."""
    names = list(arr[0].keys())
    if field_order == "lexicographic":
        names.sort()
    return [FieldDescriptor(name=name, order=i) for i, name in enumerate(names)]


def render_rows(
    arr: Sequence[dict], names: list[str], delimiter: Delimiter, path: str = ""
) -> list[list[str]]:
    """Render every cell of a tabular-shaped array with ``delimiter`` active."""
    rows = []
    for index, item in enumerate(arr):
        row = []
        for name in names:
            try:
                row.append(encode_primitive(item[name], delimiter))
            except NumericPrecisionError as e:
                raise NumericPrecisionError(e.value, f"{path}[{index}].{name}") from None
        rows.append(row)
    return rows


def collides(rows: Iterable[list[str]], names: list[str], delimiter: Delimiter) -> bool:
    """Check if ``delimiter`` occurs in any rendered cell or header field."""
    if any(delimiter in encode_key(name, delimiter) for name in names):
        return True
    return any(delimiter in cell for row in rows for cell in row)


def free_delimiters(
    arr: Sequence[dict],
    names: list[str],
    candidates: Sequence[Delimiter],
    path: str = "",
) -> list[Delimiter]:
    """Candidates, in priority order, that collide with nothing in ``arr``."""
    return [
        d for d in candidates if not collides(render_rows(arr, names, d, path), names, d)
    ]


def detect(
    arr: Sequence[JsonValue],
    options: EncodeOptions | None = None,
    delimiter: Delimiter | None = None,
    path: str = "",
) -> TabularLayout | None:
    """
    Decide whether an array can be written as a tabular block.

    Args:
        arr: The array to inspect.
        options: Encoding options (field order, delimiter priority).
        delimiter: Use this delimiter instead of searching the candidates.
        path: Location of the array, used in error messages.

    Returns:
        The layout, or None when the array is not uniformly keyed.

    Raises:
        DelimiterExhaustedError: When every candidate delimiter collides.
        NumericPrecisionError: When a cell holds an unrepresentable number.
    """
    opts = options or EncodeOptions()

    if not is_tabular_shape(arr):
        return None

    fields = collect_fields(arr, opts.field_order)
    names = [f.name for f in fields]

    candidates = (delimiter,) if delimiter is not None else tuple(opts.delimiters)
    for candidate in candidates:
        rows = render_rows(arr, names, candidate, path)
        if collides(rows, names, candidate):
            logger.debug(
                "%s: %s delimiter collides, trying next",
                path or "<root>",
                DELIMITER_NAMES[candidate],
            )
            continue
        return TabularLayout(fields=fields, delimiter=candidate, rows=rows)

    raise DelimiterExhaustedError(candidates, path)
