"""Scalar formatting and header rendering for TOON."""

import math
from decimal import Decimal
from typing import TYPE_CHECKING

from .errors import NumericPrecisionError
from .string_utils import escape_string, is_safe_unquoted, is_safe_unquoted_key

if TYPE_CHECKING:
    from .types import Delimiter, JsonPrimitive


def encode_primitive(value: "JsonPrimitive", delimiter: "Delimiter" = ",") -> str:
    """
    Encode a scalar value to TOON format.

    Args:
        value: The scalar (str, int, float, Decimal, bool, or None).
        delimiter: The active delimiter for quoting checks.

    Returns:
        The encoded token.

    Raises:
        NumericPrecisionError: For NaN and infinite numbers.
        TypeError: For values that are not JSON scalars.
    """
    if value is None:
        return "null"

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float, Decimal)):
        return encode_number(value)

    if isinstance(value, str):
        return encode_string_literal(value, delimiter)

    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


format_scalar = encode_primitive


def encode_number(value: int | float | Decimal) -> str:
    """
    Encode a number as its shortest exact decimal form.

    Never uses exponent notation and never adds a fractional part to whole
    numbers, so ``1`` stays ``1`` and ``Decimal("1E+3")`` becomes ``1000``.
    """
    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise NumericPrecisionError(value)
        # repr is the shortest string that reads back as the same float
        value = Decimal(repr(value))

    if not value.is_finite():
        raise NumericPrecisionError(value)

    # Normalize -0 to 0
    if value.is_zero():
        return "0"

    # format() is exact; Decimal.normalize() would round to the context precision
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def encode_string_literal(value: str, delimiter: "Delimiter" = ",") -> str:
    """
    Encode a string value, with or without quotes.

    Args:
        value: The string to encode.
        delimiter: The active delimiter for quoting checks.

    Returns:
        The encoded string (quoted if necessary).
    """
    if is_safe_unquoted(value, delimiter):
        return value
    return f'"{escape_string(value)}"'


def encode_key(key: str, delimiter: "Delimiter" = ",") -> str:
    """
    Encode an object key or tabular field name.

    Identifier-like keys (``user_id``, ``a.b``) stay bare; everything else is
    quoted.

    Args:
        key: The key string.
        delimiter: The active delimiter.

    Returns:
        The encoded key (quoted if necessary).
    """
    if is_safe_unquoted_key(key) and delimiter not in key:
        return key
    return f'"{escape_string(key)}"'


def format_bracket(length: int, delimiter: "Delimiter" = ",") -> str:
    """Format the bracket portion of an array header."""
    if delimiter == ",":
        return f"[{length}]"
    return f"[{length}{delimiter}]"


def format_array_header(
    length: int,
    key: str | None = None,
    fields: list[str] | None = None,
    delimiter: "Delimiter" = ",",
) -> str:
    """
    Format an array header line.

    Args:
        length: The array length.
        key: Optional key name (None for root arrays or list items).
        fields: Optional field names for tabular format.
        delimiter: The delimiter (included in bracket if not comma).

    Returns:
        The formatted header string.
    """
    bracket = format_bracket(length, delimiter)

    fields_part = ""
    if fields:
        encoded_fields = [encode_key(f, delimiter) for f in fields]
        fields_part = "{" + delimiter.join(encoded_fields) + "}"

    if key is not None:
        return f"{encode_key(key)}{bracket}{fields_part}:"
    return f"{bracket}{fields_part}:"
