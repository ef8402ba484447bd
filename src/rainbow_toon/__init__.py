"""
rainbow-toon - TOON tabular codec

Converts JSON values to TOON (Token-Oriented Object Notation), picking the
compact tabular form for arrays of uniformly keyed objects, and aligns or
shrinks the columns of tabular blocks in existing TOON text.

Usage:
    import rainbow_toon

    # Encode Python data to TOON
    data = {"users": [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]}
    encoded = rainbow_toon.encode(data)

    # Line up the columns of every tabular block, or pack them again
    aligned = rainbow_toon.align_text(encoded).text
    packed = rainbow_toon.shrink_text(aligned).text

    # With options
    from rainbow_toon import EncodeOptions

    encoded = rainbow_toon.encode(data, EncodeOptions(indent=4, delimiters=("|", "\\t")))
"""

__version__ = "0.3.0"

from .align import align, align_text, apply_replacements, column_widths, shrink, shrink_text
from .blocks import column_ranges, column_ranges_for_text, extract, find_blocks, iter_blocks
from .encode import encode, encode_document, encode_lines
from .errors import (
    DelimiterExhaustedError,
    Diagnostic,
    MalformedTabularBlockError,
    NumericPrecisionError,
    ToonError,
)
from .primitives import format_scalar
from .session import Session
from .tabular import detect
from .types import (
    Cell,
    ColumnRange,
    Delimiter,
    EncodeOptions,
    EncodeResult,
    FieldDescriptor,
    JsonValue,
    Replacement,
    RewriteResult,
    Row,
    SessionConfig,
    TabularBlock,
    TabularLayout,
    TokenCounterConfig,
)

__all__ = [
    # Version
    "__version__",
    # Encoding
    "encode",
    "encode_document",
    "encode_lines",
    "format_scalar",
    "detect",
    # Align / shrink
    "find_blocks",
    "iter_blocks",
    "extract",
    "column_ranges",
    "column_ranges_for_text",
    "column_widths",
    "align",
    "shrink",
    "align_text",
    "shrink_text",
    "apply_replacements",
    # Sessions
    "Session",
    # Options
    "EncodeOptions",
    "SessionConfig",
    "TokenCounterConfig",
    # Types
    "JsonValue",
    "Delimiter",
    "FieldDescriptor",
    "TabularLayout",
    "EncodeResult",
    "TabularBlock",
    "Row",
    "Cell",
    "ColumnRange",
    "Replacement",
    "RewriteResult",
    # Errors
    "ToonError",
    "DelimiterExhaustedError",
    "MalformedTabularBlockError",
    "NumericPrecisionError",
    "Diagnostic",
]
