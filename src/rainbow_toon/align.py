"""Column align and shrink for tabular blocks.

Both transforms only touch the whitespace around delimiters: field values,
field order and row count are preserved, and applying either transform to its
own output changes nothing.
"""

import logging
from collections.abc import Callable, Sequence

from .blocks import find_blocks, split_lines
from .errors import MalformedTabularBlockError
from .string_utils import display_width
from .types import Delimiter, Replacement, RewriteResult, Row, TabularBlock

logger = logging.getLogger(__name__)


def column_widths(block: TabularBlock) -> list[int]:
    """Display width of the widest value in each column of the data rows."""
    widths = [0] * len(block.field_names)
    for row in block.rows:
        for i, value in enumerate(row.values):
            widths[i] = max(widths[i], display_width(value))
    return widths


def align(block: TabularBlock) -> Replacement:
    """
    Pad every column to the width of its widest value.

    Each value except the last is right-padded with spaces, then followed by
    the delimiter and one space. The header field list is padded with the same
    widths.

    Returns:
        Replacement lines for the header and every row.
    """
    widths = column_widths(block)
    return _rewrite_block(block, lambda values: _join_aligned(values, widths, block.delimiter))


def shrink(block: TabularBlock) -> Replacement:
    """
    Remove all padding around delimiters.

    Returns:
        Replacement lines for the header and every row.
    """
    return _rewrite_block(block, block.delimiter.join)


def align_text(text: str | Sequence[str]) -> RewriteResult:
    """Align every tabular block of a document."""
    return _rewrite_text(text, align)


def shrink_text(text: str | Sequence[str]) -> RewriteResult:
    """Shrink every tabular block of a document."""
    return _rewrite_text(text, shrink)


def apply_replacements(lines: Sequence[str], replacements: Sequence[Replacement]) -> list[str]:
    """Splice replacement line ranges into ``lines``."""
    result = list(lines)
    for replacement in sorted(replacements, key=lambda r: r.start, reverse=True):
        result[replacement.start : replacement.end] = replacement.lines
    return result


def _join_aligned(values: list[str], widths: list[int], delimiter: Delimiter) -> str:
    parts = []
    for value, width in zip(values[:-1], widths):
        padding = " " * (width - display_width(value))
        parts.append(f"{value}{padding}{delimiter} ")
    parts.append(values[-1])
    return "".join(parts)


def _rewrite_block(block: TabularBlock, join: Callable[[list[str]], str]) -> Replacement:
    header = block.header
    first, last = header.cells[0], header.cells[-1]
    lines = [header.text[: first.start] + join(header.values) + header.text[last.end :]]
    lines.extend(_rewrite_row(row, join) for row in block.rows)
    return Replacement(start=block.start, end=block.end, lines=lines)


def _rewrite_row(row: Row, join: Callable[[list[str]], str]) -> str:
    eol = "\r" if row.text.endswith("\r") else ""
    return row.text[: row.cells[0].start] + join(row.values) + eol


def _rewrite_text(
    text: str | Sequence[str], transform: Callable[[TabularBlock], Replacement]
) -> RewriteResult:
    lines = split_lines(text)
    replacements: list[Replacement] = []
    errors: list[MalformedTabularBlockError] = []

    for result in find_blocks(lines):
        if isinstance(result, MalformedTabularBlockError):
            errors.append(result)
            continue
        replacements.append(transform(result))

    logger.debug(
        "%s: rewrote %d block(s), skipped %d",
        transform.__name__,
        len(replacements),
        len(errors),
    )
    new_lines = apply_replacements(lines, replacements)
    return RewriteResult(text="\n".join(new_lines), replacements=replacements, errors=errors)
