"""Locate tabular blocks in TOON text and split their rows into cells."""

from __future__ import annotations

import logging
import re
from collections.abc import Generator, Sequence

from .errors import MalformedTabularBlockError
from .string_utils import display_width, find_unquoted, split_cells
from .types import ArrayHeaderInfo, Cell, ColumnRange, ParsedLine, Row, TabularBlock

logger = logging.getLogger(__name__)

# Start of a tabular header: key[N<delim?>]{
TABULAR_HEADER_PATTERN = re.compile(
    r"(?P<key>(?:[^:\[\]{}\"]+|\"(?:[^\"\\]|\\.)*\")?)"  # Optional key (possibly quoted)
    r"\[(?P<length>\d+)(?P<delim>[,\t|])?\]"  # [N<delim?>]
    r"\{"
)

LIST_ITEM_PREFIX = "- "


def split_lines(text: str | Sequence[str]) -> list[str]:
    """Accept either a whole document or its lines."""
    if isinstance(text, str):
        return text.split("\n")
    return list(text)


def parse_lines(lines: Sequence[str]) -> list[ParsedLine]:
    """Parse raw lines into ParsedLine objects."""
    parsed = []
    for i, raw in enumerate(lines):
        body = raw.rstrip("\r")
        stripped = body.lstrip(" ")
        parsed.append(
            ParsedLine(
                raw=raw,
                content=stripped.rstrip(),
                indent=len(body) - len(stripped),
                line_number=i,
            )
        )
    return parsed


def match_header(line: ParsedLine) -> ArrayHeaderInfo | None:
    """
    Check if a line opens a tabular block.

    The header may follow a ``- `` list marker. Nothing but whitespace may
    follow the closing ``}:``.

    Returns:
        Header information with columns relative to the raw line, or None.
    """
    column = line.indent
    content = line.content
    if content.startswith(LIST_ITEM_PREFIX):
        column += len(LIST_ITEM_PREFIX)
        content = content[len(LIST_ITEM_PREFIX) :]

    match = TABULAR_HEADER_PATTERN.match(content)
    if not match:
        return None

    close = find_unquoted(content, "}", match.end())
    if close == -1 or content[close + 1 :].strip() != ":":
        return None

    return ArrayHeaderInfo(
        length=int(match.group("length")),
        delimiter=match.group("delim") or ",",
        fields_start=column + match.end(),
        fields_end=column + close,
    )


def extract(lines: str | Sequence[str], header_line: int) -> TabularBlock:
    """
    Build the block whose header sits on ``header_line``.

    Args:
        lines: The document, as text or as a list of lines.
        header_line: 0-based index of the header line.

    Returns:
        The block, with every cell's raw text and column span.

    Raises:
        ValueError: If the line is not a tabular header.
        MalformedTabularBlockError: If a row's cell count differs from the
            number of header fields.
    """
    parsed = parse_lines(split_lines(lines))
    header = match_header(parsed[header_line])
    if header is None:
        raise ValueError(f"Line {header_line + 1} is not a tabular header")
    end = _rows_end(parsed, header_line, header)
    return _build_block(parsed, header_line, end, header)


def find_blocks(
    text: str | Sequence[str],
) -> list[TabularBlock | MalformedTabularBlockError]:
    """
    Find every tabular block of a document, in line order.

    A malformed block is returned as its error, in place, so callers can
    report it and still process the other blocks.
    """
    parsed = parse_lines(split_lines(text))
    results: list[TabularBlock | MalformedTabularBlockError] = []

    i = 0
    while i < len(parsed):
        header = match_header(parsed[i])
        if header is None:
            i += 1
            continue

        end = _rows_end(parsed, i, header)
        try:
            results.append(_build_block(parsed, i, end, header))
        except MalformedTabularBlockError as e:
            logger.warning("Skipping tabular block at line %d: %s", i + 1, e)
            results.append(e)
        i = end

    logger.debug("Found %d tabular block(s)", len(results))
    return results


def iter_blocks(text: str | Sequence[str]) -> Generator[TabularBlock, None, None]:
    """Yield the well-formed tabular blocks of a document."""
    for result in find_blocks(text):
        if isinstance(result, TabularBlock):
            yield result


def _rows_end(parsed: list[ParsedLine], header_index: int, header: ArrayHeaderInfo) -> int:
    """
    Index just past the last data row of the block opened at ``header_index``.

    Rows are the lines deeper than the header line, all at one row indent.
    A row whose first value is empty starts with the delimiter, and aligning
    pads it deeper than the others, so such rows never fix the row indent.
    """
    owner_indent = parsed[header_index].indent
    row_indent = None
    padded_indent = None

    end = header_index + 1
    while end < len(parsed):
        line = parsed[end]
        if not line.content or line.indent <= owner_indent:
            break
        if line.content.startswith(header.delimiter):
            if row_indent is not None and line.indent < row_indent:
                break
            if row_indent is None and (padded_indent is None or line.indent < padded_indent):
                padded_indent = line.indent
        elif row_indent is None:
            if padded_indent is not None and not _under_padded_row(
                line, padded_indent, header.delimiter
            ):
                break
            row_indent = line.indent
        elif line.indent != row_indent:
            break
        end += 1

    return end


def _under_padded_row(line: ParsedLine, padded_indent: int, delimiter: str) -> bool:
    """Check if ``line`` is a row of the block whose earlier rows start padded.

    Unpadded, those rows sit at the row indent. Aligned, their first delimiter
    lines up with the first delimiter of every other row.
    """
    if line.indent >= padded_indent:
        return line.indent == padded_indent
    body = line.raw.rstrip("\r")
    first = find_unquoted(body, delimiter, line.indent)
    return first != -1 and line.indent + display_width(body[line.indent : first]) == padded_indent


def _build_block(
    parsed: list[ParsedLine], header_index: int, end: int, header: ArrayHeaderInfo
) -> TabularBlock:
    header_parsed = parsed[header_index]
    field_cells = _cells(
        header_parsed.raw[: header.fields_end], header.fields_start, header.delimiter
    )
    header_row = Row(line=header_index, text=header_parsed.raw, cells=field_cells)

    # Padding before an empty first value looks like extra indentation
    body_lines = parsed[header_index + 1 : end]
    row_indent = min((line.indent for line in body_lines), default=0)

    rows = []
    for line in body_lines:
        body = line.raw.rstrip("\r")
        cells = _cells(body, row_indent, header.delimiter)
        if len(cells) != len(field_cells):
            raise MalformedTabularBlockError(line.line_number, len(field_cells), len(cells))
        rows.append(Row(line=line.line_number, text=line.raw, cells=cells))

    return TabularBlock(
        header=header_row,
        rows=rows,
        delimiter=header.delimiter,
        declared_length=header.length,
    )


def _cells(text: str, start: int, delimiter: str) -> list[Cell]:
    return [
        Cell(raw=text[s:e], start=s, end=e) for s, e in split_cells(text, delimiter, start)
    ]


def column_ranges(block: TabularBlock) -> list[ColumnRange]:
    """
    Spans of every non-empty cell value in the data rows of a block.

    Columns are string indices into the line; padding is excluded.
    """
    ranges = []
    for row in block.rows:
        for column, cell in enumerate(row.cells):
            if cell.value_start < cell.value_end:
                ranges.append(
                    ColumnRange(
                        line=row.line,
                        start=cell.value_start,
                        end=cell.value_end,
                        column=column,
                    )
                )
    return ranges


def column_ranges_for_text(text: str | Sequence[str]) -> list[ColumnRange]:
    """Column spans for every well-formed block of a document."""
    return [r for block in iter_blocks(text) for r in column_ranges(block)]
