"""Tests for locating tabular blocks and splitting rows into cells."""

import sys
from pathlib import Path

import pytest

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rainbow_toon import (
    ColumnRange,
    EncodeOptions,
    MalformedTabularBlockError,
    TabularBlock,
    column_ranges,
    column_ranges_for_text,
    encode,
    extract,
    find_blocks,
)

DOCUMENT = "\n".join(
    [
        "users[3]{id,name,role}:",
        "  1,Alice,admin",
        '  22,"Bob, Jr",developer',
        '  3 , Carol , "x\\"y"',
        "meta:",
        "  count: 3",
    ]
)


class TestFindBlocks:
    """Test block discovery."""

    def test_single_block(self):
        blocks = find_blocks(DOCUMENT)
        assert len(blocks) == 1
        block = blocks[0]
        assert isinstance(block, TabularBlock)
        assert block.field_names == ["id", "name", "role"]
        assert block.declared_length == 3
        assert block.delimiter == ","
        assert (block.start, block.end) == (0, 4)

    def test_values_are_trimmed(self):
        _, rows = find_blocks(DOCUMENT)[0].values()
        assert rows == [
            ["1", "Alice", "admin"],
            ["22", '"Bob, Jr"', "developer"],
            ["3", "Carol", '"x\\"y"'],
        ]

    def test_cells_keep_raw_text_and_spans(self):
        row = find_blocks(DOCUMENT)[0].rows[2]
        assert [c.raw for c in row.cells] == ["3 ", " Carol ", ' "x\\"y"']
        assert [(c.start, c.end) for c in row.cells] == [(2, 4), (5, 12), (13, 20)]

    def test_header_field_spans(self):
        header = find_blocks(DOCUMENT)[0].header
        assert [(c.start, c.end) for c in header.cells] == [(9, 11), (12, 16), (17, 21)]

    def test_accepts_lines(self):
        blocks = find_blocks(DOCUMENT.split("\n"))
        assert blocks[0].field_names == ["id", "name", "role"]

    def test_no_blocks(self):
        assert find_blocks("name: x\ntags[2]:\n  - a\n  - b") == []

    def test_value_that_looks_like_header(self):
        assert find_blocks('note: "[2]{a}:"') == []

    def test_header_with_inline_text_is_not_tabular(self):
        assert find_blocks("t[2]{a}: x\n  1") == []

    def test_pipe_block_in_list_item(self):
        text = "\n".join(
            [
                "items[1]:",
                "  - rows[2|]{a|b}:",
                "      1|x,y",
                "      2|z",
                "    name: z",
            ]
        )
        (block,) = find_blocks(text)
        assert block.delimiter == "|"
        assert block.field_names == ["a", "b"]
        assert block.values()[1] == [["1", "x,y"], ["2", "z"]]
        assert (block.start, block.end) == (1, 4)

    def test_tab_block(self):
        (block,) = find_blocks("[2\t]{a\tb}:\n  1\tx\n  2\ty")
        assert block.delimiter == "\t"
        assert block.values() == (["a", "b"], [["1", "x"], ["2", "y"]])

    def test_quoted_field_name(self):
        (block,) = find_blocks('[1|]{"a,b"|c}:\n  1|2')
        assert block.field_names == ['"a,b"', "c"]

    def test_blank_line_ends_block(self):
        (block,) = find_blocks("t[2]{a}:\n  1\n\n  2")
        assert len(block.rows) == 1

    def test_dedent_ends_block(self):
        (block,) = find_blocks("- t[2]{a}:\n    1\n  x: 2")
        assert len(block.rows) == 1

    def test_cells_start_at_shallowest_row(self):
        (block,) = find_blocks("t[2]{a,b}:\n    , 1\n  xx, 2")
        assert block.values()[1] == [["", "1"], ["xx", "2"]]
        assert block.rows[0].cells[0].start == 2

    def test_multiple_blocks(self):
        text = "a[1]{x}:\n  1\nb:\n  c[2]{y,z}:\n    1,2\n    3,4"
        blocks = find_blocks(text)
        assert [b.field_names for b in blocks] == [["x"], ["y", "z"]]
        assert [(b.start, b.end) for b in blocks] == [(0, 2), (3, 6)]

    def test_crlf_lines(self):
        (block,) = find_blocks("t[1]{a,b}:\r\n  1,2\r\n")
        assert block.values() == (["a", "b"], [["1", "2"]])


class TestRowExtent:
    """Where a block's rows stop, for every indentation width."""

    @pytest.mark.parametrize("indent", [1, 2, 4])
    def test_list_item_block_followed_by_sibling(self, indent):
        value = {"items": [{"rows": [{"a": 1, "b": "xx"}, {"a": 22, "b": "y"}], "name": "z"}]}
        text = encode(value, EncodeOptions(indent=indent))
        (block,) = find_blocks(text)
        assert block.values() == (["a", "b"], [["1", "xx"], ["22", "y"]])
        assert text.split("\n")[block.end] == " " * (2 * indent) + "name: z"

    @pytest.mark.parametrize("indent", [1, 2, 4])
    def test_nested_list_item_block(self, indent):
        text = encode([[{"a": 1, "b": "xx"}, {"a": 22, "b": "y"}]], EncodeOptions(indent=indent))
        (block,) = find_blocks(text)
        assert len(block.rows) == 2
        assert block.declared_length == 2

    def test_empty_first_values_before_sibling(self):
        text = "items[1]:\n  - rows[2]{a,b}:\n      ,1\n      ,2\n    name: z"
        (block,) = find_blocks(text)
        assert block.values()[1] == [["", "1"], ["", "2"]]
        assert block.end == 4

    def test_padded_first_row_before_sibling(self):
        text = "items[1]:\n  - rows[2]{a , b}:\n        , 1\n      xx, 2\n    name: z"
        (block,) = find_blocks(text)
        assert block.values()[1] == [["", "1"], ["xx", "2"]]
        assert block.end == 4

    def test_sibling_with_delimiter_is_not_a_row(self):
        text = "- rows[1]{a,b}:\n    ,1\n  note: x,y"
        (block,) = find_blocks(text)
        assert block.end == 2


class TestMalformed:
    """Rows with the wrong number of cells."""

    TEXT = "t[2]{a,b}:\n  1,2\n  3\nu[1]{c}:\n  9"

    def test_error_in_place(self):
        first, second = find_blocks(self.TEXT)
        assert isinstance(first, MalformedTabularBlockError)
        assert (first.line, first.expected, first.actual) == (2, 2, 1)
        assert str(first) == "Line 3: Expected 2 values, got 1"
        assert isinstance(second, TabularBlock)
        assert second.field_names == ["c"]

    def test_extract_raises(self):
        with pytest.raises(MalformedTabularBlockError):
            extract(self.TEXT, 0)

    def test_too_many_cells(self):
        (error,) = find_blocks("t[1]{a}:\n  1,2")
        assert error.actual == 2


class TestExtract:
    """Extract a single block by header line."""

    def test_extract(self):
        block = extract(DOCUMENT, 0)
        assert block.field_names == ["id", "name", "role"]
        assert len(block.rows) == 3

    def test_not_a_header(self):
        with pytest.raises(ValueError):
            extract(DOCUMENT, 4)


class TestColumnRanges:
    """Spans for rainbow column highlighting."""

    def test_ranges_skip_padding(self):
        (block,) = find_blocks("t[1]{id,name}:\n  1 , Alice")
        assert column_ranges(block) == [
            ColumnRange(line=1, start=2, end=3, column=0),
            ColumnRange(line=1, start=6, end=11, column=1),
        ]

    def test_empty_cell_has_no_range(self):
        (block,) = find_blocks("t[1]{a,b,c}:\n  1,,3")
        assert [r.column for r in column_ranges(block)] == [0, 2]

    def test_ranges_for_text_skip_malformed(self):
        ranges = column_ranges_for_text("t[1]{a,b}:\n  1\nu[1]{c}:\n  9")
        assert ranges == [ColumnRange(line=3, start=2, end=3, column=0)]
