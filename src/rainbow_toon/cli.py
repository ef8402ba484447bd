"""Command-line front end: ``rainbow-toon json2toon|align|shrink|tokens``."""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__, jsonio
from .align import align_text, shrink_text
from .encode import encode_document
from .tokens import TiktokenCounter, TokenCountError
from .types import EncodeOptions

logger = logging.getLogger(__name__)

DELIMITER_CHOICES = {"comma": ",", "pipe": "|", "tab": "\t"}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.handler(args)
    except (ValueError, TokenCountError, OSError) as e:
        # ToonError and JSONDecodeError are ValueErrors, as are bad option values
        print(f"rainbow-toon: error: {e}", file=sys.stderr)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rainbow-toon",
        description="Convert JSON to TOON and align or shrink TOON tabular arrays.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    convert = commands.add_parser("json2toon", help="convert a JSON file to TOON")
    convert.add_argument("input", help="JSON file, or - for stdin")
    target = convert.add_mutually_exclusive_group()
    target.add_argument("-o", "--output", type=Path, help="write TOON here")
    target.add_argument(
        "--stdout", action="store_true", help="print instead of writing <input>.toon"
    )
    convert.add_argument("--indent", type=int, default=2, help="spaces per level (default: 2)")
    convert.add_argument(
        "--delimiters",
        type=_delimiter_list,
        default=tuple(DELIMITER_CHOICES.values()),
        help="tabular delimiter priority, e.g. comma,pipe,tab (the default)",
    )
    convert.add_argument(
        "--field-order",
        choices=("lexicographic", "first_seen"),
        default="lexicographic",
        help="order of tabular header fields (default: lexicographic)",
    )
    convert.add_argument(
        "--document-delimiter",
        action="store_true",
        help="use one delimiter for every tabular array in the document",
    )
    convert.add_argument(
        "--inline-arrays", action="store_true", help="write arrays of scalars on one line"
    )
    convert.set_defaults(handler=_cmd_json2toon)

    for name, help_text in (
        ("align", "pad tabular columns so they line up"),
        ("shrink", "remove padding from tabular columns"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("file", help="TOON file, or - for stdin")
        mode = command.add_mutually_exclusive_group()
        mode.add_argument("-i", "--in-place", action="store_true", help="rewrite the file")
        mode.add_argument(
            "--check", action="store_true", help="exit 1 if the file would change"
        )
        command.set_defaults(handler=_cmd_rewrite, transform=name)

    tokens = commands.add_parser("tokens", help="count the tokens of a file")
    tokens.add_argument("file", help="file, or - for stdin")
    tokens.add_argument(
        "--encoding", default="cl100k_base", help="tiktoken encoding (default: cl100k_base)"
    )
    tokens.set_defaults(handler=_cmd_tokens)

    return parser


def _delimiter_list(value: str) -> tuple[str, ...]:
    names = [name.strip() for name in value.split(",") if name.strip()]
    unknown = [name for name in names if name not in DELIMITER_CHOICES]
    if unknown or not names:
        raise argparse.ArgumentTypeError(
            f"expected names from {', '.join(DELIMITER_CHOICES)}, got {value!r}"
        )
    return tuple(DELIMITER_CHOICES[name] for name in names)


def _read(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    # Keep \r\n intact; the rewrites preserve line endings themselves
    with open(source, encoding="utf-8", newline="") as f:
        return f.read()


def _write(target: str | Path, text: str) -> None:
    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def _cmd_json2toon(args: argparse.Namespace) -> int:
    options = EncodeOptions(
        indent=args.indent,
        delimiters=args.delimiters,
        field_order=args.field_order,
        delimiter_scope="document" if args.document_delimiter else "block",
        inline_primitive_arrays=args.inline_arrays,
    )
    result = encode_document(jsonio.loads(_read(args.input)), options)

    if args.stdout or (args.input == "-" and args.output is None):
        sys.stdout.write(result.text + "\n")
        return 0

    output = args.output or Path(args.input).with_suffix(".toon")
    _write(output, result.text + "\n")
    logger.info("Wrote %s", output)
    print(f"{args.input} -> {output}")
    return 0


def _cmd_rewrite(args: argparse.Namespace) -> int:
    text = _read(args.file)
    transform = align_text if args.transform == "align" else shrink_text
    result = transform(text)

    for error in result.errors:
        print(f"{args.file}: skipped block: {error}", file=sys.stderr)

    if args.check:
        if result.text != text:
            print(f"{args.file}: would {args.transform}")
            return 1
        return 0

    if args.in_place and args.file != "-":
        if result.text != text:
            _write(args.file, result.text)
    else:
        sys.stdout.write(result.text)

    return 1 if result.errors else 0


def _cmd_tokens(args: argparse.Namespace) -> int:
    count = TiktokenCounter(args.encoding)(_read(args.file))
    print(count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
