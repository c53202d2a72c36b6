"""
skylark-check CLI Entrypoint.

This module provides a command-line syntax checker for skylark source.

Features:
    - Parse one or more files as modules.
    - Parse inline expressions given with `-e`.
    - Print `ok: <name>` per accepted input, or a caret diagnostic on stderr.
    - Exit with status 1 if any input was rejected.

Example usage:
    skylark-check BUILD.sky defs.sky
    skylark-check -e "a.b[1:2](x)"
    skylark-check --verbose BUILD.sky

Functions:
    check_source(text: str | bytes, name: str, expression: bool = False) -> bool:
        Parses one input and reports the outcome.

    main(argv: list[str] | None = None) -> int:
        Parses CLI arguments and checks every input.
"""

import argparse
import logging
import sys

from skylark.skylark_ast import walk
from skylark.skylark_errors import ParseError
from skylark.skylark_parser import parse_expression, parse_module

logger = logging.getLogger(__name__)


def check_source(text: str | bytes, name: str, expression: bool = False) -> bool:
    """
    Parse `text` and report the result.

    Args:
        text (str | bytes): Source to check. Bytes are decoded as UTF-8.
        name (str): Display name used in output (a file path or `<expr>`).
        expression (bool): Parse as a single expression instead of a module.

    Returns:
        bool: True if the text parsed without errors.

    Side Effects:
        - Prints `ok: <name>` to stdout on success.
        - Prints a diagnostic to stderr on failure.
    """
    try:
        tree = parse_expression(text) if expression else parse_module(text)
    except ParseError as e:
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        print(e.format(text, name), file=sys.stderr)
        return False
    logger.debug("%s: %d nodes", name, sum(1 for _ in walk(tree)))
    print(f"ok: {name}")
    return True


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the skylark-check CLI.

    Supported flags:
        - `-e`, `--expr`: Check an inline expression (may be repeated).
        - `--verbose`: Enable DEBUG logging.

    Returns:
        int: 0 if every input parsed, 1 otherwise (2 for usage errors).
    """
    parser = argparse.ArgumentParser(
        prog="skylark-check", description="Check skylark sources for syntax errors."
    )
    parser.add_argument("files", nargs="*", help="Source files to parse as modules")
    parser.add_argument(
        "-e",
        "--expr",
        dest="exprs",
        action="append",
        default=[],
        metavar="EXPR",
        help="Parse EXPR as a single expression",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.files and not args.exprs:
        parser.print_usage(sys.stderr)
        print("skylark-check: error: no input files or expressions", file=sys.stderr)
        return 2

    ok = True
    for path in args.files:
        try:
            with open(path, "rb") as f:
                source = f.read()
        except OSError as e:
            print(f"{path}: error: {e}", file=sys.stderr)
            ok = False
            continue
        ok = check_source(source, path) and ok

    for expr in args.exprs:
        ok = check_source(expr, "<expr>", expression=True) and ok

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
