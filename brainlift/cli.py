"""Command-line entry point: run programs directly or compile them to object files."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from brainlift.compiler import Compiler
from brainlift.interpreter import Interpreter, InterpreterError
from brainlift.parser import ParserError, parse
from brainlift.program import EofBehaviour
from brainlift.x86 import MAX_ARRAY_SIZE

DEFAULT_ARRAY_SIZE = 30_000


def _array_size(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid array size {text!r}") from None
    if not 1 <= value <= MAX_ARRAY_SIZE:
        raise argparse.ArgumentTypeError(f"{value} is not in 1..={MAX_ARRAY_SIZE}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``run`` and ``compile`` commands."""
    parser = argparse.ArgumentParser(
        prog="brainlift",
        description="Interpret or compile programs for the eight-command tape language.",
    )
    parser.add_argument(
        "--array-size",
        type=_array_size,
        default=DEFAULT_ARRAY_SIZE,
        help="number of cells in the array (default: %(default)s)",
    )
    parser.add_argument(
        "--eof-behaviour",
        choices=[behaviour.value for behaviour in EofBehaviour],
        default=EofBehaviour.IGNORE.value,
        help="what input does to the current cell at end of input (default: %(default)s)",
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    run = commands.add_parser("run", help="interpret a program")
    run.add_argument("input", type=Path, help="program file")

    compile_ = commands.add_parser("compile", help="compile a program to an object file")
    compile_.add_argument("input", type=Path, help="program file")
    compile_.add_argument(
        "-o",
        dest="output",
        type=Path,
        default=None,
        help="object file to write (default: the input with a .o extension)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    args = build_parser().parse_args(argv)
    eof_behaviour = EofBehaviour(args.eof_behaviour)

    try:
        source = args.input.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        print(f"failed to read input file: {error}", file=sys.stderr)
        return 1

    try:
        program = parse(source)
    except ParserError as error:
        print(f"failed to parse program: {error}", file=sys.stderr)
        return 1

    if args.command == "run":
        try:
            Interpreter(args.array_size, eof_behaviour).run(program)
        except InterpreterError as error:
            sys.stdout.flush()
            print(error, file=sys.stderr)
            return 1
    else:
        output = args.output if args.output is not None else args.input.with_suffix(".o")
        try:
            Compiler(args.array_size, eof_behaviour).compile(program, output)
        except OSError as error:
            print(f"failed to write output file: {error}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())