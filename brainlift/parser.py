"""Parser turning program text into a :class:`Program`."""

from __future__ import annotations

from brainlift.program import Instruction, Loop, Op, Program

COMMANDS = frozenset("+-><.,[]#")


class ParserError(Exception):
    """Raised when program text cannot be parsed."""


class MismatchedBracketError(ParserError):
    """A ``[`` without its ``]`` or a ``]`` without its ``[``."""

    def __init__(self, line: int) -> None:
        super().__init__(f"mismatched bracket in line {line}")
        self.line = line


class Parser:
    """Parses program text; every character that is not a command is a comment."""

    def __init__(self, source: str) -> None:
        self.source = source

    def parse(self) -> Program:
        top: list[Instruction] = []
        body = top
        # Each entry holds the enclosing body and the line of its opening bracket.
        open_loops: list[tuple[list[Instruction], int]] = []
        line = 1
        for char in self.source:
            if char == "\n":
                line += 1
                continue
            if char not in COMMANDS:
                continue
            if char == "[":
                open_loops.append((body, line))
                body = []
            elif char == "]":
                if not open_loops:
                    raise MismatchedBracketError(line)
                outer, _ = open_loops.pop()
                outer.append(Loop(body))
                body = outer
            else:
                body.append(Op(char))
        if open_loops:
            raise MismatchedBracketError(open_loops[-1][1])
        return Program(top)


def parse(source: str) -> Program:
    """Parse program text into a :class:`Program`."""
    return Parser(source).parse()