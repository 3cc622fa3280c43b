"""Program representation shared by the parser, interpreter and compiler."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Union


class EofBehaviour(enum.Enum):
    """What an input command does to the current cell at end of input."""

    IGNORE = "ignore"
    ZERO = "zero"


class Op(enum.Enum):
    """A single non-loop instruction; the value is its source character."""

    INCREMENT = "+"
    DECREMENT = "-"
    RIGHT = ">"
    LEFT = "<"
    OUTPUT = "."
    INPUT = ","
    DEBUG = "#"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Loop:
    """A bracketed loop that repeats its body while the current cell is non-zero."""

    body: tuple[Instruction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "body", tuple(self.body))

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.body)

    def __str__(self) -> str:
        return "[" + "".join(str(instruction) for instruction in self.body) + "]"


Instruction = Union[Op, Loop]


@dataclass(frozen=True)
class Program:
    """A parsed program: a sequence of instructions."""

    instructions: tuple[Instruction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "instructions", tuple(self.instructions))

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    def __str__(self) -> str:
        return "".join(str(instruction) for instruction in self.instructions)