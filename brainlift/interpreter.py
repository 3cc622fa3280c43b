"""Direct interpreter for parsed programs."""

from __future__ import annotations

import sys
from typing import BinaryIO, TextIO

from brainlift.program import EofBehaviour, Instruction, Loop, Op, Program


class InterpreterError(Exception):
    """Raised when a program fails while running."""


class OutOfBoundsError(InterpreterError):
    """The data pointer was moved outside the cell array."""


class Interpreter:
    """Runs programs on a byte array that grows on demand up to ``array_size``."""

    def __init__(
        self,
        array_size: int = 30_000,
        eof_behaviour: EofBehaviour = EofBehaviour.IGNORE,
        *,
        stdin: BinaryIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        if array_size < 1:
            raise ValueError("array size must be at least 1")
        self.array_size = array_size
        self.eof_behaviour = eof_behaviour
        self._stdin = stdin if stdin is not None else sys.stdin.buffer
        self._stdout = stdout if stdout is not None else sys.stdout
        self.cells = bytearray(1)
        self.pointer = 0

    def run(self, program: Program) -> None:
        """Execute every instruction of ``program``."""
        for instruction in program:
            self.execute(instruction)
        self._stdout.flush()

    def execute(self, instruction: Instruction) -> None:
        """Execute a single instruction, running loops to completion."""
        match instruction:
            case Loop(body=body):
                while self.cells[self.pointer]:
                    for inner in body:
                        self.execute(inner)
            case Op.INCREMENT:
                self.cells[self.pointer] = (self.cells[self.pointer] + 1) % 256
            case Op.DECREMENT:
                self.cells[self.pointer] = (self.cells[self.pointer] - 1) % 256
            case Op.RIGHT:
                self._right()
            case Op.LEFT:
                if self.pointer == 0:
                    raise OutOfBoundsError("tried to move leftwards out-of-bounds")
                self.pointer -= 1
            case Op.OUTPUT:
                self._stdout.write(chr(self.cells[self.pointer]))
            case Op.INPUT:
                self._input()
            case Op.DEBUG:
                self._stdout.write(self._describe_state() + "\n")
            case _:
                raise TypeError(f"not an instruction: {instruction!r}")

    def _right(self) -> None:
        index = self.pointer + 1
        if index >= self.array_size:
            raise OutOfBoundsError("tried to move rightwards out-of-bounds")
        size = len(self.cells)
        if self.pointer == size - 1 and size < self.array_size:
            new_size = min(self.array_size, size * 2)
            self.cells.extend(bytes(new_size - size))
        self.pointer = index

    def _input(self) -> None:
        data = self._stdin.read(1)
        if data:
            self.cells[self.pointer] = data[0]
        elif self.eof_behaviour is EofBehaviour.ZERO:
            self.cells[self.pointer] = 0

    def _describe_state(self) -> str:
        array = ", ".join(str(cell) for cell in self.cells)
        return f"State {{ array: [{array}], pointer: {self.pointer} }}"