"""Ahead-of-time compilation of programs to object files."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TextIO

from brainlift.elf import build_relocatable
from brainlift.program import EofBehaviour, Program
from brainlift.x86 import ENTRYPOINT_SYMBOL, MAX_ARRAY_SIZE, generate_main


class Compiler:
    """Compiles programs into x86-64 ELF object files exporting ``main``."""

    def __init__(
        self,
        array_size: int = 30_000,
        eof_behaviour: EofBehaviour = EofBehaviour.IGNORE,
        *,
        stdout: TextIO | None = None,
    ) -> None:
        if not 1 <= array_size <= MAX_ARRAY_SIZE:
            raise ValueError(f"array size must be between 1 and {MAX_ARRAY_SIZE}")
        self.array_size = array_size
        self.eof_behaviour = eof_behaviour
        self._stdout = stdout

    def object_bytes(self, program: Program, name: str) -> bytes:
        """Return the object file contents for ``program``, naming the unit ``name``."""
        machine_code = generate_main(program, self.array_size, self.eof_behaviour)
        return build_relocatable(machine_code, ENTRYPOINT_SYMBOL, name)

    def compile(self, program: Program, output_file: str | os.PathLike[str]) -> Path:
        """Write the object file for ``program`` to ``output_file`` and return its path."""
        path = Path(output_file)
        path.write_bytes(self.object_bytes(program, path.stem))
        stdout = self._stdout if self._stdout is not None else sys.stdout
        print(f'finished compilation of "{path}"', file=stdout)
        return path