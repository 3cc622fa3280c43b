# brainlift

brainlift runs Brainfuck programs in an interpreter and compiles them ahead of
time. The compiler writes a relocatable x86-64 ELF object file that exports
`main`. You link that file with a C library yourself.

## Installation

```
pip install .
```

## Usage

Run a program in the interpreter:

```
brainlift run hello.bf
```

Compile a program to an object file. By default the output goes next to the
input file, with a `.o` extension:

```
brainlift compile hello.bf
brainlift compile hello.bf -o build/hello.o
```

When the file has been written, the command prints
`finished compilation of "<path>"`.

The object file defines `int main(void)`. It allocates the tape with `calloc`,
runs the program with `getchar` and `putchar`, releases the tape with `free`,
and returns 0. Those four functions are left as undefined symbols for the
linker to resolve.

### Options

These options go before the subcommand:

- `--array-size N` sets the number of cells on the tape. It must be between 1
  and 4294967295, and the default is 30000.
- `--eof-behaviour {ignore,zero}` sets what `,` does at end of input. `ignore`
  leaves the cell as it is and is the default. `zero` sets the cell to 0.

```
brainlift --array-size 1000 --eof-behaviour zero run cat.bf
```

The command exits with status 1, and prints a message on standard error, in
these cases:

- the input file cannot be read,
- the program has a mismatched bracket,
- the interpreter moves the pointer off the tape,
- the output file cannot be written.

### Language notes

- The eight standard commands `+ - > < . , [ ]` are supported. Every other
  character is a comment.
- `#` is a debug command. When the interpreter reaches one, it prints the tape
  and the pointer, for example `State { array: [0, 3], pointer: 1 }`. Compiled
  code ignores `#`.
- Cells are bytes. They wrap on overflow and on underflow.
- The interpreter starts with a tape of one cell. It doubles the tape as the
  pointer moves right, up to the array size. Moving the pointer off either end
  raises `OutOfBoundsError`.
- Compiled code does not check the pointer against the tape bounds.
- A mismatched bracket raises `MismatchedBracketError` and gives a line number.
  For an unclosed `[`, this is the line of the `[`. For a stray `]`, it is the
  line of the `]`.

## Library use

```python
from brainlift.parser import parse
from brainlift.interpreter import Interpreter
from brainlift.program import EofBehaviour

program = parse("++++++++[>++++++++<-]>+.")
Interpreter(30_000, EofBehaviour.IGNORE).run(program)
```

The modules:

- `brainlift.program`: `Program`, `Loop`, `Op` and `EofBehaviour`. Calling
  `str()` on a program gives back its commands with the comments removed.
- `brainlift.parser`: `parse(source)` and `Parser`. Errors are `ParserError`
  and its subclass `MismatchedBracketError`, which has a `line` attribute.
- `brainlift.interpreter`: `Interpreter(array_size, eof_behaviour, *, stdin=None, stdout=None)`,
  with `run(program)` and `execute(instruction)`. `stdin` is a binary stream
  and `stdout` is a text stream. The default is the process's own streams.
  Errors are `InterpreterError` and its subclass `OutOfBoundsError`.
- `brainlift.compiler`: `Compiler(array_size, eof_behaviour, *, stdout=None)`.
  `object_bytes(program, name)` returns the object file as bytes.
  `compile(program, output_file)` writes the object file and returns its path.
- `brainlift.x86`: `generate_main(program, array_size, eof_behaviour)` returns
  the machine code of `main` as `MachineCode`, with its call sites given as
  `Relocation` entries.
- `brainlift.elf`: `build_relocatable(machine_code, entry_symbol, source_name)`
  wraps machine code in an ELF64 relocatable object.

## What it does not do

brainlift does not link and does not produce executables. The compiler targets
x86-64 ELF only, and it writes that format on any host. To get a program you
can run, pass the object file to a C toolchain.