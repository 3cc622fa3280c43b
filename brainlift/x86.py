"""x86-64 machine code generation for a program's ``main`` function."""

from __future__ import annotations

from dataclasses import dataclass

from brainlift.program import EofBehaviour, Loop, Op, Program

ENTRYPOINT_SYMBOL = "main"
GETCHAR_SYMBOL = "getchar"
PUTCHAR_SYMBOL = "putchar"
CALLOC_SYMBOL = "calloc"
FREE_SYMBOL = "free"

R_X86_64_PLT32 = 4
MAX_ARRAY_SIZE = 0xFFFF_FFFF

# Register use: rbx holds the cell pointer, r12 the start of the cell array.
_PROLOGUE = bytes.fromhex("53" "4154" "50")  # push rbx; push r12; push rax (stack alignment)
_SAVE_ARRAY = bytes.fromhex("4889c3" "4989c4")  # mov rbx, rax; mov r12, rax
_LOAD_ARRAY_ARG = bytes.fromhex("4c89e7")  # mov rdi, r12
_EPILOGUE = bytes.fromhex("31c0" "59" "415c" "5b" "c3")  # xor eax, eax; pop rcx; pop r12; pop rbx; ret

_SIMPLE_OPS = {
    Op.INCREMENT: bytes.fromhex("fe03"),  # inc byte [rbx]
    Op.DECREMENT: bytes.fromhex("fe0b"),  # dec byte [rbx]
    Op.RIGHT: bytes.fromhex("48ffc3"),  # inc rbx
    Op.LEFT: bytes.fromhex("48ffcb"),  # dec rbx
    Op.DEBUG: b"",
}
_LOAD_OUTPUT_ARG = bytes.fromhex("0fbe3b")  # movsx edi, byte [rbx]
_CMP_EOF = bytes.fromhex("83f8ff")  # cmp eax, -1
_SKIP_STORE_ON_EOF = bytes.fromhex("7402")  # je over the store
_ZERO_ON_EOF = bytes.fromhex("7502" "31c0")  # jne over; xor eax, eax
_STORE_INPUT = bytes.fromhex("8803")  # mov [rbx], al
_TEST_CELL = bytes.fromhex("803b00")  # cmp byte [rbx], 0
_JE_REL32 = bytes.fromhex("0f84")
_JMP_REL32 = bytes.fromhex("e9")
_CALL_REL32 = bytes.fromhex("e8")


@dataclass(frozen=True)
class Relocation:
    """A 32-bit PC-relative call target left for the linker to fill in."""

    offset: int
    symbol: str
    kind: int = R_X86_64_PLT32
    addend: int = -4


@dataclass(frozen=True)
class MachineCode:
    """Position-independent code of one function and the calls it makes."""

    code: bytes
    relocations: tuple[Relocation, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", bytes(self.code))
        object.__setattr__(self, "relocations", tuple(self.relocations))

    @property
    def imports(self) -> tuple[str, ...]:
        """External symbols called, in order of first use."""
        return tuple(dict.fromkeys(relocation.symbol for relocation in self.relocations))


class _Assembler:
    def __init__(self) -> None:
        self.code = bytearray()
        self.relocations: list[Relocation] = []

    def emit(self, chunk: bytes) -> None:
        self.code += chunk

    def call(self, symbol: str) -> None:
        self.code += _CALL_REL32
        self.relocations.append(Relocation(len(self.code), symbol))
        self.code += bytes(4)

    def open_loop(self) -> tuple[int, int]:
        start = len(self.code)
        self.code += _TEST_CELL + _JE_REL32
        exit_site = len(self.code)
        self.code += bytes(4)
        return start, exit_site

    def close_loop(self, start: int, exit_site: int) -> None:
        self.code += _JMP_REL32
        back_site = len(self.code)
        self.code += bytes(4)
        self._patch(back_site, start)
        self._patch(exit_site, len(self.code))

    def _patch(self, site: int, target: int) -> None:
        self.code[site : site + 4] = (target - (site + 4)).to_bytes(4, "little", signed=True)


def generate_main(
    program: Program, array_size: int, eof_behaviour: EofBehaviour
) -> MachineCode:
    """Generate ``int main(void)`` running ``program`` on a zeroed array of ``array_size`` cells."""
    if not 1 <= array_size <= MAX_ARRAY_SIZE:
        raise ValueError(f"array size must be between 1 and {MAX_ARRAY_SIZE}")

    asm = _Assembler()
    asm.emit(_PROLOGUE)
    asm.emit(b"\xbf" + array_size.to_bytes(4, "little"))  # mov edi, array_size
    asm.emit(b"\xbe" + (1).to_bytes(4, "little"))  # mov esi, 1
    asm.call(CALLOC_SYMBOL)
    asm.emit(_SAVE_ARRAY)

    stack = [(iter(program), None)]
    while stack:
        instructions, loop_sites = stack[-1]
        instruction = next(instructions, None)
        if instruction is None:
            stack.pop()
            if loop_sites is not None:
                asm.close_loop(*loop_sites)
            continue
        if isinstance(instruction, Loop):
            stack.append((iter(instruction), asm.open_loop()))
        elif instruction is Op.OUTPUT:
            asm.emit(_LOAD_OUTPUT_ARG)
            asm.call(PUTCHAR_SYMBOL)
        elif instruction is Op.INPUT:
            asm.call(GETCHAR_SYMBOL)
            asm.emit(_CMP_EOF)
            if eof_behaviour is EofBehaviour.ZERO:
                asm.emit(_ZERO_ON_EOF)
            else:
                asm.emit(_SKIP_STORE_ON_EOF)
            asm.emit(_STORE_INPUT)
        elif isinstance(instruction, Op):
            asm.emit(_SIMPLE_OPS[instruction])
        else:
            raise TypeError(f"not an instruction: {instruction!r}")

    asm.emit(_LOAD_ARRAY_ARG)
    asm.call(FREE_SYMBOL)
    asm.emit(_EPILOGUE)
    return MachineCode(bytes(asm.code), tuple(asm.relocations))