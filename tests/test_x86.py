import io
from typing import NamedTuple

import pytest

from brainlift.interpreter import Interpreter
from brainlift.parser import parse
from brainlift.program import EofBehaviour
from brainlift.x86 import MachineCode, generate_main

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++.>>.<-.<.+++."
    "------.--------.>>+.>++."
)


class Run(NamedTuple):
    status: int
    output: bytes
    freed: list
    depth: int


def emulate(machine_code: MachineCode, stdin: bytes = b"", max_steps: int = 2_000_000) -> Run:
    """Execute the small instruction subset the generator emits."""
    code = machine_code.code
    calls = {relocation.offset: relocation.symbol for relocation in machine_code.relocations}
    reg = dict.fromkeys(("rax", "rbx", "rdi", "rsi", "r12"), 0)
    heap = bytearray()
    output = bytearray()
    freed = []
    source = iter(stdin)
    zf = False
    depth = 0
    rip = 0

    def rel32(at):
        return int.from_bytes(code[at : at + 4], "little", signed=True)

    def at(pattern):
        return code.startswith(pattern, rip)

    for _ in range(max_steps):
        op = code[rip]
        if op in (0x53, 0x50):
            depth += 1
            rip += 1
        elif op in (0x5B, 0x59):
            depth -= 1
            rip += 1
        elif at(b"\x41\x54"):
            depth += 1
            rip += 2
        elif at(b"\x41\x5c"):
            depth -= 1
            rip += 2
        elif op == 0xBF:
            reg["rdi"] = int.from_bytes(code[rip + 1 : rip + 5], "little")
            rip += 5
        elif op == 0xBE:
            reg["rsi"] = int.from_bytes(code[rip + 1 : rip + 5], "little")
            rip += 5
        elif op == 0xE8:
            symbol = calls[rip + 1]
            rip += 5
            if symbol == "calloc":
                heap = bytearray(reg["rdi"] * reg["rsi"])
                reg["rax"] = 0
            elif symbol == "free":
                freed.append(reg["rdi"])
            elif symbol == "putchar":
                output.append(reg["rdi"] & 0xFF)
            elif symbol == "getchar":
                reg["rax"] = next(source, 0xFFFF_FFFF)
            else:
                raise AssertionError(f"unknown call {symbol}")
        elif at(b"\x48\x89\xc3"):
            reg["rbx"] = reg["rax"]
            rip += 3
        elif at(b"\x49\x89\xc4"):
            reg["r12"] = reg["rax"]
            rip += 3
        elif at(b"\x4c\x89\xe7"):
            reg["rdi"] = reg["r12"]
            rip += 3
        elif at(b"\xfe\x03"):
            heap[reg["rbx"]] = (heap[reg["rbx"]] + 1) % 256
            rip += 2
        elif at(b"\xfe\x0b"):
            heap[reg["rbx"]] = (heap[reg["rbx"]] - 1) % 256
            rip += 2
        elif at(b"\x48\xff\xc3"):
            reg["rbx"] += 1
            rip += 3
        elif at(b"\x48\xff\xcb"):
            reg["rbx"] -= 1
            assert reg["rbx"] >= 0
            rip += 3
        elif at(b"\x0f\xbe\x3b"):
            value = heap[reg["rbx"]]
            reg["rdi"] = value - 256 if value >= 128 else value
            rip += 3
        elif at(b"\x83\xf8\xff"):
            zf = reg["rax"] == 0xFFFF_FFFF
            rip += 3
        elif op in (0x74, 0x75):
            taken = zf if op == 0x74 else not zf
            rip += 2 + (int.from_bytes(code[rip + 1 : rip + 2], "little", signed=True) if taken else 0)
        elif at(b"\x88\x03"):
            heap[reg["rbx"]] = reg["rax"] & 0xFF
            rip += 2
        elif at(b"\x31\xc0"):
            reg["rax"] = 0
            zf = True
            rip += 2
        elif at(b"\x80\x3b\x00"):
            zf = heap[reg["rbx"]] == 0
            rip += 3
        elif at(b"\x0f\x84"):
            rip += 6 + (rel32(rip + 2) if zf else 0)
        elif op == 0xE9:
            rip += 5 + rel32(rip + 1)
        elif op == 0xC3:
            return Run(reg["rax"], bytes(output), freed, depth)
        else:
            raise AssertionError(f"unexpected byte {op:#x} at {rip}")
    raise AssertionError("step limit reached")


def interpret(source: str, stdin: bytes = b"", eof=EofBehaviour.IGNORE) -> bytes:
    out = io.StringIO()
    Interpreter(30_000, eof, stdin=io.BytesIO(stdin), stdout=out).run(parse(source))
    return out.getvalue().encode("latin-1")


def compile_and_run(source: str, stdin: bytes = b"", eof=EofBehaviour.IGNORE) -> Run:
    return emulate(generate_main(parse(source), 30_000, eof), stdin)


@pytest.mark.parametrize(
    "source",
    [
        "-.",
        "+++[>++<-]>.",
        ">>+<<>>.",
        "++++++++[>++++++++<-]>+.",
        "+[-].",
        "++[>+++[>++<-]<-]>>.",
        HELLO_WORLD,
    ],
)
def test_matches_interpreter(source):
    assert compile_and_run(source).output == interpret(source)


def test_hello_world_output():
    assert compile_and_run(HELLO_WORLD).output == b"Hello World!\n"


@pytest.mark.parametrize("eof", list(EofBehaviour))
@pytest.mark.parametrize(
    ("source", "stdin"),
    [(",.", b"A"), (",.,.", b"Z"), ("+++,.", b""), (",+.,.,.", b"xy")],
)
def test_input_matches_interpreter(source, stdin, eof):
    assert compile_and_run(source, stdin, eof).output == interpret(source, stdin, eof)


def test_eof_behaviours_differ_at_end_of_input():
    ignore = compile_and_run("+++,.", b"", EofBehaviour.IGNORE).output
    zero = compile_and_run("+++,.", b"", EofBehaviour.ZERO).output
    assert ignore == interpret("+++,.")
    assert zero == interpret("+++,.", eof=EofBehaviour.ZERO)
    assert ignore != zero


def test_returns_zero_frees_array_and_balances_stack():
    run = compile_and_run("+[>+<-]>.")
    assert run.status == 0
    assert run.freed == [0]
    assert run.depth == 0


def test_array_size_is_encoded():
    code = generate_main(parse(""), 12345, EofBehaviour.IGNORE).code
    assert (12345).to_bytes(4, "little") in code


@pytest.mark.parametrize("size", [0, -1, 2**32])
def test_invalid_array_size(size):
    with pytest.raises(ValueError):
        generate_main(parse("+"), size, EofBehaviour.IGNORE)


def test_imports_in_order_of_use():
    assert generate_main(parse(""), 10, EofBehaviour.IGNORE).imports == ("calloc", "free")
    assert generate_main(parse(",."), 10, EofBehaviour.IGNORE).imports == (
        "calloc",
        "getchar",
        "putchar",
        "free",
    )


def test_relocations_follow_the_same_call_opcode():
    machine_code = generate_main(parse(",.,."), 10, EofBehaviour.ZERO)
    opcodes = {machine_code.code[relocation.offset - 1] for relocation in machine_code.relocations}
    assert len(opcodes) == 1
    assert len(machine_code.relocations) == 6


def test_debug_emits_nothing():
    with_debug = generate_main(parse("#+#"), 10, EofBehaviour.IGNORE)
    without = generate_main(parse("+"), 10, EofBehaviour.IGNORE)
    assert with_debug == without


def test_symmetric_ops_have_equal_sizes():
    def size(source):
        return len(generate_main(parse(source), 10, EofBehaviour.IGNORE).code)

    assert size("+") == size("-")
    assert size(">") == size("<")
    assert size("+") > size("")


def test_deep_nesting():
    source = "[" * 3000 + "]" * 3000
    machine_code = generate_main(parse(source), 10, EofBehaviour.IGNORE)
    assert len(machine_code.relocations) == 2
    assert emulate(machine_code).output == b""


def test_rejects_non_instruction():
    with pytest.raises(TypeError):
        generate_main(("+",), 10, EofBehaviour.IGNORE)