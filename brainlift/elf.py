"""Writer for ELF64 x86-64 relocatable object files holding one function."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from brainlift.x86 import MachineCode

_EHDR = struct.Struct("<16sHHIQQQIHHHHHH")
_SHDR = struct.Struct("<IIQQQQIIQQ")
_SYM = struct.Struct("<IBBHQQ")
_RELA = struct.Struct("<QQq")

_ELFCLASS64 = 2
_ELFDATA2LSB = 1
_EV_CURRENT = 1
_ET_REL = 1
_EM_X86_64 = 62

_SHT_PROGBITS = 1
_SHT_SYMTAB = 2
_SHT_STRTAB = 3
_SHT_RELA = 4

_SHF_ALLOC = 0x2
_SHF_EXECINSTR = 0x4
_SHF_INFO_LINK = 0x40

_STB_LOCAL = 0
_STB_GLOBAL = 1
_STT_NOTYPE = 0
_STT_FUNC = 2
_STT_SECTION = 3
_STT_FILE = 4

_SHN_UNDEF = 0
_SHN_ABS = 0xFFF1

_TEXT_INDEX = 1
_SYMTAB_INDEX = 3
_STRTAB_INDEX = 4
_SHSTRTAB_INDEX = 6


class _StringTable:
    def __init__(self) -> None:
        self._data = bytearray(b"\0")
        self._offsets = {"": 0}

    def add(self, name: str) -> int:
        if name not in self._offsets:
            self._offsets[name] = len(self._data)
            self._data += name.encode() + b"\0"
        return self._offsets[name]

    def __bytes__(self) -> bytes:
        return bytes(self._data)


@dataclass
class _Section:
    name: str
    kind: int
    data: bytes
    flags: int = 0
    link: int = 0
    info: int = 0
    align: int = 1
    entsize: int = 0


def _symbol_info(binding: int, kind: int) -> int:
    return (binding << 4) | kind


def _symbol_table(
    machine_code: MachineCode, entry_symbol: str, source_name: str
) -> tuple[bytes, bytes, int, dict[str, int]]:
    names = _StringTable()
    entries = [
        _SYM.pack(0, 0, 0, _SHN_UNDEF, 0, 0),
        _SYM.pack(names.add(source_name), _symbol_info(_STB_LOCAL, _STT_FILE), 0, _SHN_ABS, 0, 0),
        _SYM.pack(0, _symbol_info(_STB_LOCAL, _STT_SECTION), 0, _TEXT_INDEX, 0, 0),
    ]
    first_global = len(entries)
    entries.append(
        _SYM.pack(
            names.add(entry_symbol),
            _symbol_info(_STB_GLOBAL, _STT_FUNC),
            0,
            _TEXT_INDEX,
            0,
            len(machine_code.code),
        )
    )
    indices = {}
    for name in machine_code.imports:
        indices[name] = len(entries)
        entries.append(
            _SYM.pack(names.add(name), _symbol_info(_STB_GLOBAL, _STT_NOTYPE), 0, _SHN_UNDEF, 0, 0)
        )
    return b"".join(entries), bytes(names), first_global, indices


def build_relocatable(machine_code: MachineCode, entry_symbol: str, source_name: str) -> bytes:
    """Build an object file exporting ``entry_symbol`` with ``machine_code`` as its body."""
    if entry_symbol in machine_code.imports:
        raise ValueError(f"{entry_symbol!r} is both defined and imported")

    symtab, strtab, first_global, indices = _symbol_table(machine_code, entry_symbol, source_name)
    rela = b"".join(
        _RELA.pack(r.offset, (indices[r.symbol] << 32) | r.kind, r.addend)
        for r in machine_code.relocations
    )

    sections = [
        _Section(".text", _SHT_PROGBITS, machine_code.code, _SHF_ALLOC | _SHF_EXECINSTR, align=16),
        _Section(
            ".rela.text",
            _SHT_RELA,
            rela,
            _SHF_INFO_LINK,
            link=_SYMTAB_INDEX,
            info=_TEXT_INDEX,
            align=8,
            entsize=_RELA.size,
        ),
        _Section(
            ".symtab",
            _SHT_SYMTAB,
            symtab,
            link=_STRTAB_INDEX,
            info=first_global,
            align=8,
            entsize=_SYM.size,
        ),
        _Section(".strtab", _SHT_STRTAB, strtab),
        _Section(".note.GNU-stack", _SHT_PROGBITS, b""),
    ]
    section_names = _StringTable()
    name_offsets = [section_names.add(section.name) for section in sections]
    name_offsets.append(section_names.add(".shstrtab"))
    sections.append(_Section(".shstrtab", _SHT_STRTAB, bytes(section_names)))

    out = bytearray(_EHDR.size)
    headers = [_SHDR.pack(0, 0, 0, 0, 0, 0, 0, 0, 0, 0)]
    for name_offset, section in zip(name_offsets, sections):
        out += bytes(-len(out) % section.align)
        offset = len(out)
        out += section.data
        headers.append(
            _SHDR.pack(
                name_offset,
                section.kind,
                section.flags,
                0,
                offset,
                len(section.data),
                section.link,
                section.info,
                section.align,
                section.entsize,
            )
        )
    out += bytes(-len(out) % 8)
    section_header_offset = len(out)
    out += b"".join(headers)

    ident = b"\x7fELF" + bytes([_ELFCLASS64, _ELFDATA2LSB, _EV_CURRENT]) + bytes(9)
    out[: _EHDR.size] = _EHDR.pack(
        ident,
        _ET_REL,
        _EM_X86_64,
        _EV_CURRENT,
        0,
        0,
        section_header_offset,
        0,
        _EHDR.size,
        0,
        0,
        _SHDR.size,
        len(headers),
        _SHSTRTAB_INDEX,
    )
    return bytes(out)