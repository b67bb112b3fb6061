"""Shared fixtures: an in-memory toolchain and a small checksummed firmware."""

import struct
from pathlib import Path

import pytest

from firmpatch.checksum import DEFAULT_LAYOUT, repair_checksums
from firmpatch.loader.symbols import Symbol, SymbolType

SOURCE = """\
.cpu cpu32
        .section .code.hook,"ax",@progbits
        .org 0x100
PATCH_HOOK_START:
        nop
        rts
PATCH_HOOK_END:
        .section .data.tables
        .org 0x900
PATCH_DATA_START:
        .word 0x1234, 0x5678
PATCH_DATA_END:
"""

SYMBOLS = [
    Symbol("PATCH_HOOK_START", 0x100, SymbolType.TEXT),
    Symbol("PATCH_HOOK_END", 0x104, SymbolType.TEXT),
    Symbol("PATCH_DATA_START", 0x900, SymbolType.DATA),
    Symbol("PATCH_DATA_END", 0x904, SymbolType.DATA),
]

SECTIONS = {
    ".code.hook": " 0100 4e714e75                             NqNu\n",
    ".data.tables": " 0900 12345678                             .4Vx\n",
}


class MemoryToolchain:
    """Toolchain that serves fixed symbols and section dumps."""

    def __init__(self, symbols=SYMBOLS, sections=SECTIONS) -> None:
        self.symbols = list(symbols)
        self.sections = dict(sections)
        self.assembled: list[Path] = []

    def assemble(self, source: Path) -> Path:
        self.assembled.append(source)
        return source.with_suffix(".elf")

    def dump_symbols(self, elf: Path) -> list[Symbol]:
        return list(self.symbols)

    def dump_sections(self, elf: Path) -> dict[str, str]:
        return dict(self.sections)

    def disassemble(self, elf: Path) -> str:
        return "disassembly of section .code.hook:"


@pytest.fixture
def toolchain():
    return MemoryToolchain()


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "patches.s"
    path.write_text(SOURCE)
    return path


@pytest.fixture
def firmware_file(tmp_path):
    """A 4 KiB image with two valid checksum segments."""
    data = bytearray((i * 13 + 5) & 0xFF for i in range(0x1000))
    table = DEFAULT_LAYOUT.table_address
    data[table : DEFAULT_LAYOUT.table_end] = bytes(DEFAULT_LAYOUT.table_end - table)
    struct.pack_into(">IIII", data, table, 0x0, 0x7FF, 0x800, 0xFFF)
    repair_checksums(data)

    path = tmp_path / "firmware.bin"
    path.write_bytes(data)
    return path
