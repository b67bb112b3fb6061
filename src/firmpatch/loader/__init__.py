"""Loaders for assembler toolchain output."""

from firmpatch.loader.nm import parse_nm_output
from firmpatch.loader.dump import (
    AddressByteMap,
    extract_hex_bytes,
    parse_section_dump,
    parse_section_dumps,
)
from firmpatch.loader.objdump import split_section_contents
from firmpatch.loader.symbols import Symbol, SymbolType, SymbolTable

__all__ = [
    "AddressByteMap",
    "Symbol",
    "SymbolTable",
    "SymbolType",
    "extract_hex_bytes",
    "parse_nm_output",
    "parse_section_dump",
    "parse_section_dumps",
    "split_section_contents",
]
