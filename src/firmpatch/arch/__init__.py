"""Architecture-specific modules."""

from firmpatch.arch.m68k import M68KInstruction, M68KDisassembler

__all__ = [
    "M68KDisassembler",
    "M68KInstruction",
]
