"""M68K disassembly of patch bytes using capstone."""

from collections.abc import Iterator
from dataclasses import dataclass

import capstone


@dataclass
class M68KInstruction:
    """A decoded instruction, or a data word capstone could not decode."""

    address: int
    size: int
    mnemonic: str
    op_str: str
    bytes: bytes

    @property
    def is_data(self) -> bool:
        return self.mnemonic == "dc.w"

    def __str__(self) -> str:
        hex_bytes = self.bytes.hex()
        text = f"{self.mnemonic} {self.op_str}".rstrip()
        return f"{self.address:08x}  {hex_bytes:<20}  {text}"


class M68KDisassembler:
    """M68K disassembler wrapper around capstone."""

    def __init__(self) -> None:
        self._cs = capstone.Cs(
            capstone.CS_ARCH_M68K,
            capstone.CS_MODE_BIG_ENDIAN | capstone.CS_MODE_M68K_040,
        )

    def disassemble_one(self, data: bytes, address: int) -> M68KInstruction | None:
        """Disassemble a single instruction."""
        # Longest M68K instruction is 22 bytes
        for insn in self._cs.disasm(data[:22], address, count=1):
            return M68KInstruction(
                address=insn.address,
                size=insn.size,
                mnemonic=insn.mnemonic,
                op_str=insn.op_str,
                bytes=bytes(insn.bytes),
            )
        return None

    def disassemble(self, data: bytes, address: int) -> Iterator[M68KInstruction]:
        """Disassemble all of data, emitting undecodable words as dc.w."""
        offset = 0

        while offset < len(data):
            insn = self.disassemble_one(data[offset:], address + offset)
            if insn is None:
                # Invalid instruction, skip one word
                word = data[offset : offset + 2]
                insn = M68KInstruction(
                    address=address + offset,
                    size=len(word),
                    mnemonic="dc.w",
                    op_str=f"0x{word.hex()}",
                    bytes=word,
                )

            yield insn
            offset += insn.size
