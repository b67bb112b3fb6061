"""Tests for the GNU toolchain driver, run against a fake process runner."""

import subprocess
from pathlib import Path

import pytest

from firmpatch.errors import ToolchainError, SourceValidationError
from firmpatch.loader.symbols import SymbolType
from firmpatch.toolchain import GnuToolchain, validate_source
from firmpatch.firmware import save_firmware, load_firmware, create_backup

NM_OUTPUT = """\
00000500 T PATCH_HOOK_START
00000504 T PATCH_HOOK_END
"""

OBJDUMP_OUTPUT = """\
patches.elf:     file format elf32-m68k

Contents of section .code.hook:
 0500 4e714e75                             NqNu
"""


class FakeRunner:
    """Records commands and creates the -o output files."""

    def __init__(self, outputs: dict[str, str] | None = None, returncode: int = 0) -> None:
        self.outputs = outputs or {}
        self.returncode = returncode
        self.calls: list[list[str]] = []

    def __call__(self, args: list[str], timeout: float | None) -> subprocess.CompletedProcess:
        self.calls.append(args)
        if "-o" in args:
            Path(args[args.index("-o") + 1]).touch()
        tool = Path(args[0]).name
        return subprocess.CompletedProcess(
            args, self.returncode, stdout=self.outputs.get(tool, ""), stderr="boom"
        )


class TestGnuToolchain:
    """Tests for GnuToolchain."""

    def test_tool_path(self):
        assert GnuToolchain().tool("nm") == "m68k-elf-nm"
        assert GnuToolchain(path=Path("/opt/tc/bin")).tool("as") == "/opt/tc/bin/m68k-elf-as"

    def test_assemble_commands(self, tmp_path):
        source = tmp_path / "patches.s"
        source.write_text("")
        runner = FakeRunner()

        elf = GnuToolchain(runner=runner).assemble(source)

        assert elf == tmp_path / "patches.elf"
        as_call, ld_call = runner.calls
        assert as_call == ["m68k-elf-as", "-mcpu=cpu32", "-g", "-o", str(tmp_path / "patches.o"), str(source)]
        assert ld_call[:3] == ["m68k-elf-ld", "-T", str(tmp_path / "patches.ld")]
        assert f"-Map={tmp_path / 'patches.map'}" in ld_call

    def test_dump_symbols(self, tmp_path):
        runner = FakeRunner({"m68k-elf-nm": NM_OUTPUT})
        symbols = GnuToolchain(runner=runner).dump_symbols(tmp_path / "x.elf")

        assert runner.calls[0][:2] == ["m68k-elf-nm", "-n"]
        assert [s.name for s in symbols] == ["PATCH_HOOK_START", "PATCH_HOOK_END"]
        assert symbols[0].symbol_type == SymbolType.TEXT

    def test_dump_sections(self, tmp_path):
        runner = FakeRunner({"m68k-elf-objdump": OBJDUMP_OUTPUT})
        sections = GnuToolchain(runner=runner).dump_sections(tmp_path / "x.elf")

        assert list(sections) == [".code.hook"]

    def test_failure_raises(self, tmp_path):
        runner = FakeRunner(returncode=1)
        with pytest.raises(ToolchainError, match="boom"):
            GnuToolchain(runner=runner).disassemble(tmp_path / "x.elf")

    def test_missing_tool(self):
        def runner(args, timeout):
            raise FileNotFoundError(args[0])

        with pytest.raises(ToolchainError, match="not found"):
            GnuToolchain(runner=runner).check()


class TestValidateSource:
    """Tests for validate_source."""

    def test_valid(self, tmp_path):
        source = tmp_path / "p.s"
        source.write_text(".cpu cpu32\n.org 0x100\nPATCH_A_START:\nnop\nPATCH_A_END:\n")
        assert "PATCH_A_START" in validate_source(source)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceValidationError, match="not found"):
            validate_source(tmp_path / "missing.s")

    def test_no_labels(self, tmp_path):
        source = tmp_path / "p.s"
        source.write_text("nop\n")
        with pytest.raises(SourceValidationError, match="No PATCH_"):
            validate_source(source)


class TestFirmwareFiles:
    """Tests for firmware file helpers."""

    def test_round_trip(self, tmp_path):
        path = save_firmware(bytearray(b"\x01\x02"), tmp_path / "out" / "fw.bin")
        data = load_firmware(path)

        assert data == bytearray(b"\x01\x02")
        assert isinstance(data, bytearray)

    def test_backup_name(self, tmp_path):
        from datetime import datetime

        fw = tmp_path / "fw.bin"
        fw.write_bytes(b"\xaa")
        backup = create_backup(fw, now=datetime(2024, 5, 6, 7, 8, 9))

        assert backup.name == "fw.bin.backup_20240506_070809"
        assert backup.read_bytes() == b"\xaa"
