"""External assembler toolchain access.

The pipeline only talks to a :class:`Toolchain`; :class:`GnuToolchain`
implements it by running the GNU cross binutils (``as``, ``ld``, ``nm``,
``objdump``). Tests substitute an in-memory implementation.
"""

import logging
import subprocess
from pathlib import Path
from dataclasses import dataclass
from collections.abc import Callable
from typing import Protocol

from firmpatch.errors import ToolchainError, SourceValidationError
from firmpatch.loader.nm import parse_nm_output
from firmpatch.loader.objdump import split_section_contents
from firmpatch.loader.symbols import Symbol

logger = logging.getLogger(__name__)

Runner = Callable[[list[str], float | None], subprocess.CompletedProcess]

LINKER_SCRIPT = "patches.ld"


class Toolchain(Protocol):
    """Capability the pipeline needs from an assembler toolchain."""

    def assemble(self, source: Path) -> Path:
        """Assemble and link source, returning the ELF path."""
        ...

    def dump_symbols(self, elf: Path) -> list[Symbol]: ...

    def dump_sections(self, elf: Path) -> dict[str, str]: ...

    def disassemble(self, elf: Path) -> str: ...


def run_process(args: list[str], timeout: float | None) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True, text=True, timeout=timeout, check=False)


@dataclass
class GnuToolchain:
    """GNU binutils cross toolchain, e.g. ``m68k-elf-as``."""

    path: Path | None = None
    prefix: str = "m68k-elf-"
    cpu: str = "cpu32"
    timeout: float | None = 60.0
    runner: Runner = run_process

    def tool(self, name: str) -> str:
        """Full command for a tool, honoring the toolchain directory."""
        tool = f"{self.prefix}{name}"
        if self.path:
            return str(Path(self.path) / tool)
        return tool

    def _run(self, name: str, *args: str) -> str:
        cmd = [self.tool(name), *args]
        logger.debug("Command: %s", " ".join(cmd))
        try:
            result = self.runner(cmd, self.timeout)
        except FileNotFoundError:
            raise ToolchainError(cmd[0], "not found") from None
        except subprocess.TimeoutExpired:
            raise ToolchainError(cmd[0], f"timed out after {self.timeout}s") from None

        if result.returncode != 0:
            raise ToolchainError(cmd[0], f"exited with status {result.returncode}: {result.stderr.strip()}")
        return result.stdout

    def check(self) -> None:
        """Make sure every tool runs.

        Raises:
            ToolchainError: A tool is missing or not executable
        """
        for name in ("as", "ld", "nm", "objdump"):
            self._run(name, "--version")
        logger.info("Toolchain validation passed")

    def assemble(self, source: Path) -> Path:
        source = Path(source)
        obj = source.with_suffix(".o")
        elf = source.with_suffix(".elf")

        logger.info("Assembling %s to %s", source, obj)
        self._run("as", f"-mcpu={self.cpu}", "-g", "-o", str(obj), str(source))
        if not obj.exists():
            raise ToolchainError(self.tool("as"), f"object file not created: {obj}")

        script = source.parent / LINKER_SCRIPT
        logger.info("Linking %s to %s", obj, elf)
        self._run(
            "ld",
            "-T",
            str(script),
            f"-Map={source.with_suffix('.map')}",
            "-o",
            str(elf),
            str(obj),
        )
        if not elf.exists():
            raise ToolchainError(self.tool("ld"), f"ELF file not created: {elf}")

        logger.info("Assembly and linking successful: %s", elf)
        return elf

    def dump_symbols(self, elf: Path) -> list[Symbol]:
        return parse_nm_output(self._run("nm", "-n", str(elf)))

    def dump_sections(self, elf: Path) -> dict[str, str]:
        return split_section_contents(self._run("objdump", "-s", str(elf)))

    def disassemble(self, elf: Path) -> str:
        return self._run("objdump", "-d", str(elf))


def validate_source(source: str | Path) -> str:
    """Sanity-check an assembly source file before assembling it.

    Returns:
        The source text

    Raises:
        SourceValidationError: Missing file or no patch labels
    """
    source = Path(source)
    if not source.is_file():
        raise SourceValidationError(f"Assembly source file not found: {source}")

    text = source.read_text()
    if not ("PATCH_" in text and "_START" in text and "_END" in text):
        raise SourceValidationError(f"No PATCH_<NAME>_START/_END labels found in {source}")

    if ".org" not in text:
        logger.warning("No .org directives found in %s", source)
    if ".cpu" not in text and ".arch" not in text:
        logger.warning("No CPU architecture specified in %s", source)

    logger.info("Assembly file validation passed")
    return text
