"""Firmpatch - assemble patches and inject them into checksummed firmware images."""

import logging
from pathlib import Path
from dataclasses import field, dataclass
from collections.abc import Mapping, Iterable

from firmpatch.errors import FirmpatchError, NoPatchesFound
from firmpatch.loader import Symbol, SymbolType, SymbolTable, parse_section_dumps
from firmpatch.patch import (
    PatchSection,
    apply_patches,
    verify_patches,
    extract_patches,
    write_patch_report,
    identify_patch_sections,
)
from firmpatch.checksum import (
    DEFAULT_LAYOUT,
    ChecksumLayout,
    ChecksumSegment,
    compute_checksum,
    repair_checksums,
    read_segment_table,
    compute_all_checksums,
)
from firmpatch.firmware import save_firmware, load_firmware, create_backup
from firmpatch.toolchain import Toolchain, GnuToolchain, validate_source

__version__ = "0.1.0"
__all__ = [
    "Patcher",
    "PatchResult",
    "PatchSection",
    "Symbol",
    "SymbolType",
    "SymbolTable",
    "ChecksumLayout",
    "ChecksumSegment",
    "Toolchain",
    "GnuToolchain",
    "FirmpatchError",
    "prepare_patches",
    "apply_patches",
    "verify_patches",
    "compute_checksum",
    "repair_checksums",
    "read_segment_table",
    "compute_all_checksums",
]

logger = logging.getLogger(__name__)


def prepare_patches(
    symbols: SymbolTable | Iterable[Symbol], section_dumps: Mapping[str, str]
) -> list[PatchSection]:
    """Turn assembler output into patches ready to apply.

    Args:
        symbols: Symbols of the assembled object
        section_dumps: Section name -> hex dump text

    Returns:
        Patches with target address and data resolved, sorted by start address
    """
    table = symbols if isinstance(symbols, SymbolTable) else SymbolTable(symbols)
    patches = identify_patch_sections(table)
    if not patches:
        raise NoPatchesFound()

    address_bytes = parse_section_dumps(section_dumps)
    return extract_patches(patches, address_bytes, table)


@dataclass
class PatchResult:
    """Outcome of a full patch run."""

    patches: list[PatchSection]
    segments: list[ChecksumSegment]
    output: Path
    verified: bool | None = None
    backup: Path | None = None
    elf: Path | None = None
    symbols: SymbolTable = field(default_factory=SymbolTable, repr=False)


class Patcher:
    """Main entry point: source + firmware in, patched firmware out."""

    def __init__(
        self,
        toolchain: Toolchain | None = None,
        layout: ChecksumLayout = DEFAULT_LAYOUT,
    ) -> None:
        self.toolchain = toolchain if toolchain is not None else GnuToolchain()
        self.layout = layout

    def build(self, source: str | Path) -> tuple[Path, SymbolTable, list[PatchSection]]:
        """Assemble source and extract its patches."""
        source = Path(source)
        validate_source(source)

        elf = self.toolchain.assemble(source)

        symbols = SymbolTable(self.toolchain.dump_symbols(elf))
        logger.info("Found %d symbols", len(symbols))

        patches = prepare_patches(symbols, self.toolchain.dump_sections(elf))
        logger.info("Identified %d patch sections", len(patches))
        for patch in patches:
            logger.info("  %s", patch)

        return elf, symbols, patches

    def patch(self, firmware: bytearray, patches: list[PatchSection]) -> list[ChecksumSegment]:
        """Apply patches in place, then repair the checksum table."""
        apply_patches(firmware, patches)
        segments = repair_checksums(firmware, self.layout)
        self._warn_correction_overlaps(patches, segments)
        logger.info("Computed checksums for %d segments", len(segments))
        for segment in segments:
            logger.info("  %s", segment)
        return segments

    def _warn_correction_overlaps(
        self, patches: list[PatchSection], segments: list[ChecksumSegment]
    ) -> None:
        """Log patches whose bytes include a checksum correction word."""
        for segment in segments:
            address = self.layout.correction_address(segment)
            for patch in patches:
                if patch.target_address < address + 2 and address < patch.target_end:
                    logger.warning(
                        "Patch %s covers the correction word of segment %d at 0x%08X; "
                        "checksum repair may change it and verification will fail",
                        patch.name,
                        segment.index,
                        address,
                    )

    def run(
        self,
        source: str | Path,
        firmware_path: str | Path,
        output_path: str | Path,
        verify: bool = True,
        backup: bool = False,
        report: str | Path | None = None,
        disassembler=None,
    ) -> PatchResult:
        """Run the whole pipeline and write the patched image."""
        backup_path = create_backup(firmware_path) if backup else None

        elf, symbols, patches = self.build(source)

        firmware = load_firmware(firmware_path)
        segments = self.patch(firmware, patches)
        output = save_firmware(firmware, output_path)

        verified = None
        if verify:
            verified = verify_patches(firmware, patches)

        if report is not None:
            write_patch_report(patches, report, disassembler)

        return PatchResult(
            patches=patches,
            segments=segments,
            output=output,
            verified=verified,
            backup=backup_path,
            elf=elf,
            symbols=symbols,
        )


def main() -> None:
    """Entry point for CLI."""
    from firmpatch.cli import main as cli_main

    cli_main()
