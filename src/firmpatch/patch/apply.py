"""Writing patches into a firmware image, verifying and reporting them."""

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from firmpatch.errors import EmptyPatch, OutOfBounds, SizeMismatch, OverlappingPatches
from firmpatch.patch.sections import PatchSection

if TYPE_CHECKING:
    from firmpatch.arch.m68k import M68KDisassembler

logger = logging.getLogger(__name__)

MIN_FIRMWARE_SIZE = 1024
MAX_FIRMWARE_SIZE = 32 * 1024 * 1024


def validate_patches(firmware: bytes | bytearray, patches: list[PatchSection]) -> list[PatchSection]:
    """Check a batch of patches against each other and the firmware.

    Returns:
        The patches sorted by target address

    Raises:
        EmptyPatch, SizeMismatch, OverlappingPatches, OutOfBounds
    """
    if len(firmware) < MIN_FIRMWARE_SIZE:
        logger.warning("Firmware seems too small: %d bytes", len(firmware))
    elif len(firmware) > MAX_FIRMWARE_SIZE:
        logger.warning("Firmware seems very large: %d bytes", len(firmware))

    for patch in patches:
        if not patch.data:
            raise EmptyPatch(patch.name)
        if patch.size != len(patch.data):
            raise SizeMismatch(patch.name, patch.size, len(patch.data))

    ordered = sorted(patches, key=lambda p: p.target_address)
    for current, following in zip(ordered, ordered[1:]):
        if current.target_end > following.target_address:
            raise OverlappingPatches(
                current.name, following.name, current.target_end, following.target_address
            )

    for patch in ordered:
        if patch.target_end > len(firmware):
            raise OutOfBounds(
                f"Patch {patch.name!r}", patch.target_address, patch.target_end, len(firmware)
            )

    logger.info("All patches fit within firmware bounds (size: %d bytes)", len(firmware))
    return ordered


def apply_patches(firmware: bytearray, patches: list[PatchSection]) -> bytearray:
    """Write every patch into the firmware buffer in place.

    The whole batch is validated first; nothing is written unless every patch
    is valid. The buffer is never resized.

    Args:
        firmware: Firmware image, mutated in place
        patches: Patches with target_address and data resolved

    Returns:
        The same firmware buffer
    """
    ordered = validate_patches(firmware, patches)

    logger.info("Applying %d patches", len(ordered))
    for patch in ordered:
        firmware[patch.target_address : patch.target_end] = patch.data
        logger.info(
            "Applied patch %s at 0x%08X (%d bytes)", patch.name, patch.target_address, patch.size
        )

    return firmware


def verify_patches(firmware: bytes | bytearray, patches: list[PatchSection]) -> bool:
    """Re-read every patch from the firmware and compare with its data."""
    all_valid = True

    for patch in patches:
        if patch.target_end > len(firmware):
            logger.error("Patch %s extends beyond firmware bounds", patch.name)
            all_valid = False
            continue

        actual = bytes(firmware[patch.target_address : patch.target_end])
        if actual == patch.data:
            logger.info("Patch %s verified successfully", patch.name)
        else:
            logger.error("Patch %s verification failed - data mismatch", patch.name)
            logger.debug("Expected: %s", patch.data.hex().upper())
            logger.debug("Actual:   %s", actual.hex().upper())
            all_valid = False

    return all_valid


def format_patch_report(
    patches: list[PatchSection],
    disassembler: "M68KDisassembler | None" = None,
    generated: datetime | None = None,
) -> str:
    """Render the plain-text patch report."""
    generated = generated or datetime.now()
    lines = [
        "Firmware Patch Report",
        "====================",
        f"Generated: {generated:%Y-%m-%d %H:%M:%S}",
        f"Total Patches: {len(patches)}",
        "",
    ]

    for patch in sorted(patches, key=lambda p: p.target_address):
        lines += [
            f"Patch: {patch.name}",
            f"  Target Address: 0x{patch.target_address:08X}",
            f"  Size: {patch.size} bytes",
            f"  Start Label: {patch.start_label}",
            f"  End Label: {patch.end_label}",
            f"  Data: {patch.data.hex().upper()}",
        ]
        if disassembler is not None:
            lines.append("  Disassembly:")
            for insn in disassembler.disassemble(patch.data, patch.target_address):
                lines.append(f"    {insn}")
        lines.append("")

    return "\n".join(lines)


def write_patch_report(
    patches: list[PatchSection],
    path: str | Path,
    disassembler: "M68KDisassembler | None" = None,
) -> Path:
    """Write the patch report to a file."""
    path = Path(path)
    logger.info("Generating patch report: %s", path)
    path.write_text(format_patch_report(patches, disassembler))
    return path
