"""Patch data extraction from parsed section dumps."""

import logging
from collections.abc import Iterable

from firmpatch.errors import IncompleteSectionData
from firmpatch.loader.dump import AddressByteMap
from firmpatch.loader.symbols import Symbol, SymbolTable
from firmpatch.patch.sections import PatchSection, as_symbol_table, resolve_target_address

logger = logging.getLogger(__name__)


def extract_patch_data(address_bytes: AddressByteMap, start: int, end: int) -> bytes:
    """Read the bytes of [start, end) from the address map.

    Raises:
        IncompleteSectionData: Any address in the range is absent
    """
    logger.debug("Extracting section data from 0x%08X to 0x%08X", start, end)

    missing = sum(1 for addr in range(start, end) if addr not in address_bytes)
    if missing:
        logger.error(
            "Found %d missing bytes in range 0x%08X-0x%08X", missing, start, end
        )
        raise IncompleteSectionData(missing, start, end)

    data = bytes(address_bytes[addr] for addr in range(start, end))
    logger.debug("Extracted %d bytes from 0x%08X-0x%08X", len(data), start, end)
    return data


def extract_patches(
    patches: list[PatchSection],
    address_bytes: AddressByteMap,
    symbols: SymbolTable | Iterable[Symbol],
) -> list[PatchSection]:
    """Fill in target address and data for every patch.

    Every patch is resolved before any is modified, so a failure leaves the
    list untouched.
    """
    table = as_symbol_table(symbols)
    resolved = []
    for patch in patches:
        target = resolve_target_address(patch, table)
        data = extract_patch_data(address_bytes, patch.start_address, patch.end_address)
        resolved.append((patch, target, data))

    for patch, target, data in resolved:
        patch.target_address = target
        patch.data = data
        logger.info(
            "Patch %s: %d bytes at target 0x%08X (extracted from 0x%08X-0x%08X)",
            patch.name,
            len(data),
            target,
            patch.start_address,
            patch.end_address,
        )

    return patches
