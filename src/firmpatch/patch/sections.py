"""Patch section discovery from PATCH_<NAME>_START / PATCH_<NAME>_END labels."""

import logging
from collections.abc import Iterable
from dataclasses import field, dataclass

from firmpatch.errors import MissingEndLabel, InvalidPatchRange, UnresolvedTargetAddress
from firmpatch.loader.symbols import Symbol, SymbolTable

logger = logging.getLogger(__name__)

PATCH_PREFIX = "PATCH_"
START_SUFFIX = "_START"
END_SUFFIX = "_END"


@dataclass
class PatchSection:
    """A named byte range produced by the assembler, destined for the firmware.

    start_address/end_address describe where the assembler placed the bytes;
    target_address is where they land in the firmware image.
    """

    name: str
    start_label: str
    end_label: str
    start_address: int
    end_address: int
    target_address: int = 0
    data: bytes = field(default=b"", repr=False)

    @property
    def size(self) -> int:
        return self.end_address - self.start_address

    @property
    def target_end(self) -> int:
        """First firmware address past the patch."""
        return self.target_address + self.size

    def __str__(self) -> str:
        return f"{self.name}: 0x{self.target_address:08X} ({self.size} bytes)"


def as_symbol_table(symbols: SymbolTable | Iterable[Symbol]) -> SymbolTable:
    if isinstance(symbols, SymbolTable):
        return symbols
    return SymbolTable(symbols)


def patch_name_from_label(label: str) -> str:
    """Strip the fixed prefix and suffix: PATCH_EOIT_HOOK_START -> EOIT_HOOK."""
    if label.startswith(PATCH_PREFIX) and label.endswith(START_SUFFIX):
        return label[len(PATCH_PREFIX) : len(label) - len(START_SUFFIX)]
    return label


def is_start_label(name: str) -> bool:
    return (
        name.startswith(PATCH_PREFIX)
        and name.endswith(START_SUFFIX)
        and len(name) > len(PATCH_PREFIX) + len(START_SUFFIX)
    )


def identify_patch_sections(symbols: SymbolTable | Iterable[Symbol]) -> list[PatchSection]:
    """Pair every PATCH_<NAME>_START symbol with its PATCH_<NAME>_END symbol.

    Args:
        symbols: Symbols from the assembled object

    Returns:
        One PatchSection per pair, sorted by start address

    Raises:
        MissingEndLabel: A start label has no end label
        InvalidPatchRange: An end label is not after its start label
    """
    table = as_symbol_table(symbols)
    starts = [s for s in table if is_start_label(s.name)]
    logger.info("Found %d patch start symbols", len(starts))

    patches: dict[str, PatchSection] = {}
    for start in starts:
        name = patch_name_from_label(start.name)
        end_label = f"{PATCH_PREFIX}{name}{END_SUFFIX}"

        # Pair with the nearest end label after the start label
        end = table.next_named(end_label, start.address)
        if end is None:
            ends = table.all_by_name(end_label)
            if not ends:
                raise MissingEndLabel(name, start.name, end_label)
            raise InvalidPatchRange(name, start.address, ends[-1].address)

        if name in patches:
            logger.warning(
                "Duplicate patch name %s at 0x%08X replaces the one at 0x%08X",
                name,
                start.address,
                patches[name].start_address,
            )

        patch = PatchSection(
            name=name,
            start_label=start.name,
            end_label=end_label,
            start_address=start.address,
            end_address=end.address,
        )
        patches[name] = patch
        logger.info(
            "Discovered patch: %s at 0x%08X-0x%08X (size: %d bytes)",
            name,
            patch.start_address,
            patch.end_address,
            patch.size,
        )

    return sorted(patches.values(), key=lambda p: p.start_address)


def resolve_target_address(patch: PatchSection, symbols: SymbolTable | Iterable[Symbol]) -> int:
    """Resolve where a patch lands in the firmware.

    The start label's own address is the target: the assembly must place an
    ``.org`` directly before the start label.

    Raises:
        UnresolvedTargetAddress: The start symbol is not in the table
    """
    table = as_symbol_table(symbols)
    candidates = table.all_by_name(patch.start_label)
    if not candidates:
        raise UnresolvedTargetAddress(patch.name, patch.start_label)

    # A repeated start label resolves to the definition the patch was built from
    start = next((s for s in candidates if s.address == patch.start_address), candidates[0])

    logger.info(
        "Found target address for %s: 0x%08X (from start symbol %s)",
        patch.name,
        start.address,
        start.name,
    )
    return start.address
