"""Exception types raised by the patching pipeline."""


class FirmpatchError(Exception):
    """Base class for all patching and checksum failures."""


class MissingEndLabel(FirmpatchError):
    """A PATCH_<NAME>_START label has no matching end label."""

    def __init__(self, patch_name: str, start_label: str, end_label: str) -> None:
        self.patch_name = patch_name
        self.start_label = start_label
        self.end_label = end_label
        super().__init__(
            f"Missing end label for patch {patch_name!r}: found {start_label!r} "
            f"but expected label {end_label!r} was not found"
        )


class InvalidPatchRange(FirmpatchError):
    """End label is at or before the start label."""

    def __init__(self, patch_name: str, start_address: int, end_address: int) -> None:
        self.patch_name = patch_name
        self.start_address = start_address
        self.end_address = end_address
        super().__init__(
            f"Invalid patch section {patch_name!r}: end address 0x{end_address:08X} "
            f"<= start address 0x{start_address:08X}"
        )


class UnresolvedTargetAddress(FirmpatchError):
    """The start symbol of a patch is not in the symbol table."""

    def __init__(self, patch_name: str, start_label: str) -> None:
        self.patch_name = patch_name
        self.start_label = start_label
        super().__init__(
            f"Cannot determine target address for patch {patch_name!r}: start symbol "
            f"{start_label!r} not found. Make sure the .org directive comes before the start label."
        )


class IncompleteSectionData(FirmpatchError):
    """Some bytes of a requested range are absent from the section dumps."""

    def __init__(self, missing: int, start_address: int, end_address: int) -> None:
        self.missing = missing
        self.start_address = start_address
        self.end_address = end_address
        super().__init__(
            f"Missing {missing} of {end_address - start_address} bytes in range "
            f"0x{start_address:08X}-0x{end_address:08X}; the section dump does not "
            f"contain the expected data"
        )


class EmptyPatch(FirmpatchError):
    """A patch carries no data."""

    def __init__(self, patch_name: str) -> None:
        self.patch_name = patch_name
        super().__init__(f"Patch {patch_name!r} has no data")


class SizeMismatch(FirmpatchError):
    """Declared patch size disagrees with its data length."""

    def __init__(self, patch_name: str, expected: int, actual: int) -> None:
        self.patch_name = patch_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Patch {patch_name!r} size mismatch: expected {expected}, got {actual}"
        )


class OverlappingPatches(FirmpatchError):
    """Two patches would write to the same firmware bytes."""

    def __init__(self, first: str, second: str, first_end: int, second_start: int) -> None:
        self.first = first
        self.second = second
        super().__init__(
            f"Overlapping patches: {first!r} ends at 0x{first_end:08X} but "
            f"{second!r} starts at 0x{second_start:08X}"
        )


class OutOfBounds(FirmpatchError):
    """A read or write falls outside the firmware image."""

    def __init__(self, what: str, start: int, end: int, firmware_size: int) -> None:
        self.what = what
        self.start = start
        self.end = end
        self.firmware_size = firmware_size
        super().__init__(
            f"{what} requires address range 0x{start:08X}-0x{end - 1:08X}, but firmware "
            f"only extends to 0x{firmware_size - 1:08X}; the firmware cannot be extended"
        )


class SegmentTooSmall(FirmpatchError):
    """A checksum segment ends past the end of the firmware."""

    def __init__(self, index: int, end_address: int, firmware_size: int) -> None:
        self.index = index
        self.end_address = end_address
        self.firmware_size = firmware_size
        super().__init__(
            f"Segment {index} end address 0x{end_address:08X} exceeds firmware size "
            f"0x{firmware_size:08X}"
        )


class InvalidSegmentBounds(FirmpatchError):
    """A checksum segment's start is not below its end."""

    def __init__(self, index: int, start_address: int, end_address: int) -> None:
        self.index = index
        self.start_address = start_address
        self.end_address = end_address
        super().__init__(
            f"Invalid segment {index}: start address 0x{start_address:08X} >= "
            f"end address 0x{end_address:08X}"
        )


class ChecksumRepairError(FirmpatchError):
    """A segment still has a nonzero sum after its correction word was adjusted."""

    def __init__(self, index: int, correction_address: int, checksum: int) -> None:
        self.index = index
        self.correction_address = correction_address
        self.checksum = checksum
        super().__init__(
            f"Segment {index} checksum is 0x{checksum:04X} after repair; correction "
            f"word at 0x{correction_address:08X} is not covered by the segment sum"
        )


class NoPatchesFound(FirmpatchError):
    """The assembled object contains no PATCH_*_START labels."""

    def __init__(self) -> None:
        super().__init__("No patch sections found in assembled ELF file")


class ToolchainError(FirmpatchError):
    """An external toolchain program is missing or failed."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(f"{tool}: {message}")


class SourceValidationError(FirmpatchError):
    """The assembly source cannot be used for patching."""
