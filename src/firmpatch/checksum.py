"""Firmware checksum table handling.

The firmware carries a table of up to eight (start, end) address pairs, each
two big-endian 32-bit words. Every listed segment must sum to zero when read
as big-endian 16-bit words over the inclusive range [start, end]. The region
from ``hole_start`` up to ``hole_end`` holds dynamic data and is skipped.

A segment is repaired by adjusting one 16-bit correction word inside it. The
sum is linear in that word, so subtracting the current sum from it brings the
segment total to zero without touching any other byte.
"""

import struct
import logging
from dataclasses import dataclass

from firmpatch.errors import (
    OutOfBounds,
    SegmentTooSmall,
    ChecksumRepairError,
    InvalidSegmentBounds,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChecksumLayout:
    """Fixed location and shape of the checksum table."""

    table_address: int = 0x50C
    segment_count: int = 8
    entry_size: int = 8  # 4 bytes start + 4 bytes end
    hole_start: int = 0x4000
    hole_end: int = 0x20000
    zero_segment_correction: int = 0x500  # Correction word for a segment starting at 0

    @property
    def table_end(self) -> int:
        return self.table_address + self.segment_count * self.entry_size

    def correction_address(self, segment: "ChecksumSegment") -> int:
        if segment.start_address == 0:
            return self.zero_segment_correction
        return segment.start_address


DEFAULT_LAYOUT = ChecksumLayout()


@dataclass
class ChecksumSegment:
    """One entry of the checksum table."""

    index: int
    start_address: int
    end_address: int
    checksum: int = 0

    @property
    def size(self) -> int:
        return self.end_address - self.start_address + 1

    @property
    def is_valid(self) -> bool:
        return self.checksum == 0

    def __str__(self) -> str:
        return (
            f"Segment {self.index}: 0x{self.start_address:08X}-0x{self.end_address:08X} "
            f"({self.size} bytes), Checksum: 0x{self.checksum:04X}"
        )


def read_segment_table(
    firmware: bytes | bytearray, layout: ChecksumLayout = DEFAULT_LAYOUT
) -> list[ChecksumSegment]:
    """Read the checksum segment table, skipping unused (0, 0) slots."""
    if len(firmware) < layout.table_end:
        raise OutOfBounds(
            "Checksum table", layout.table_address, layout.table_end, len(firmware)
        )

    logger.debug("Reading checksum segment table at address 0x%X", layout.table_address)
    segments: list[ChecksumSegment] = []

    for i in range(layout.segment_count):
        offset = layout.table_address + i * layout.entry_size
        start, end = struct.unpack_from(">II", firmware, offset)

        if start == 0 and end == 0:
            logger.debug("Skipping empty segment %d", i)
            continue

        if start >= end:
            raise InvalidSegmentBounds(i, start, end)

        if end >= len(firmware):
            raise SegmentTooSmall(i, end, len(firmware))

        segments.append(ChecksumSegment(i, start, end))
        logger.debug(
            "Found segment %d: 0x%08X-0x%08X (%d bytes)", i, start, end, end - start + 1
        )

    return segments


def compute_checksum(
    firmware: bytes | bytearray,
    segment: ChecksumSegment,
    layout: ChecksumLayout = DEFAULT_LAYOUT,
) -> int:
    """Sum the segment as big-endian 16-bit words, modulo 65536.

    Returns the raw sum; a healthy segment sums to zero.
    """
    checksum = 0
    address = segment.start_address

    while address <= segment.end_address:
        # The dynamic-data range is excluded.
        if address == layout.hole_start:
            address = layout.hole_end
            if address > segment.end_address:
                break

        if address + 2 > len(firmware):
            raise OutOfBounds(
                f"Segment {segment.index} word", address, address + 2, len(firmware)
            )

        checksum = (checksum + ((firmware[address] << 8) | firmware[address + 1])) & 0xFFFF
        address += 2

    logger.debug(
        "Segment %d checksum: 0x%04X (sum of %d bytes)", segment.index, checksum, segment.size
    )
    return checksum


def compute_all_checksums(
    firmware: bytes | bytearray, layout: ChecksumLayout = DEFAULT_LAYOUT
) -> list[ChecksumSegment]:
    """Read the segment table and compute each segment's checksum."""
    segments = read_segment_table(firmware, layout)
    for segment in segments:
        segment.checksum = compute_checksum(firmware, segment, layout)
    return segments


def repair_checksums(
    firmware: bytearray, layout: ChecksumLayout = DEFAULT_LAYOUT
) -> list[ChecksumSegment]:
    """Adjust each segment's correction word so its checksum becomes zero.

    The repair runs on a copy and is committed to ``firmware`` only when
    every segment sums to zero.

    Returns:
        The segments with their checksums after repair

    Raises:
        ChecksumRepairError: A correction word does not contribute to its
            segment sum (e.g. it lies in the excluded hole)
    """
    work = bytearray(firmware)
    segments = compute_all_checksums(work, layout)

    for segment in segments:
        logger.debug("Current checksum for %s", segment)
        if segment.checksum == 0:
            continue

        address = layout.correction_address(segment)
        if address + 2 > len(work):
            raise OutOfBounds(
                f"Segment {segment.index} correction word", address, address + 2, len(work)
            )

        (current,) = struct.unpack_from(">H", work, address)
        new_value = (current - segment.checksum) & 0xFFFF
        struct.pack_into(">H", work, address, new_value)
        logger.info(
            "Updated checksum word for segment %d at 0x%08X: 0x%04X -> 0x%04X",
            segment.index,
            address,
            current,
            new_value,
        )

        segment.checksum = compute_checksum(work, segment, layout)
        logger.debug("Verified new checksum: 0x%04X", segment.checksum)
        if segment.checksum != 0:
            raise ChecksumRepairError(segment.index, address, segment.checksum)

    firmware[:] = work
    return segments
