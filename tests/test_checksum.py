"""Tests for the checksum engine."""

import struct

import pytest

from firmpatch.errors import (
    OutOfBounds,
    SegmentTooSmall,
    ChecksumRepairError,
    InvalidSegmentBounds,
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

SMALL_LAYOUT = ChecksumLayout(hole_start=0xC00, hole_end=0xD00)


def make_firmware(
    size: int,
    segments: list[tuple[int, int]],
    layout: ChecksumLayout = DEFAULT_LAYOUT,
    fill=lambda i: (i * 7 + 3) & 0xFF,
) -> bytearray:
    """Build a firmware image with a checksum table at the layout's address."""
    firmware = bytearray(fill(i) for i in range(size))
    firmware[layout.table_address : layout.table_end] = bytes(layout.table_end - layout.table_address)
    for slot, (start, end) in enumerate(segments):
        struct.pack_into(">II", firmware, layout.table_address + slot * layout.entry_size, start, end)
    return firmware


class TestComputeChecksum:
    """Tests for compute_checksum."""

    @pytest.fixture
    def pattern(self):
        return bytearray(i & 0xFF for i in range(0x1000))

    def test_known_sum(self, pattern):
        segment = ChecksumSegment(0, 0x100, 0x1FF)
        assert compute_checksum(pattern, segment) == 49152

    def test_second_known_sum(self, pattern):
        segment = ChecksumSegment(1, 0x50, 0x5F)
        assert compute_checksum(pattern, segment) == 47808

    def test_wraps_to_16_bits(self):
        firmware = bytearray(b"\xff\xff" * 4)
        assert compute_checksum(firmware, ChecksumSegment(0, 0, 7)) == 0xFFFC

    def test_hole_is_skipped(self):
        layout = ChecksumLayout(hole_start=0x10, hole_end=0x20)
        firmware = bytearray(0x40)
        firmware[0x10:0x20] = b"\xff" * 0x10
        firmware[0x20:0x22] = b"\x00\x05"
        firmware[0x02:0x04] = b"\x00\x03"

        assert compute_checksum(firmware, ChecksumSegment(0, 0, 0x3F), layout) == 8

    def test_hole_past_segment_end(self):
        layout = ChecksumLayout(hole_start=0x10, hole_end=0x100)
        firmware = bytearray(0x40)
        firmware[0x0:0x2] = b"\x00\x01"

        assert compute_checksum(firmware, ChecksumSegment(0, 0, 0x3F), layout) == 1

    def test_word_past_end(self):
        with pytest.raises(OutOfBounds):
            compute_checksum(bytearray(0x10), ChecksumSegment(0, 0x8, 0xF + 1))


class TestReadSegmentTable:
    """Tests for read_segment_table."""

    def test_reads_used_slots(self):
        firmware = make_firmware(0x1000, [(0x0, 0x7FF), (0x0, 0x0), (0x800, 0xFFF)])
        segments = read_segment_table(firmware)

        assert [(s.index, s.start_address, s.end_address) for s in segments] == [
            (0, 0x0, 0x7FF),
            (2, 0x800, 0xFFF),
        ]
        assert segments[0].size == 0x800

    def test_invalid_bounds(self):
        firmware = make_firmware(0x1000, [(0x800, 0x800)])
        with pytest.raises(InvalidSegmentBounds):
            read_segment_table(firmware)

    def test_segment_too_small(self):
        firmware = make_firmware(0x1000, [(0x800, 0x1000)])
        with pytest.raises(SegmentTooSmall) as exc:
            read_segment_table(firmware)

        assert exc.value.index == 0

    def test_table_outside_firmware(self):
        with pytest.raises(OutOfBounds, match="Checksum table"):
            read_segment_table(bytearray(0x100))

    def test_compute_all(self):
        firmware = make_firmware(0x1000, [(0x800, 0xFFF)], fill=lambda i: 0)
        (segment,) = compute_all_checksums(firmware)

        assert segment.checksum == 0
        assert segment.is_valid


class TestRepairChecksums:
    """Tests for repair_checksums."""

    @pytest.fixture
    def firmware(self):
        return make_firmware(0x1000, [(0x0, 0x7FF), (0x800, 0xFFF)], SMALL_LAYOUT)

    def test_repair_zeroes_every_segment(self, firmware):
        before = compute_all_checksums(firmware, SMALL_LAYOUT)
        assert any(s.checksum for s in before)

        repaired = repair_checksums(firmware, SMALL_LAYOUT)

        assert all(s.checksum == 0 for s in repaired)
        assert all(s.checksum == 0 for s in compute_all_checksums(firmware, SMALL_LAYOUT))

    def test_only_correction_words_change(self, firmware):
        original = bytes(firmware)
        repair_checksums(firmware, SMALL_LAYOUT)

        changed = {i for i in range(len(firmware)) if firmware[i] != original[i]}
        assert changed <= {0x500, 0x501, 0x800, 0x801}
        assert len(firmware) == len(original)

    def test_idempotent(self, firmware):
        repair_checksums(firmware, SMALL_LAYOUT)
        once = bytes(firmware)

        repair_checksums(firmware, SMALL_LAYOUT)

        assert bytes(firmware) == once

    def test_default_layout_with_hole(self):
        firmware = make_firmware(0x20100, [(0x0, 0x200FF)])
        repair_checksums(firmware)

        (segment,) = compute_all_checksums(firmware)
        assert segment.checksum == 0

    def test_correction_in_hole(self):
        layout = ChecksumLayout(hole_start=0x800, hole_end=0x900)
        firmware = make_firmware(0x1000, [(0x800, 0x9FF)], layout)
        original = bytes(firmware)

        with pytest.raises(ChecksumRepairError) as exc:
            repair_checksums(firmware, layout)

        assert exc.value.correction_address == 0x800
        assert bytes(firmware) == original
