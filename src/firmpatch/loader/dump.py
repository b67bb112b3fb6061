"""Hex section dump parsing.

Turns ``objdump -s`` style text into a sparse address -> byte map::

     a0000 1900028d 028d028d 028d028d 038d048d  ................
     a0010 048d058d 058d058d 058d058d 058d058d  ................
     a0020 1234                                 .4

The map never fills gaps: an address that no line covers is simply absent.
"""

import re
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)

AddressByteMap = dict[int, int]

_LINE_RE = re.compile(r"^([0-9a-fA-F]+)\s+(.+)$")
_GUTTER_RE = re.compile(r"\s{2,}.*$")
_HEX_GROUP_RE = re.compile(r"^[0-9a-fA-F]+$")


def extract_hex_bytes(hex_data: str) -> bytes:
    """Decode the hex groups of one dump line, ignoring the ASCII gutter.

    Each whitespace-separated group is read two digits at a time; a trailing
    odd digit is discarded.
    """
    data_only = _GUTTER_RE.sub("", hex_data)
    out = bytearray()
    for group in data_only.split():
        if not _HEX_GROUP_RE.match(group):
            continue
        even = len(group) - (len(group) % 2)
        out += bytes.fromhex(group[:even])
    return bytes(out)


def parse_section_dump(dump: str, into: AddressByteMap | None = None) -> AddressByteMap:
    """Parse one section's dump text into an address -> byte map.

    Args:
        dump: Dump text, one ``<address> <hex groups> [gutter]`` per line
        into: Existing map to extend (later bytes overwrite earlier ones)

    Returns:
        The populated map
    """
    address_bytes = {} if into is None else into

    for line in dump.splitlines():
        line = line.strip()
        if not line or line[0] not in "0123456789abcdefABCDEF":
            continue

        match = _LINE_RE.match(line)
        if not match:
            continue

        base = int(match.group(1), 16)
        for offset, value in enumerate(extract_hex_bytes(match.group(2))):
            address_bytes[base + offset] = value

    return address_bytes


def parse_section_dumps(dumps: Mapping[str, str]) -> AddressByteMap:
    """Combine all section dumps into a single address -> byte map."""
    address_bytes: AddressByteMap = {}
    for name, text in dumps.items():
        before = len(address_bytes)
        parse_section_dump(text, address_bytes)
        logger.debug("Parsed section %s: %d new bytes", name, len(address_bytes) - before)
    return address_bytes
