"""Symbol table handling."""

from bisect import insort, bisect_left, bisect_right
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import IntEnum, auto


class SymbolType(IntEnum):
    """Symbol type classification, from the nm type letter."""

    UNKNOWN = auto()
    TEXT = auto()  # T/t
    DATA = auto()  # D/d
    BSS = auto()  # B/b
    ABSOLUTE = auto()  # A/a
    UNDEFINED = auto()  # U

    @classmethod
    def from_nm(cls, letter: str) -> "SymbolType":
        return _NM_TYPES.get(letter.upper(), cls.UNKNOWN)


_NM_TYPES = {
    "T": SymbolType.TEXT,
    "D": SymbolType.DATA,
    "B": SymbolType.BSS,
    "A": SymbolType.ABSOLUTE,
    "U": SymbolType.UNDEFINED,
}


@dataclass(frozen=True)
class Symbol:
    """Represents a symbol from the assembled object."""

    name: str
    address: int
    symbol_type: SymbolType = SymbolType.UNKNOWN

    def __repr__(self) -> str:
        return f"Symbol({self.name!r}, {self.address:#x}, {self.symbol_type.name.lower()})"

    def __str__(self) -> str:
        return f"{self.address:08X} {self.symbol_type.name.title()} {self.name}"


def _address(symbol: Symbol) -> int:
    return symbol.address


class SymbolTable:
    """Manages symbol lookup by name and by address.

    Symbols are kept sorted by address (stable for equal addresses), so range
    queries are answered with a binary search over the address index.
    """

    def __init__(self, symbols: Iterable[Symbol] = ()) -> None:
        self._by_name: dict[str, Symbol] = {}
        self._named: dict[str, list[Symbol]] = {}
        self._all: list[Symbol] = []
        self._addresses: list[int] = []
        for symbol in symbols:
            self.add(symbol)

    def add(self, symbol: Symbol) -> None:
        """Add a symbol to the table."""
        # First definition of a name wins for by_name lookups
        self._by_name.setdefault(symbol.name, symbol)
        insort(self._named.setdefault(symbol.name, []), symbol, key=_address)
        pos = bisect_right(self._addresses, symbol.address)
        self._addresses.insert(pos, symbol.address)
        self._all.insert(pos, symbol)

    def by_name(self, name: str) -> Symbol | None:
        """Look up symbol by name."""
        return self._by_name.get(name)

    def by_address(self, address: int) -> list[Symbol]:
        """Get all symbols at an address."""
        lo = bisect_left(self._addresses, address)
        hi = bisect_right(self._addresses, address)
        return self._all[lo:hi]

    def all_by_name(self, name: str) -> list[Symbol]:
        """Get every symbol with this name, in address order."""
        return list(self._named.get(name, ()))

    def next_named(self, name: str, address: int) -> Symbol | None:
        """Find the first symbol with this name at an address strictly after address."""
        named = self._named.get(name, [])
        pos = bisect_right(named, address, key=_address)
        if pos < len(named):
            return named[pos]
        return None

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._all)

    def __len__(self) -> int:
        return len(self._all)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name
