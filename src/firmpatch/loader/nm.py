"""Parser for ``nm -n`` symbol listings."""

from firmpatch.loader.symbols import Symbol, SymbolType


def parse_nm_output(output: str) -> list[Symbol]:
    """Parse nm output lines of the form ``<hex address> <type> <name>``.

    Lines without an address (undefined symbols) or that do not parse are
    skipped. The result is sorted by address.
    """
    symbols: list[Symbol] = []

    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        try:
            address = int(parts[0], 16)
        except ValueError:
            continue
        symbols.append(Symbol(parts[2], address, SymbolType.from_nm(parts[1])))

    symbols.sort(key=lambda s: s.address)
    return symbols
