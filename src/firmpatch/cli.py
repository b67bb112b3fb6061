"""Command-line interface for Firmpatch."""

import sys
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel

from firmpatch.errors import FirmpatchError

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _toolchain(ctx: click.Context, path: str | None, prefix: str, cpu: str):
    """Toolchain from the context object, else a GNU toolchain."""
    from firmpatch.toolchain import GnuToolchain

    if ctx.obj and ctx.obj.get("toolchain") is not None:
        return ctx.obj["toolchain"]
    return GnuToolchain(path=Path(path) if path else None, prefix=prefix, cpu=cpu)


def _patch_table(patches, title: str = "Patches") -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Target", style="green")
    table.add_column("Size")
    table.add_column("Source Range")

    for patch in sorted(patches, key=lambda p: p.target_address):
        table.add_row(
            patch.name,
            f"0x{patch.target_address:08X}",
            str(patch.size),
            f"0x{patch.start_address:08X}-0x{patch.end_address:08X}",
        )
    return table


def _segment_table(segments) -> Table:
    table = Table(title="Checksum Segments")
    table.add_column("Index")
    table.add_column("Start", style="green")
    table.add_column("End", style="green")
    table.add_column("Size")
    table.add_column("Checksum")

    for seg in segments:
        style = "green" if seg.is_valid else "red"
        table.add_row(
            str(seg.index),
            f"0x{seg.start_address:08X}",
            f"0x{seg.end_address:08X}",
            str(seg.size),
            f"[{style}]0x{seg.checksum:04X}[/{style}]",
        )
    return table


toolchain_options = [
    click.option("-t", "--toolchain", "toolchain_path", type=click.Path(file_okay=False), help="Toolchain directory (default: PATH)"),
    click.option("--prefix", default="m68k-elf-", show_default=True, help="Tool name prefix"),
    click.option("--cpu", default="cpu32", show_default=True, help="Assembler -mcpu value"),
]


def with_toolchain_options(func):
    for option in reversed(toolchain_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Firmpatch - assemble patches into checksummed firmware images."""
    ctx.ensure_object(dict)
    _setup_logging(verbose)
    ctx.obj["verbose"] = verbose


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("firmware", type=click.Path(exists=True, dir_okay=False))
@click.argument("output", type=click.Path(dir_okay=False))
@with_toolchain_options
@click.option("--verify/--no-verify", default=True, show_default=True, help="Verify patches after application")
@click.option("--backup/--no-backup", default=True, show_default=True, help="Create backup of original firmware")
@click.option("-r", "--report", type=click.Path(dir_okay=False), help="Write a patch report file")
@click.pass_context
def apply(
    ctx: click.Context,
    source: str,
    firmware: str,
    output: str,
    toolchain_path: str | None,
    prefix: str,
    cpu: str,
    verify: bool,
    backup: bool,
    report: str | None,
) -> None:
    """Assemble SOURCE and patch FIRMWARE into OUTPUT."""
    from firmpatch import Patcher
    from firmpatch.toolchain import GnuToolchain
    from firmpatch.arch.m68k import M68KDisassembler

    console.print(Panel.fit(f"[bold]{Path(source).name}[/bold] -> {Path(output).name}", title="Firmpatch"))

    toolchain = _toolchain(ctx, toolchain_path, prefix, cpu)
    patcher = Patcher(toolchain)
    verbose = ctx.obj.get("verbose", False)

    try:
        if isinstance(toolchain, GnuToolchain):
            toolchain.check()
        result = patcher.run(
            source,
            firmware,
            output,
            verify=verify,
            backup=backup,
            report=report,
            disassembler=M68KDisassembler() if report else None,
        )
    except FirmpatchError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(_patch_table(result.patches))
    console.print(_segment_table(result.segments))

    if verbose and result.elf is not None:
        console.print(toolchain.disassemble(result.elf), markup=False, highlight=False)

    if result.verified is False:
        console.print("[red]Patch verification failed[/red]")
        sys.exit(1)

    console.print(f"[bold green]Applied {len(result.patches)} patches[/bold green], output written to {result.output}")


@main.command()
@click.argument("firmware", type=click.Path(exists=True, dir_okay=False))
def checksums(firmware: str) -> None:
    """Show the checksum segment table of FIRMWARE."""
    from firmpatch.checksum import compute_all_checksums
    from firmpatch.firmware import load_firmware

    try:
        segments = compute_all_checksums(load_firmware(firmware))
    except FirmpatchError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(_segment_table(segments))
    bad = [s for s in segments if not s.is_valid]
    if bad:
        console.print(f"[red]{len(bad)} segment(s) with invalid checksum[/red]")
        sys.exit(1)
    console.print(f"All {len(segments)} segments valid")


@main.command("fix-checksums")
@click.argument("firmware", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file (default: in place)")
def fix_checksums(firmware: str, output: str | None) -> None:
    """Repair the checksum correction words of FIRMWARE."""
    from firmpatch.checksum import repair_checksums
    from firmpatch.firmware import save_firmware, load_firmware

    data = load_firmware(firmware)
    try:
        segments = repair_checksums(data)
    except FirmpatchError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    path = save_firmware(data, output or firmware)
    console.print(_segment_table(segments))
    console.print(f"Wrote repaired firmware to {path}")


@main.command()
@click.argument("elf", type=click.Path(exists=True, dir_okay=False))
@with_toolchain_options
@click.option("-d", "--disasm", is_flag=True, help="Disassemble each patch")
@click.pass_context
def patches(
    ctx: click.Context,
    elf: str,
    toolchain_path: str | None,
    prefix: str,
    cpu: str,
    disasm: bool,
) -> None:
    """List patch sections of an assembled ELF."""
    from firmpatch import prepare_patches
    from firmpatch.arch.m68k import M68KDisassembler

    toolchain = _toolchain(ctx, toolchain_path, prefix, cpu)
    try:
        found = prepare_patches(toolchain.dump_symbols(Path(elf)), toolchain.dump_sections(Path(elf)))
    except FirmpatchError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(_patch_table(found))

    if disasm:
        disassembler = M68KDisassembler()
        for patch in found:
            console.print(f"\n[bold]{patch.name}[/bold] @ 0x{patch.target_address:08X}")
            for insn in disassembler.disassemble(patch.data, patch.target_address):
                style = "dim" if insn.is_data else "white"
                console.print(f"  [{style}]{insn}[/{style}]", highlight=False)


@main.command()
@click.argument("elf", type=click.Path(exists=True, dir_okay=False))
@with_toolchain_options
@click.pass_context
def symbols(ctx: click.Context, elf: str, toolchain_path: str | None, prefix: str, cpu: str) -> None:
    """List symbols in an assembled ELF."""
    from firmpatch.loader.symbols import SymbolType

    toolchain = _toolchain(ctx, toolchain_path, prefix, cpu)
    try:
        syms = toolchain.dump_symbols(Path(elf))
    except FirmpatchError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    table = Table(title="Symbols")
    table.add_column("Address", style="green")
    table.add_column("Type", style="cyan")
    table.add_column("Name")

    for sym in syms:
        type_style = {
            SymbolType.TEXT: "green",
            SymbolType.DATA: "yellow",
            SymbolType.UNDEFINED: "red",
        }.get(sym.symbol_type, "white")

        table.add_row(
            f"0x{sym.address:08X}",
            f"[{type_style}]{sym.symbol_type.name}[/{type_style}]",
            sym.name,
        )

    console.print(table)


if __name__ == "__main__":
    main()
