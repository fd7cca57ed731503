"""Command-line interface for decoding and encoding segment descriptors."""

from __future__ import annotations

import json
import logging
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from segdesc.descriptor import (
    CodeAttributes,
    DataAttributes,
    SegmentBounds,
    SegmentDescriptor,
    SegmentType,
    SystemAttributes,
)
from segdesc.descriptor.codec import MAX_BASE, MAX_LIMIT, MAX_RING, MAX_TYPE, MAX_VALUE
from segdesc.numbers import format_bits, format_bytes, format_hex32, parse_bytes, parse_number
from segdesc.presets import PRESETS, get_preset

SEGMENT_TYPES = [segment_type.value for segment_type in SegmentType]


class NumberParamType(click.ParamType):
    """A number in any parse_number syntax, bounded by ``maximum``."""

    name = "number"

    def __init__(self, maximum: int) -> None:
        self.maximum = maximum

    def convert(
        self, value: Any, param: click.Parameter | None, ctx: click.Context | None
    ) -> int:
        if isinstance(value, int):
            number: int | None = value
        else:
            number = parse_number(value)
        if number is None:
            self.fail(f"{value!r} is not a valid number", param, ctx)
        if number > self.maximum:
            self.fail(f"{value} is larger than {self.maximum:#x}", param, ctx)
        return number


@click.group(context_settings={"auto_envvar_prefix": "SEGDESC"})
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """x86 segment descriptor decoder and encoder."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(value: int | None, raw_bytes: str | None) -> SegmentDescriptor:
    if raw_bytes is not None:
        parsed = parse_bytes(raw_bytes)
        if parsed is None:
            raise click.BadParameter(
                "expected 8 hex bytes, e.g. 'ff ff 00 00 00 9a cf 00'", param_hint="--bytes"
            )
        return SegmentDescriptor.decode(parsed)
    if value is None:
        raise click.UsageError("Provide a VALUE or --bytes")
    return SegmentDescriptor.decode(value)


@cli.command()
@click.argument("value", type=NumberParamType(MAX_VALUE), required=False)
@click.option(
    "--bytes",
    "raw_bytes",
    envvar="SEGDESC_DECODE_BYTES",
    help="Descriptor as 8 hex bytes in memory order",
)
@click.option(
    "--json", "output_json", is_flag=True, envvar="SEGDESC_DECODE_JSON", help="Output as JSON"
)
def decode(value: int | None, raw_bytes: str | None, output_json: bool) -> None:
    """Decode a descriptor and show its fields, bounds and notes."""
    descriptor = _load(value, raw_bytes)
    if output_json:
        _output_json(descriptor)
    else:
        _output_plain(descriptor)


@cli.command()
@click.option("--base", type=NumberParamType(MAX_BASE), default=0, help="Segment base")
@click.option("--limit", type=NumberParamType(MAX_LIMIT), default=0, help="Raw segment limit")
@click.option(
    "--type",
    "type_",
    type=NumberParamType(MAX_TYPE),
    default=0,
    envvar="SEGDESC_ENCODE_TYPE",
    help="5-bit type",
)
@click.option("--ring", type=NumberParamType(MAX_RING), default=0, help="Privilege level")
@click.option("--present/--not-present", default=True, help="Segment present flag")
@click.option("--avl", is_flag=True, help="Software-available bit")
@click.option("--use32", is_flag=True, help="32-bit default size (D/B)")
@click.option("--use64", is_flag=True, help="Long mode code (L)")
@click.option(
    "--granularity", type=click.Choice(["byte", "page"]), default="byte", help="Limit unit"
)
def encode(
    base: int,
    limit: int,
    type_: int,
    ring: int,
    present: bool,
    avl: bool,
    use32: bool,
    use64: bool,
    granularity: str,
) -> None:
    """Encode descriptor fields into a 64-bit value."""
    descriptor = SegmentDescriptor(
        limit=limit,
        base=base,
        type=type_,
        ring=ring,
        present=present,
        avl_bit=avl,
        use32=use32,
        use64=use64,
        page_granularity=granularity == "page",
    )
    _output_value(descriptor)


@cli.command("change-type")
@click.argument("value", type=NumberParamType(MAX_VALUE))
@click.argument("segment_type", type=click.Choice(SEGMENT_TYPES))
def change_type(value: int, segment_type: str) -> None:
    """Reset a descriptor to a canonical descriptor of another type."""
    descriptor = SegmentDescriptor.decode(value)
    descriptor.change_type(SegmentType(segment_type))
    _output_value(descriptor)


@cli.command("clear-reserved")
@click.argument("value", type=NumberParamType(MAX_VALUE))
def clear_reserved(value: int) -> None:
    """Zero the fields a descriptor's type reserves."""
    descriptor = SegmentDescriptor.decode(value)
    descriptor.clear_all_reserved()
    _output_value(descriptor)


@cli.command()
def presets() -> None:
    """List the built-in presets."""
    console = Console()
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Name", style="white")
    table.add_column("Value", style="yellow")
    table.add_column("Description", style="dim")

    for preset in PRESETS.values():
        table.add_row(preset.name, f"{preset.value:#018x}", preset.description)

    console.print(table)


@cli.command()
@click.argument("name")
@click.option(
    "--json", "output_json", is_flag=True, envvar="SEGDESC_PRESET_JSON", help="Output as JSON"
)
def preset(name: str, output_json: bool) -> None:
    """Decode a built-in preset."""
    try:
        descriptor = get_preset(name).descriptor()
    except KeyError as e:
        raise click.ClickException(f"Unknown preset: {name}") from e

    if output_json:
        _output_json(descriptor)
    else:
        _output_plain(descriptor)


def _output_value(descriptor: SegmentDescriptor) -> None:
    value = descriptor.encode()
    click.echo(f"{value:#018x}")
    click.echo(format_bytes(value))
    click.echo(format_bits(value))


def _output_json(descriptor: SegmentDescriptor) -> None:
    """Output descriptor info as JSON."""
    value = descriptor.encode()
    data: dict = {
        "value": f"{value:#018x}",
        "bytes": format_bytes(value),
        "fields": descriptor.to_dict(),
        "segment_type": descriptor.classify().value,
        "attributes": descriptor.attributes_of().to_dict(),
        "code_size": descriptor.code_size(),
        "bounds": None,
        "notes": [note.value for note in descriptor.configuration_notes()],
    }
    if descriptor.classify() != SegmentType.NOT_PRESENT:
        data["bounds"] = descriptor.segment_bounds().to_dict()

    click.echo(json.dumps(data, indent=2))


def _describe_pages(bounds: SegmentBounds, base: int) -> str:
    full_pages = bounds.full_pages
    if full_pages == 0 and not bounds.has_partial_page:
        message = "no pages"
    elif full_pages == 0:
        message = "1 partial page"
    else:
        message = f"{full_pages} page{'s' if full_pages != 1 else ''}"
        if bounds.has_partial_page:
            message += " and 1 partial page"
    if base & 0xFFF:
        message += " (base is not page aligned)"
    return message


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def _output_plain(descriptor: SegmentDescriptor) -> None:
    """Output descriptor info using rich text formatting."""
    console = Console()
    value = descriptor.encode()
    segment_type = descriptor.classify()

    console.print("[bold cyan]Descriptor[/bold cyan]")
    table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
    table.add_column("Label", style="dim")
    table.add_column("Value", style="white")

    table.add_row("Value", f"{value:#018x}")
    table.add_row("Bytes", format_bytes(value))
    table.add_row("Type", segment_type.value)
    table.add_row("Present", _flag(descriptor.present))
    if segment_type != SegmentType.NOT_PRESENT:
        table.add_row("Base", f"0x{format_hex32(descriptor.base)}")
        table.add_row("Limit", f"{descriptor.limit:#x}")
        table.add_row("Granularity", "page" if descriptor.page_granularity else "byte")
        table.add_row("Ring", str(descriptor.ring))
        table.add_row("AVL", _flag(descriptor.avl_bit))

    attributes = descriptor.attributes_of()
    if isinstance(attributes, SystemAttributes):
        table.add_row("Subtype", f"{attributes.subtype:#x}")
    elif isinstance(attributes, CodeAttributes):
        table.add_row("Accessed", _flag(attributes.accessed))
        table.add_row("Readable", _flag(attributes.readable))
        table.add_row("Conforming", _flag(attributes.conforming))
    elif isinstance(attributes, DataAttributes):
        table.add_row("Accessed", _flag(attributes.accessed))
        table.add_row("Writable", _flag(attributes.writable))
        table.add_row("Expand down", _flag(attributes.expand_down))

    if segment_type in (SegmentType.CODE, SegmentType.DATA):
        code_size = descriptor.code_size()
        table.add_row("Size", "invalid" if code_size is None else f"{code_size}-bit")

    console.print(table)
    console.print()

    if segment_type != SegmentType.NOT_PRESENT and descriptor.code_size() != 64:
        bounds = descriptor.segment_bounds()
        console.print("[bold cyan]Bounds[/bold cyan]")
        bounds_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
        bounds_table.add_column("Label", style="dim")
        bounds_table.add_column("Value", style="white")

        if bounds.is_degenerate:
            bounds_table.add_row("Range", "[red]empty[/red]")
        else:
            overflow = " [red](overflows!)[/red]" if bounds.overflow else ""
            bounds_table.add_row(
                "Offsets",
                f"0x{format_hex32(bounds.internal_min)} - 0x{format_hex32(bounds.internal_max)}",
            )
            bounds_table.add_row(
                "Linear",
                f"0x{format_hex32(bounds.linear_min)} - "
                f"0x{format_hex32(bounds.linear_max)}{overflow}",
            )
            bounds_table.add_row(
                "Size", f"{bounds.size} byte{'s' if bounds.size != 1 else ''}"
            )
            bounds_table.add_row("Pages", _describe_pages(bounds, descriptor.base))

        console.print(bounds_table)
        console.print()

    notes = descriptor.configuration_notes()
    console.print("[bold cyan]Notes[/bold cyan]")
    console.print("  " + (", ".join(note.value for note in notes) if notes else "none"))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
