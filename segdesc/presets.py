"""Well-known segment descriptors."""

from dataclasses import dataclass

from .descriptor.codec import SegmentDescriptor


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    value: int

    def descriptor(self) -> SegmentDescriptor:
        return SegmentDescriptor.decode(self.value)


PRESETS: dict[str, Preset] = {
    preset.name: preset
    for preset in [
        Preset("null", "Null descriptor (GDT entry 0)", 0x0000000000000000),
        Preset("kernel-code32", "Flat 4 GiB ring 0 code, 32-bit", 0x00CF9A000000FFFF),
        Preset("kernel-data32", "Flat 4 GiB ring 0 data, 32-bit", 0x00CF92000000FFFF),
        Preset("user-code32", "Flat 4 GiB ring 3 code, 32-bit", 0x00CFFA000000FFFF),
        Preset("user-data32", "Flat 4 GiB ring 3 data, 32-bit", 0x00CFF2000000FFFF),
        Preset("kernel-code64", "Ring 0 long mode code", 0x00209A0000000000),
        Preset("user-code64", "Ring 3 long mode code", 0x0020FA0000000000),
        Preset("code16", "64 KiB ring 0 code, 16-bit", 0x00009A000000FFFF),
        Preset("data16", "64 KiB ring 0 data, 16-bit", 0x000092000000FFFF),
        Preset("tss32", "Available 32-bit TSS, 104 bytes", 0x0000890000000067),
        Preset("ldt", "Local descriptor table, 8 entries", 0x000082000000003F),
    ]
}


def preset_names() -> list[str]:
    return list(PRESETS)


def get_preset(name: str) -> Preset:
    """Look up a preset by name. Raises KeyError if there is none."""
    return PRESETS[name]
