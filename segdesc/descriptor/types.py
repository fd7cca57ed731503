"""Type definitions for decoded segment descriptors.

These dataclasses describe the derived, read-only views of a descriptor:
its classification, per-type attributes, configuration notes and bounds.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Literal

from dataclasses_json import DataClassJsonMixin

__all__ = [
    "TYPE_ACCESSED",
    "TYPE_READABLE",
    "TYPE_WRITABLE",
    "TYPE_CONFORMING",
    "TYPE_EXPAND_DOWN",
    "TYPE_EXECUTABLE",
    "TYPE_NON_SYSTEM",
    "Attributes",
    "CodeAttributes",
    "CodeSize",
    "ConfigNote",
    "DataAttributes",
    "NotPresentAttributes",
    "SegmentBounds",
    "SegmentType",
    "SystemAttributes",
]

CodeSize = Literal[16, 32, 64]

# Type field bits (XCRA for code, XEWA for data)
TYPE_ACCESSED = 0b00001
TYPE_READABLE = 0b00010  # Code
TYPE_WRITABLE = 0b00010  # Data
TYPE_CONFORMING = 0b00100  # Code
TYPE_EXPAND_DOWN = 0b00100  # Data
TYPE_EXECUTABLE = 0b01000
TYPE_NON_SYSTEM = 0b10000


class SegmentType(StrEnum):
    """Classification of a descriptor."""

    NOT_PRESENT = "notPresent"
    SYSTEM = "system"
    CODE = "code"
    DATA = "data"


class ConfigNote(StrEnum):
    """Notes about the legality and CPU requirements of a descriptor."""

    RESERVED = "reserved"  # A bit is set that hardware ignores or forbids here
    INVALID = "invalid"  # Not a legal descriptor at all
    COMPAT_286 = "286-compat"
    COMPAT_386 = "386-compat"
    COMPAT_X86_64 = "x86-64-compat"


@dataclass(frozen=True)
class NotPresentAttributes(DataClassJsonMixin):
    """A not-present descriptor carries no attributes."""

    kind: ClassVar[SegmentType] = SegmentType.NOT_PRESENT


@dataclass(frozen=True)
class SystemAttributes(DataClassJsonMixin):
    """Attributes of a system descriptor (TSS, LDT, gates)."""

    kind: ClassVar[SegmentType] = SegmentType.SYSTEM

    subtype: int


@dataclass(frozen=True)
class CodeAttributes(DataClassJsonMixin):
    kind: ClassVar[SegmentType] = SegmentType.CODE

    accessed: bool
    readable: bool
    conforming: bool


@dataclass(frozen=True)
class DataAttributes(DataClassJsonMixin):
    kind: ClassVar[SegmentType] = SegmentType.DATA

    accessed: bool
    writable: bool
    expand_down: bool


Attributes = NotPresentAttributes | SystemAttributes | CodeAttributes | DataAttributes


@dataclass(frozen=True)
class SegmentBounds(DataClassJsonMixin):
    """Address range covered by a segment.

    All values are exact; nothing is wrapped to 32 bits. The linear range is
    clamped to the 32-bit address space and ``overflow`` records whether the
    unclamped end went past it.
    """

    overflow: bool
    size: int
    internal_min: int
    internal_max: int
    linear_min: int
    linear_max: int

    @property
    def is_degenerate(self) -> bool:
        """True when the offset range is inverted."""
        return self.internal_max < self.internal_min

    @property
    def full_pages(self) -> int:
        return max(self.size, 0) // 4096

    @property
    def has_partial_page(self) -> bool:
        return max(self.size, 0) % 4096 != 0
