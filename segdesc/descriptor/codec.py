"""Encoding, decoding and interpretation of x86 segment descriptors."""

import logging
import struct
from dataclasses import dataclass
from typing import Self

from dataclasses_json import DataClassJsonMixin

from .types import (
    TYPE_ACCESSED,
    TYPE_CONFORMING,
    TYPE_EXECUTABLE,
    TYPE_EXPAND_DOWN,
    TYPE_NON_SYSTEM,
    TYPE_READABLE,
    TYPE_WRITABLE,
    Attributes,
    CodeAttributes,
    CodeSize,
    ConfigNote,
    DataAttributes,
    NotPresentAttributes,
    SegmentBounds,
    SegmentType,
    SystemAttributes,
)

log = logging.getLogger(__name__)

DESCRIPTOR_SIZE = 8

MAX_LIMIT = 0xFFFFF
MAX_BASE = 0xFFFF_FFFF
MAX_TYPE = 0b11111
MAX_RING = 0b11
MAX_VALUE = 0xFFFF_FFFF_FFFF_FFFF

PAGE_SIZE = 4096

# System subtypes that are not legal descriptors
INVALID_SYSTEM_SUBTYPES = frozenset([0, 4, 6, 7, 8, 10, 12, 13, 14, 15])
# System subtypes introduced with the 386
SYSTEM_SUBTYPES_386 = frozenset([9, 11, 12, 14, 15])


class DescriptorError(RuntimeError):
    """Raised when descriptor bytes cannot be unpacked."""


def _bit(value: int, bit: int) -> bool:
    return (value >> bit) & 1 == 1


@dataclass
class SegmentDescriptor(DataClassJsonMixin):
    """One 8-byte GDT/LDT segment descriptor.

    Fields are kept unpacked. ``encode`` masks each field to its width, so
    out-of-range values are truncated rather than rejected.
    """

    limit: int = 0
    base: int = 0
    type: int = 0
    ring: int = 0
    present: bool = False
    avl_bit: bool = False
    use32: bool = False
    use64: bool = False
    page_granularity: bool = False

    @classmethod
    def decode(cls, value: int) -> Self:
        """Unpack a descriptor from its 64-bit value."""
        return cls(
            limit=(value & 0xFFFF) | (((value >> 48) & 0xF) << 16),
            base=((value >> 16) & 0xFF_FFFF) | (((value >> 56) & 0xFF) << 24),
            type=(value >> 40) & MAX_TYPE,
            ring=(value >> 45) & MAX_RING,
            present=_bit(value, 47),
            avl_bit=_bit(value, 52),
            use64=_bit(value, 53),
            use32=_bit(value, 54),
            page_granularity=_bit(value, 55),
        )

    def encode(self) -> int:
        """Pack this descriptor into its 64-bit value."""
        if (
            self.limit > MAX_LIMIT
            or self.base > MAX_BASE
            or self.type > MAX_TYPE
            or self.ring > MAX_RING
        ):
            log.debug("Masking out-of-range fields of %r", self)

        result = self.limit & 0xFFFF
        result |= (self.base & 0xFF_FFFF) << 16
        result |= (self.type & MAX_TYPE) << 40
        result |= (self.ring & MAX_RING) << 45
        result |= int(self.present) << 47
        result |= ((self.limit >> 16) & 0xF) << 48
        result |= int(self.avl_bit) << 52
        result |= int(self.use64) << 53
        result |= int(self.use32) << 54
        result |= int(self.page_granularity) << 55
        result |= ((self.base >> 24) & 0xFF) << 56
        return result

    def pack(self) -> bytes:
        """Pack this descriptor to its in-memory byte order."""
        return struct.pack("<Q", self.encode())

    @classmethod
    def unpack(cls, data: bytes | memoryview, offset: int = 0) -> tuple[Self, int]:
        """Unpack a descriptor from bytes.

        Args:
            data: The bytes to unpack from.
            offset: Starting offset in data.

        Returns:
            Tuple of (descriptor, bytes_consumed).
        """
        if len(data) - offset < DESCRIPTOR_SIZE:
            raise DescriptorError(
                f"Descriptor needs {DESCRIPTOR_SIZE} bytes, got {max(len(data) - offset, 0)}"
            )
        (value,) = struct.unpack_from("<Q", data, offset)
        return cls.decode(value), DESCRIPTOR_SIZE

    def classify(self) -> SegmentType:
        if not self.present:
            return SegmentType.NOT_PRESENT
        if not self.type & TYPE_NON_SYSTEM:
            return SegmentType.SYSTEM
        return SegmentType.CODE if self.type & TYPE_EXECUTABLE else SegmentType.DATA

    def attributes_of(self) -> Attributes:
        """Decode the type field according to the segment's classification."""
        segment_type = self.classify()
        if segment_type == SegmentType.NOT_PRESENT:
            return NotPresentAttributes()
        if segment_type == SegmentType.SYSTEM:
            return SystemAttributes(subtype=self.type & 0xF)
        if segment_type == SegmentType.CODE:
            return CodeAttributes(
                accessed=bool(self.type & TYPE_ACCESSED),
                readable=bool(self.type & TYPE_READABLE),
                conforming=bool(self.type & TYPE_CONFORMING),
            )
        return DataAttributes(
            accessed=bool(self.type & TYPE_ACCESSED),
            writable=bool(self.type & TYPE_WRITABLE),
            expand_down=bool(self.type & TYPE_EXPAND_DOWN),
        )

    def is_expand_down(self) -> bool:
        attributes = self.attributes_of()
        return isinstance(attributes, DataAttributes) and attributes.expand_down

    def code_size(self) -> CodeSize | None:
        """Default operand size, or None if undefined or invalid."""
        segment_type = self.classify()
        if segment_type == SegmentType.CODE:
            if self.use32 and self.use64:
                return None
            if self.use64:
                return 64
            return 32 if self.use32 else 16
        if segment_type == SegmentType.DATA:
            if self.use64:
                return None
            return 32 if self.use32 else 16
        return None

    def change_type(self, target: SegmentType) -> None:
        """Reset this descriptor to a canonical descriptor of the target type.

        Does nothing if the descriptor already has that type.
        """
        current = self.classify()
        if target == current:
            return

        log.debug("Changing descriptor type %s -> %s", current, target)
        if target == SegmentType.NOT_PRESENT:
            self.present = False
            self.base = 0
            self.limit = 0
            self.type = 0
            self.ring = 0
            self.avl_bit = False
            self.use64 = False
            self.use32 = False
            self.page_granularity = False
        elif target == SegmentType.SYSTEM:
            self.present = True
            self.type = 0b00001
            self.use32 = False
            self.use64 = False
        elif target == SegmentType.CODE:
            self.present = True
            self.type = TYPE_NON_SYSTEM | TYPE_EXECUTABLE
        elif target == SegmentType.DATA:
            self.present = True
            self.type = TYPE_NON_SYSTEM
            self.use64 = False

    def configuration_notes(self) -> list[ConfigNote]:
        """Legality notes followed by the minimum CPU, in display order."""
        notes: list[ConfigNote] = []

        min_cpu: ConfigNote | None = ConfigNote.COMPAT_286
        if (
            self.limit >> 16 != 0
            or self.avl_bit
            or self.use64
            or self.use32
            or self.page_granularity
            or self.base >> 24 != 0
        ):
            min_cpu = ConfigNote.COMPAT_386

        segment_type = self.classify()
        if segment_type == SegmentType.SYSTEM:
            if self.use64 or self.use32:
                notes.append(ConfigNote.RESERVED)

            subtype = self.type & 0xF
            if subtype in INVALID_SYSTEM_SUBTYPES:
                notes.append(ConfigNote.INVALID)
                min_cpu = None
            elif subtype in SYSTEM_SUBTYPES_386:
                min_cpu = ConfigNote.COMPAT_386
        elif segment_type == SegmentType.CODE:
            size = self.code_size()
            if size is None:
                notes.append(ConfigNote.INVALID)
                min_cpu = None
            elif size == 64:
                min_cpu = ConfigNote.COMPAT_X86_64
                if self.base != 0 or self.limit != 0:
                    notes.append(ConfigNote.RESERVED)
        elif segment_type == SegmentType.DATA:
            if self.use64:
                notes.append(ConfigNote.RESERVED)
                min_cpu = None

        if min_cpu is not None:
            notes.append(min_cpu)
        return notes

    def clear_all_reserved(self) -> None:
        """Zero the fields that have no meaning for the current type."""
        segment_type = self.classify()
        if segment_type == SegmentType.SYSTEM:
            self.use64 = False
            self.use32 = False
        elif segment_type == SegmentType.CODE:
            # Base and limit are reserved in 64-bit mode. The granularity and
            # attribute bits are documented as still present, so they stay.
            if self.code_size() == 64:
                self.base = 0
                self.limit = 0
        elif segment_type == SegmentType.DATA:
            self.use64 = False
        else:
            return
        log.debug("Cleared reserved fields of %s descriptor", segment_type)

    def segment_bounds(self) -> SegmentBounds:
        unit_size = PAGE_SIZE if self.page_granularity else 1
        top_address = 0xFFFF_FFFF if self.use32 else 0xFFFF

        if self.is_expand_down():
            internal_min = (self.limit + 1) * unit_size
            size = top_address - internal_min + 1
            linear_max = self.base + size - 1
            return SegmentBounds(
                overflow=linear_max > MAX_BASE,
                size=size,
                internal_min=internal_min,
                internal_max=top_address,
                linear_min=self.base,
                linear_max=_clamp(linear_max, 0, MAX_BASE),
            )

        adjusted_limit = self.limit * unit_size
        internal_max = adjusted_limit + (PAGE_SIZE - 1 if self.page_granularity else 0)
        linear_max = self.base + internal_max
        return SegmentBounds(
            overflow=linear_max > MAX_BASE,
            size=adjusted_limit - 1,
            internal_min=0,
            internal_max=internal_max,
            linear_min=self.base,
            linear_max=_clamp(linear_max, 0, MAX_BASE),
        )


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def decode(value: int) -> SegmentDescriptor:
    """Decode a 64-bit value into a new descriptor."""
    return SegmentDescriptor.decode(value)


def encode(descriptor: SegmentDescriptor) -> int:
    """Encode a descriptor into its 64-bit value."""
    return descriptor.encode()
