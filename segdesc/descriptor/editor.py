"""Edit session over a segment descriptor.

The editor never mutates descriptors in place. Every edit takes an
``EditorState`` and returns a new one, so callers can keep the previous
state around for undo or comparison:

    state = initial_state()
    state = set_base(state, "0x1000")
    state = set_segment_type(state, SegmentType.DATA)
    state.current.encode()

``saved`` holds the descriptor to restore when the present flag is turned
back on after being cleared.
"""

from collections.abc import Callable
from copy import copy
from dataclasses import dataclass, field, replace

from ..numbers import parse_number
from .codec import MAX_BASE, MAX_LIMIT, MAX_RING, MAX_TYPE, MAX_VALUE, SegmentDescriptor
from .types import (
    TYPE_ACCESSED,
    TYPE_CONFORMING,
    TYPE_EXPAND_DOWN,
    TYPE_READABLE,
    TYPE_WRITABLE,
    SegmentType,
)

DEFAULT_VALUE = 0x00CF9A000000FFFF

TYPE_FLAGS = frozenset(
    [TYPE_ACCESSED, TYPE_READABLE, TYPE_WRITABLE, TYPE_CONFORMING, TYPE_EXPAND_DOWN]
)


class EditError(RuntimeError):
    """Raised when an edit cannot be applied."""


class MalformedValueError(EditError):
    """Raised when a number cannot be parsed."""


class ValueTooLargeError(EditError):
    """Raised when a number does not fit the field it is written to."""


@dataclass(frozen=True)
class EditorState:
    """The descriptor being edited plus the one saved while it is absent."""

    current: SegmentDescriptor = field(default_factory=SegmentDescriptor)
    saved: SegmentDescriptor = field(default_factory=SegmentDescriptor)


def initial_state(value: int = DEFAULT_VALUE) -> EditorState:
    return EditorState(
        current=SegmentDescriptor.decode(value), saved=SegmentDescriptor.decode(value)
    )


def _edit(state: EditorState, mutate: Callable[[SegmentDescriptor], None]) -> EditorState:
    descriptor = copy(state.current)
    mutate(descriptor)
    return replace(state, current=descriptor)


def _parse_field(name: str, text: str, maximum: int) -> int:
    value = parse_number(text)
    if value is None:
        raise MalformedValueError(f"Malformed {name}: {text!r}")
    if value > maximum:
        raise ValueTooLargeError(f"{name} {value:#x} is larger than {maximum:#x}")
    return value


def load_value(state: EditorState, value: int) -> EditorState:
    """Replace both slots with a decoded 64-bit value."""
    if value < 0 or value > MAX_VALUE:
        raise ValueTooLargeError(f"{value:#x} is not a 64-bit value")
    return EditorState(
        current=SegmentDescriptor.decode(value), saved=SegmentDescriptor.decode(value)
    )


def set_present(state: EditorState, present: bool) -> EditorState:
    """Clear or restore the present flag. Setting it to its current value does nothing."""
    if present == state.current.present:
        return state
    if present:
        return replace(state, current=copy(state.saved))
    return EditorState(current=SegmentDescriptor(), saved=copy(state.current))


def set_avl_bit(state: EditorState, enabled: bool) -> EditorState:
    return _edit(state, lambda d: setattr(d, "avl_bit", enabled))


def set_page_granularity(state: EditorState, enabled: bool) -> EditorState:
    return _edit(state, lambda d: setattr(d, "page_granularity", enabled))


def set_base(state: EditorState, text: str) -> EditorState:
    base = _parse_field("base", text, MAX_BASE)
    return _edit(state, lambda d: setattr(d, "base", base))


def set_limit(state: EditorState, text: str) -> EditorState:
    limit = _parse_field("limit", text, MAX_LIMIT)
    return _edit(state, lambda d: setattr(d, "limit", limit))


def set_ring(state: EditorState, text: str) -> EditorState:
    ring = _parse_field("ring", text, MAX_RING)
    return _edit(state, lambda d: setattr(d, "ring", ring))


def set_segment_type(state: EditorState, segment_type: SegmentType) -> EditorState:
    return _edit(state, lambda d: d.change_type(segment_type))


def set_type_flag(state: EditorState, mask: int, enabled: bool) -> EditorState:
    """Set or clear one of the accessed/readable/writable/conforming/expand-down bits."""
    if mask not in TYPE_FLAGS:
        raise EditError(f"{mask:#07b} is not a type attribute bit")

    def mutate(d: SegmentDescriptor) -> None:
        if enabled:
            d.type |= mask
        else:
            d.type &= MAX_TYPE & ~mask

    return _edit(state, mutate)


def set_system_subtype(state: EditorState, text: str) -> EditorState:
    """Write a system subtype given as hex digits."""
    subtype = _parse_field("subtype", f"0x{text.strip()}", 0xF)
    return _edit(state, lambda d: setattr(d, "type", subtype))


def set_code_size(state: EditorState, size: int) -> EditorState:
    """Select 16, 32 or 64-bit code.

    Switching to 64-bit also clears the fields that long mode reserves.
    """
    if size not in (16, 32, 64):
        raise EditError(f"Unknown code size {size}")

    def mutate(d: SegmentDescriptor) -> None:
        d.use32 = size == 32
        d.use64 = size == 64
        if size == 64:
            d.clear_all_reserved()

    return _edit(state, mutate)


def set_data_32(state: EditorState, enabled: bool) -> EditorState:
    def mutate(d: SegmentDescriptor) -> None:
        d.use32 = enabled
        d.use64 = False

    return _edit(state, mutate)


def clear_reserved(state: EditorState) -> EditorState:
    return _edit(state, lambda d: d.clear_all_reserved())
