"""PropertyValue dataclass and ValueKind StrEnum for device tree properties.

A property value holds exactly one of four kinds of payload.  The kind is an
explicit tag rather than a subclass, and every site that inspects a value
matches on ``ValueKind`` exhaustively.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum, auto

from devtree_diff.errors import PropertyValueError

__all__ = ["Property", "PropertyValue", "ValueKind"]

_CELL32_LIMIT = 1 << 32
_CELL64_LIMIT = 1 << 64


class ValueKind(StrEnum):
    """Enumeration of the four property payload kinds.

    StrEnum values are the lowercased member names:
    - STRING  -> "string"  : text
    - BYTES   -> "bytes"   : raw byte sequence
    - CELLS32 -> "cells32" : sequence of 32-bit unsigned cells
    - CELLS64 -> "cells64" : sequence of 64-bit unsigned cells
    """

    STRING = auto()
    BYTES = auto()
    CELLS32 = auto()
    CELLS64 = auto()


def _checked_cells(values: Iterable[int], limit: int, width: int) -> tuple[int, ...]:
    cells = tuple(int(v) for v in values)
    for cell in cells:
        if not 0 <= cell < limit:
            msg = f"cell value {cell:#x} does not fit in {width} bits"
            raise PropertyValueError(msg)
    return cells


@dataclass(frozen=True, slots=True)
class PropertyValue:
    """An immutable, tagged property payload.

    Attributes:
        kind: Which payload kind ``data`` holds (see ValueKind).
        data: ``str`` for STRING, ``bytes`` for BYTES, ``tuple[int, ...]`` for
              CELLS32 and CELLS64.

    Use the named constructors rather than calling the class directly; they
    normalise the payload type and check cell widths.

    Equality compares kind and data, so a string and a cell list are never
    equal even when they render alike.
    """

    kind: ValueKind
    data: str | bytes | tuple[int, ...]

    @classmethod
    def string(cls, text: str) -> PropertyValue:
        return cls(ValueKind.STRING, str(text))

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | Iterable[int]) -> PropertyValue:
        try:
            payload = bytes(data)
        except ValueError as exc:
            raise PropertyValueError(f"invalid byte value: {exc}") from exc
        return cls(ValueKind.BYTES, payload)

    @classmethod
    def cells(cls, values: Iterable[int]) -> PropertyValue:
        return cls(ValueKind.CELLS32, _checked_cells(values, _CELL32_LIMIT, 32))

    @classmethod
    def cells64(cls, values: Iterable[int]) -> PropertyValue:
        return cls(ValueKind.CELLS64, _checked_cells(values, _CELL64_LIMIT, 64))

    def render(self) -> str:
        """Return the human-readable form used in diff entries and listings.

        - STRING:  the text itself.
        - BYTES:   space-separated two-digit hex, e.g. ``"0a ff"``.
        - CELLS32 / CELLS64: space-separated hex words, e.g. ``"0x1 0x10"``.

        Rendering is for display only; equality never goes through it.
        """
        if self.kind == ValueKind.STRING:
            return str(self.data)
        if self.kind == ValueKind.BYTES:
            return " ".join(f"{b:02x}" for b in self.data)  # type: ignore[union-attr]
        if self.kind in (ValueKind.CELLS32, ValueKind.CELLS64):
            return " ".join(f"{c:#x}" for c in self.data)  # type: ignore[union-attr]
        raise AssertionError(f"unhandled value kind: {self.kind!r}")

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class Property:
    """A named property value.

    Attributes:
        name:  Property name.  Must be non-empty.
        value: The property payload.
    """

    name: str
    value: PropertyValue

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("property name must not be empty")

    def render(self) -> str:
        return self.value.render()
