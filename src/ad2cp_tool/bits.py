"""
Bit-field walking for the packed AD2CP flag and status words.

Multi-bit words in the format are little-endian integers whose fields are
documented from the most significant bit down. Reversing the byte order of
the span turns that into a plain MSB-first walk, which is what
:class:`BitCursor` does. The reversal applies to every packed word.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from .cursor import ByteCursor
from .errors import BitfieldOverrun

UNKNOWN_LABEL = "unknown"

BitLayout = Sequence[tuple[str | None, int]]


class BitCursor:
    def __init__(self, span: bytes, offset: int = 0) -> None:
        self._word = int.from_bytes(bytes(reversed(span)), "big")
        self._width = 8 * len(span)
        self._consumed = 0
        self._offset = offset

    @property
    def width(self) -> int:
        return self._width

    @property
    def bits_consumed(self) -> int:
        return self._consumed

    @property
    def bits_remaining(self) -> int:
        return self._width - self._consumed

    def take_bits(self, count: int) -> int:
        if count < 1 or count > 32:
            raise ValueError(f"bit run must be 1-32 bits, got {count}")
        if self._consumed + count > self._width:
            raise BitfieldOverrun(
                f"taking {count} bits at bit {self._consumed} overruns "
                f"{self._width}-bit word",
                offset=self._offset,
            )
        shift = self._width - self._consumed - count
        self._consumed += count
        return (self._word >> shift) & ((1 << count) - 1)

    def take_flag(self) -> bool:
        return bool(self.take_bits(1))

    def skip(self, count: int) -> None:
        self.take_bits(count)


def walk_layout(bits: BitCursor, layout: BitLayout) -> dict[str, int]:
    fields: dict[str, int] = {}
    for name, width in layout:
        value = bits.take_bits(width)
        if name is not None:
            fields[name] = value
    return fields


def layout_width(layout: BitLayout) -> int:
    return sum(width for _, width in layout)


def read_bitfields(
    cursor: ByteCursor, width_bytes: int, layout: BitLayout
) -> tuple[int, dict[str, int]]:
    """
    Read ``width_bytes`` from ``cursor`` and split them per ``layout``.

    Returns the raw little-endian word alongside the named sub-fields;
    ``None`` entries in the layout are reserved bits and are dropped.
    """

    offset = cursor.tell()
    span = cursor.read_bytes(width_bytes)
    bits = BitCursor(span, offset=offset)
    fields = walk_layout(bits, layout)
    return int.from_bytes(span, "little"), fields


def label_for(table: Mapping[int, str], value: int) -> str:
    return table.get(value, UNKNOWN_LABEL)


__all__ = [
    "BitCursor",
    "BitLayout",
    "UNKNOWN_LABEL",
    "label_for",
    "layout_width",
    "read_bitfields",
    "walk_layout",
]
