"""
Little-endian scalar reads over an in-memory AD2CP buffer.

The cursor only ever moves forward by the width of what it reads, or to an
absolute position through :meth:`ByteCursor.seek_to`. Record bodies anchor
every out-of-order field on the record's ``data_start`` and seek there
explicitly, so there is no relative seek primitive.
"""

from __future__ import annotations

import struct

import numpy as np

from .errors import BufferUnderrun

_U8 = struct.Struct("<B")
_I8 = struct.Struct("<b")
_U16 = struct.Struct("<H")
_I16 = struct.Struct("<h")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_F32 = struct.Struct("<f")

ACCELEROMETER_SCALE = 9.819 / 16384


def velocity_scale(velocity_scaling: int) -> float:
    return 10.0**velocity_scaling


class ByteCursor:
    def __init__(self, data: bytes | bytearray | memoryview, pos: int = 0) -> None:
        self._data = bytes(data)
        self._pos = 0
        self.seek_to(pos)

    @property
    def data(self) -> bytes:
        return self._data

    def __len__(self) -> int:
        return len(self._data)

    def tell(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def seek_to(self, offset: int) -> None:
        if offset < 0 or offset > len(self._data):
            raise BufferUnderrun(
                f"seek target {offset} outside buffer of {len(self._data)} bytes",
                offset=offset,
            )
        self._pos = offset

    def _require(self, size: int) -> int:
        start = self._pos
        if size > len(self._data) - start:
            raise BufferUnderrun(
                f"need {size} bytes at offset {start}, only {len(self._data) - start} left",
                offset=start,
            )
        self._pos = start + size
        return start

    def _unpack(self, fmt: struct.Struct):
        start = self._require(fmt.size)
        return fmt.unpack_from(self._data, start)[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_i8(self) -> int:
        return self._unpack(_I8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_i16(self) -> int:
        return self._unpack(_I16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_bytes(self, size: int) -> bytes:
        start = self._require(size)
        return self._data[start : start + size]

    def skip(self, size: int) -> None:
        """Advance over reserved bytes; same bounds rule as a read."""
        self._require(size)

    def read_array(self, dtype: str, count: int) -> np.ndarray:
        """Read ``count`` little-endian items of numpy ``dtype`` (e.g. ``"<i2"``)."""

        if count <= 0:
            return np.zeros(0, dtype=dtype)
        width = np.dtype(dtype).itemsize
        start = self._require(width * count)
        return np.frombuffer(self._data, dtype=dtype, count=count, offset=start)

    def read_f32_tuple(self, count: int) -> tuple[float, ...]:
        return tuple(float(v) for v in self.read_array("<f4", count))


__all__ = [
    "ACCELEROMETER_SCALE",
    "ByteCursor",
    "velocity_scale",
]
