"""The instrument's 8-byte date/time encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timedelta

from .cursor import ByteCursor

YEAR_BASE = 1900
DATETIME_SIZE = 8
_DATETIME = struct.Struct("<6BH")


@dataclass(frozen=True)
class DateTimeFields:
    year: int  # years since 1900
    month: int
    day: int
    hour: int
    minute: int
    second: int
    fraction: int  # tenths of a millisecond

    def to_datetime(self) -> datetime:
        base = datetime(
            self.year + YEAR_BASE,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
        )
        return base + timedelta(microseconds=100 * self.fraction)


def read_datetime(cursor: ByteCursor) -> DateTimeFields:
    year = cursor.read_u8()
    month = cursor.read_u8()
    day = cursor.read_u8()
    hour = cursor.read_u8()
    minute = cursor.read_u8()
    second = cursor.read_u8()
    fraction = cursor.read_u16()
    return DateTimeFields(year, month, day, hour, minute, second, fraction)


def decode_datetime(cursor: ByteCursor) -> datetime:
    """Read a date/time block; raises ``ValueError`` for impossible dates."""

    return read_datetime(cursor).to_datetime()


def encode_datetime(value: datetime) -> bytes:
    return _DATETIME.pack(
        value.year - YEAR_BASE,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond // 100,
    )


__all__ = [
    "DATETIME_SIZE",
    "DateTimeFields",
    "decode_datetime",
    "encode_datetime",
    "read_datetime",
]
