"""Record header framing: sync byte, sizes, type tags and checksums."""

from __future__ import annotations

from dataclasses import dataclass

from .bits import label_for
from .cursor import ByteCursor
from .errors import InvalidSync, UnsupportedHeaderSize

SYNC_BYTE = 0xA5
SHORT_HEADER_SIZE = 10
LONG_HEADER_SIZE = 12

FAMILY_LABELS = {
    0x10: "Signature",
    0x16: "DVL",
    0x30: "Aquadopp Generation 2",
    0x40: "Awac Generation 2",
}


@dataclass(frozen=True)
class RecordHeader:
    sync: int
    header_size: int
    data_series_id: int
    family_id: int
    data_size: int
    data_checksum: int
    header_checksum: int
    offset: int
    data_start: int

    @property
    def data_end(self) -> int:
        return self.data_start + self.data_size

    @property
    def total_size(self) -> int:
        return self.header_size + self.data_size

    @property
    def family_label(self) -> str:
        return label_for(FAMILY_LABELS, self.family_id)


def _check_sync(sync: int, offset: int) -> None:
    if sync != SYNC_BYTE:
        raise InvalidSync(
            f"expected sync 0x{SYNC_BYTE:02X} at offset {offset}, found 0x{sync:02X}",
            offset=offset,
        )


def _unsupported(header_size: int, offset: int) -> UnsupportedHeaderSize:
    return UnsupportedHeaderSize(
        f"header size {header_size} at offset {offset} (expected 10 or 12)",
        offset=offset,
    )


def peek_header_size(cursor: ByteCursor) -> int | None:
    """
    Validate sync and header size at the cursor without moving it.

    Returns ``None`` when the buffer ends before the header size byte, so
    the stream driver can tell a truncated tail from corrupt framing.
    """

    start = cursor.tell()
    sync = cursor.read_u8()
    header_size = cursor.read_u8() if cursor.remaining() else None
    cursor.seek_to(start)
    _check_sync(sync, start)
    if header_size is not None and header_size not in (
        SHORT_HEADER_SIZE,
        LONG_HEADER_SIZE,
    ):
        raise _unsupported(header_size, start)
    return header_size


def decode_header(cursor: ByteCursor) -> RecordHeader:
    offset = cursor.tell()
    sync = cursor.read_u8()
    _check_sync(sync, offset)
    header_size = cursor.read_u8()
    data_series_id = cursor.read_u8()
    family_id = cursor.read_u8()
    if header_size == SHORT_HEADER_SIZE:
        data_size = cursor.read_u16()
    elif header_size == LONG_HEADER_SIZE:
        data_size = cursor.read_u32()
    else:
        raise _unsupported(header_size, offset)
    data_checksum = cursor.read_u16()
    header_checksum = cursor.read_u16()
    return RecordHeader(
        sync=sync,
        header_size=header_size,
        data_series_id=data_series_id,
        family_id=family_id,
        data_size=data_size,
        data_checksum=data_checksum,
        header_checksum=header_checksum,
        offset=offset,
        data_start=cursor.tell(),
    )


__all__ = [
    "FAMILY_LABELS",
    "LONG_HEADER_SIZE",
    "RecordHeader",
    "SHORT_HEADER_SIZE",
    "SYNC_BYTE",
    "decode_header",
    "peek_header_size",
]
