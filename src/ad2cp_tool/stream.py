"""
Stream driver: split a buffer into records and decode each body.

The header's declared length is authoritative. Whatever a body decoder
consumed, the cursor is forced to ``data_start + data_size`` afterwards and
any disagreement is kept as a ``LENGTH_DRIFT`` diagnostic.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator

from .bodies import DecodeContext, decode_body
from .cursor import ByteCursor
from .errors import LENGTH_DRIFT, Ad2cpError, Diagnostic
from .header import RecordHeader, decode_header, peek_header_size
from .records import Record

logger = logging.getLogger(__name__)


@dataclass
class DecodeResult:
    records: list[Record] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error: Ad2cpError | None = None
    bytes_consumed: int = 0
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def counts_by_series(self) -> Counter[int]:
        return Counter(record.header.data_series_id for record in self.records)

    def counts_by_code(self) -> Counter[str]:
        return Counter(diag.code for diag in self.diagnostics)


def _next_header(cursor: ByteCursor) -> RecordHeader | None:
    """Decode the header at the cursor, or ``None`` for a truncated tail."""

    start = cursor.tell()
    header_size = peek_header_size(cursor)
    if header_size is None or cursor.remaining() < header_size:
        logger.debug("truncated header at offset %d; stopping", start)
        return None
    header = decode_header(cursor)
    if header.data_end > len(cursor):
        logger.debug(
            "record at offset %d declares %d data bytes, only %d left; stopping",
            start,
            header.data_size,
            len(cursor) - header.data_start,
        )
        cursor.seek_to(start)
        return None
    return header


def iter_headers(buffer: bytes) -> Iterator[RecordHeader]:
    """Walk record framing only, without decoding any body."""

    cursor = ByteCursor(buffer)
    while not cursor.at_end():
        header = _next_header(cursor)
        if header is None:
            return
        yield header
        cursor.seek_to(header.data_end)


def _reconcile(ctx: DecodeContext) -> None:
    header = ctx.header
    consumed_to = ctx.cursor.tell()
    drift = header.data_end - consumed_to
    if drift != 0:
        message = (
            f"body of data series 0x{header.data_series_id:02X} ended at "
            f"{consumed_to}, declared end {header.data_end}; "
            f"{'skipping' if drift > 0 else 'rewinding'} {abs(drift)} bytes"
        )
        ctx.note(LENGTH_DRIFT, message, offset=header.offset)
    ctx.cursor.seek_to(header.data_end)


def decode(buffer: bytes | bytearray | memoryview) -> DecodeResult:
    """
    Decode every record in ``buffer``.

    Fatal framing or bounds errors never propagate: they end the pass and
    are returned in ``DecodeResult.error`` next to the records and
    diagnostics gathered before the failure.
    """

    cursor = ByteCursor(buffer)
    result = DecodeResult()
    index = 0
    while not cursor.at_end():
        try:
            header = _next_header(cursor)
            if header is None:
                result.truncated = True
                break
            ctx = DecodeContext(cursor=cursor, header=header, index=index)
            record = decode_body(ctx)
            _reconcile(ctx)
        except Ad2cpError as exc:
            logger.error("decode stopped at record %d: %s", index, exc)
            result.error = exc
            break
        for diag in ctx.diagnostics:
            level = logging.WARNING if diag.code == LENGTH_DRIFT else logging.INFO
            logger.log(level, diag.describe())
        result.diagnostics.extend(ctx.diagnostics)
        result.records.append(record)
        index += 1
    result.bytes_consumed = cursor.tell()
    return result


def decode_strict(buffer: bytes | bytearray | memoryview) -> DecodeResult:
    result = decode(buffer)
    result.raise_for_error()
    return result


__all__ = ["DecodeResult", "decode", "decode_strict", "iter_headers"]
