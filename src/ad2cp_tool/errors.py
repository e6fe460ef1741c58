"""Fatal decode errors and non-fatal decode diagnostics."""

from __future__ import annotations

from dataclasses import dataclass

LENGTH_DRIFT = "LENGTH_DRIFT"
UNKNOWN_TAG = "UNKNOWN_TAG"
INVALID_TIMESTAMP = "INVALID_TIMESTAMP"


class Ad2cpError(ValueError):
    """Base class for errors that stop a whole decode pass."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class InvalidSync(Ad2cpError):
    pass


class UnsupportedHeaderSize(Ad2cpError):
    pass


class BufferUnderrun(Ad2cpError):
    pass


class BitfieldOverrun(Ad2cpError):
    pass


@dataclass(frozen=True)
class Diagnostic:
    code: str
    record_index: int
    offset: int
    message: str

    def describe(self) -> str:
        return f"record {self.record_index} @0x{self.offset:X}: {self.code}: {self.message}"


__all__ = [
    "Ad2cpError",
    "BitfieldOverrun",
    "BufferUnderrun",
    "Diagnostic",
    "INVALID_TIMESTAMP",
    "InvalidSync",
    "LENGTH_DRIFT",
    "UNKNOWN_TAG",
    "UnsupportedHeaderSize",
]
