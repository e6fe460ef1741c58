"""
Decoding utilities for Nortek AD2CP binary data streams.

The package splits a capture into records, decodes each record body into
typed dataclasses and can re-emit current profiles and wave records as
Nortek NMEA-style sentences.
"""

from .errors import (
    Ad2cpError,
    BitfieldOverrun,
    BufferUnderrun,
    Diagnostic,
    InvalidSync,
    UnsupportedHeaderSize,
)
from .export import record_to_dict, result_to_dict
from .header import RecordHeader, decode_header
from .nmea import SENTENCE_CODES, encode_sentences, format_sentence, nmea_checksum
from .records import (
    CommonData,
    CurrentProfileRecord,
    EchosounderProfileRecord,
    EchosounderRawRecord,
    RawStringRecord,
    SpectrumProfileRecord,
    UnknownRecord,
    WaveRecord,
)
from .stream import DecodeResult, decode, decode_strict, iter_headers

__all__ = [
    "__version__",
    "decode",
    "decode_strict",
    "iter_headers",
    "DecodeResult",
    "Diagnostic",
    "Ad2cpError",
    "InvalidSync",
    "UnsupportedHeaderSize",
    "BufferUnderrun",
    "BitfieldOverrun",
    "RecordHeader",
    "decode_header",
    "CommonData",
    "CurrentProfileRecord",
    "EchosounderProfileRecord",
    "EchosounderRawRecord",
    "SpectrumProfileRecord",
    "WaveRecord",
    "RawStringRecord",
    "UnknownRecord",
    "SENTENCE_CODES",
    "encode_sentences",
    "format_sentence",
    "nmea_checksum",
    "record_to_dict",
    "result_to_dict",
]

__version__ = "0.1.0"
