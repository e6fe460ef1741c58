from __future__ import annotations

import importlib.util
import struct
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Sequence


def repo_src_path() -> Path:
    """Return the repository's ``src`` directory."""

    return Path(__file__).resolve().parents[1] / "src"


def _ensure_repo_on_path() -> None:
    if importlib.util.find_spec("ad2cp_tool") is None:
        sys.path.insert(0, str(repo_src_path()))


_ensure_repo_on_path()

from ad2cp_tool.bits import BitLayout  # noqa: E402
from ad2cp_tool.records import (  # noqa: E402
    BEAM_CELL_LAYOUT,
    PRESENCE_LAYOUT,
    SPECTRUM_BEAM_BIN_LAYOUT,
    STATUS_LAYOUT,
    WAVE_FLAGS_LAYOUT,
)
from ad2cp_tool.timestamps import encode_datetime  # noqa: E402

SAMPLE_TIME = datetime(2023, 5, 17, 12, 30, 45, 123400)

_COMMON = struct.Struct("<BBHI8sHhIHhhHHHBBH3h3hHHHbbhhHHII")
_SHORT_HEADER = struct.Struct("<BBBBHHH")
_LONG_HEADER = struct.Struct("<BBBBIHH")


def pack_word(layout: BitLayout, **values: int) -> int:
    """Build the little-endian word value whose MSB-first walk yields ``values``."""

    word = 0
    for name, width in layout:
        value = values.get(name, 0) if name is not None else 0
        assert 0 <= value < (1 << width), (name, value)
        word = (word << width) | value
    return word


def presence_word(*names: str) -> int:
    return pack_word(PRESENCE_LAYOUT, **{name: 1 for name in names})


def make_record(
    series: int,
    body: bytes,
    *,
    family: int = 0x10,
    header_size: int = 10,
) -> bytes:
    if header_size == 12:
        head = _LONG_HEADER.pack(0xA5, 12, series, family, len(body), 0, 0)
    else:
        head = _SHORT_HEADER.pack(0xA5, 10, series, family, len(body), 0, 0)
    return head + body


def common_block(
    *,
    flags: Iterable[str] = (),
    kind_word: int = 0,
    offset_of_data: int = 76,
    serial_number: int = 123456,
    timestamp: bytes | None = None,
    velocity_scaling: int = -3,
    blanking_raw: int = 500,
    cell_size_raw: int = 1000,
    ambiguity_raw: int = 2000,
    status: int = 0,
    error: int = 0,
    ensemble_counter: int = 7,
) -> bytes:
    return _COMMON.pack(
        3,
        offset_of_data,
        presence_word(*flags),
        serial_number,
        timestamp if timestamp is not None else encode_datetime(SAMPLE_TIME),
        15000,  # 1500.0 m/s
        1234,  # 12.34 C
        10500,  # 10.5 dBar
        9000,  # 90.00 deg
        -150,
        250,
        kind_word,
        cell_size_raw,
        blanking_raw,
        50,
        110,
        120,  # 12.0 V
        1,
        2,
        3,
        0,
        0,
        16384,
        ambiguity_raw,
        0,
        0,
        velocity_scaling,
        0,
        0,
        2500,
        error,
        0,
        status,
        ensemble_counter,
    )


def _padding(header: bytes, offset_of_data: int) -> bytes:
    assert offset_of_data >= len(header)
    return header + b"\x00" * (offset_of_data - len(header))


def _beams_by_cells(values: Sequence[Sequence[int]] | None, beams: int, cells: int):
    if values is None:
        return [[0] * cells for _ in range(beams)]
    assert len(values) == beams and all(len(row) == cells for row in values)
    return values


def current_profile_body(
    series: int = 0x16,
    *,
    beams: int = 3,
    cells: int = 1,
    coordinate_system: int = 0,
    flags: Iterable[str] = (),
    velocity: Sequence[Sequence[int]] | None = None,
    amplitude: Sequence[Sequence[int]] | None = None,
    correlation: Sequence[Sequence[int]] | None = None,
    altimeter_raw_samples: Sequence[int] = (),
    offset_of_data: int = 76,
    **common,
) -> bytes:
    flags = set(flags)
    kind_word = pack_word(
        BEAM_CELL_LAYOUT,
        number_of_beams=beams,
        coordinate_system=coordinate_system,
        number_of_cells=cells,
    )
    head = common_block(
        flags=flags, kind_word=kind_word, offset_of_data=offset_of_data, **common
    )
    body = bytearray(_padding(head, offset_of_data))

    if series in (0x15, 0x1A):
        body += struct.pack("<ff", 1.5, 2.5)
    if {"has_velocity_data", "has_correlation_data"} <= flags:
        for row in _beams_by_cells(velocity, beams, cells):
            body += struct.pack(f"<{cells}h", *row)
    if {"has_amplitude_data", "has_correlation_data"} <= flags:
        for row in _beams_by_cells(amplitude, beams, cells):
            body += struct.pack(f"<{cells}B", *row)
    if "has_correlation_data" in flags:
        for row in _beams_by_cells(correlation, beams, cells):
            body += struct.pack(f"<{cells}B", *row)
    if "has_altimeter_data" in flags:
        body += struct.pack("<fHH", 12.5, 80, 1)
    if "has_ast_data" in flags:
        body += struct.pack("<fHhf", 11.25, 70, -3, 10.5)
    if "has_altimeter_raw_data" in flags:
        samples = list(altimeter_raw_samples)
        body += struct.pack("<IH", len(samples), 250)
        body += struct.pack(f"<{len(samples)}h", *samples)
    if "has_ahrs_data" in flags:
        body += struct.pack("<9f", 1, 0, 0, 0, 1, 0, 0, 0, 1)
        body += struct.pack("<4f", 1, 0, 0, 0)
        body += struct.pack("<3f", 0.1, 0.2, 0.3)
    if "has_percentage_good_data" in flags:
        body += bytes(range(100, 100 + cells))
    if "has_standard_deviation_data" in flags:
        body += struct.pack("<4h", 10, 20, 30, 40)
    return bytes(body)


def echosounder_body(
    values: Sequence[int] = (100, 250, 4000),
    *,
    frequency: int = 1000,
    offset_of_data: int = 76,
    **common,
) -> bytes:
    head = common_block(
        flags=("has_echosounder_data",),
        kind_word=len(values),
        offset_of_data=offset_of_data,
        ambiguity_raw=frequency,
        **common,
    )
    body = _padding(head, offset_of_data)
    return body + struct.pack(f"<{len(values)}H", *values)


def echosounder_raw_body(
    samples: Sequence[tuple[int, int]] = ((1, -1), (2, -2)),
    *,
    offset_of_data: int = 40,
    status: int = 0,
    timestamp: bytes | None = None,
) -> bytes:
    head = struct.pack(
        "<BB8sHIIIIf",
        1,
        offset_of_data,
        timestamp if timestamp is not None else encode_datetime(SAMPLE_TIME),
        0,
        status,
        98765,
        len(samples),
        10,
        96000.0,
    )
    body = bytearray(_padding(head, offset_of_data))
    for i_value, q_value in samples:
        body += struct.pack("<ii", i_value, q_value)
    return bytes(body)


def spectrum_body(
    bins: Sequence[Sequence[int]] = ((1, 2, 3, 4), (5, 6, 7, 8)),
    *,
    has_spectrum: bool = True,
    offset_of_data: int = 76,
    **common,
) -> bytes:
    beams = len(bins)
    count = len(bins[0]) if bins else 0
    kind_word = pack_word(
        SPECTRUM_BEAM_BIN_LAYOUT, number_of_beams=beams, number_of_bins=count
    )
    flags = ("has_spectrum_data",) if has_spectrum else ()
    head = common_block(
        flags=flags, kind_word=kind_word, offset_of_data=offset_of_data, **common
    )
    body = bytearray(_padding(head, offset_of_data))
    if has_spectrum:
        body += b"\x00" * 56
        body += struct.pack("<ff", 0.5, 0.25)
        for row in bins:
            body += struct.pack(f"<{count}h", *row)
    return bytes(body)


def _wave_spectrum(values: Sequence[float], bins: int) -> bytes:
    head = struct.pack("<fffH", 0.02, 0.5, 0.01, bins) + b"\x00" * 22
    return head + struct.pack(f"<{len(values)}f", *values)


def wave_body(
    *,
    parameters: Sequence[float] | None = None,
    bands: tuple[Sequence[float], Sequence[float]] | None = None,
    energy: Sequence[float] | None = None,
    fourier: Sequence[float] | None = None,
    direction: Sequence[float] | None = None,
    bins: int = 2,
    error_word: int = 0x12345,
    offset_of_data: int = 48,
) -> bytes:
    flags = pack_word(
        WAVE_FLAGS_LAYOUT,
        has_wave_parameters=int(parameters is not None),
        has_wave_band=int(bands is not None),
        has_energy_spectra=int(energy is not None),
        has_fourier_spectra=int(fourier is not None),
        has_direction_spectra=int(direction is not None),
    )
    head = struct.pack(
        "<BBHI8sHIIBBBxHHffH4s",
        1,
        offset_of_data,
        flags,
        4321,
        encode_datetime(SAMPLE_TIME),
        17,
        error_word,
        0x100,
        1,
        4,
        3,
        5,
        6,
        0.6,
        120.0,
        42,
        b"1.2\x00",
    )
    body = bytearray(_padding(head, offset_of_data))
    if parameters is not None:
        body += struct.pack("<20f", *parameters) + b"\x00" * 20
    if bands is not None:
        for band in bands:
            body += struct.pack("<8f", *band) + b"\x00" * 20
    if energy is not None:
        body += _wave_spectrum(energy, bins)
    if fourier is not None:
        body += _wave_spectrum(fourier, bins)
    if direction is not None:
        body += _wave_spectrum(direction, bins)
    return bytes(body)


def status_word(**values: int) -> int:
    return pack_word(STATUS_LAYOUT, **values)
