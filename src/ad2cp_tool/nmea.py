"""
Nortek NMEA-style sentence output for decoded records.

Current profile sentences come in three flavours. The ``1`` variant lists
plain values, the ``2`` variant writes the same values as ``TAG=value``,
and the bare variant is the ``1`` field list with a fixed set of indices
removed. Wave sentences have a single flavour each.
"""

from __future__ import annotations

from datetime import datetime
from functools import reduce
from typing import Callable, Iterable, Sequence

import numpy as np

from .records import CurrentProfileRecord, Record, WaveRecord, WaveSpectrum

Field = tuple[str, str]

PROFILE_FAMILIES = ("PNORI", "PNORS", "PNORC")
WAVE_CODES = ("PNORW", "PNORB", "PNORE", "PNORF", "PNORWD")
SENTENCE_CODES = tuple(
    f"{family}{suffix}" for family in PROFILE_FAMILIES for suffix in ("", "1", "2")
) + WAVE_CODES

# Indices of the "1" field list that the bare sentence leaves out.
BARE_DROPPED_FIELDS = {
    "PNORI": (1,),
    "PNORS": (6, 9, 11, 13),
    "PNORC": (3,),
}

INSTRUMENT_TYPES = {0x10: 4, 0x30: 0}
DEFAULT_INSTRUMENT_TYPE = 4

VELOCITY_TAGS = {
    "ENU": ("VE", "VN", "VU", "VU2"),
    "XYZ": ("VX", "VY", "VZ", "VZ2"),
    "BEAM": ("V1", "V2", "V3", "V4"),
}

FOURIER_TAGS = ("A1", "B1", "A2", "B2")
DIRECTION_TAGS = ("MD", "DS")


def nmea_checksum(body: str) -> int:
    return reduce(lambda acc, byte: acc ^ byte, body.encode("ascii"), 0)


def format_sentence(fields: Sequence[str]) -> str:
    body = ",".join(fields)
    return f"${body}*{nmea_checksum(body):02X}"


def _fmt(value: float | None, decimals: int) -> str:
    if value is None:
        return ""
    return f"{value:.{decimals}f}"


def _date(ts: datetime | None) -> str:
    return ts.strftime("%m%d%y") if ts is not None else ""


def _time(ts: datetime | None) -> str:
    return ts.strftime("%H%M%S") if ts is not None else ""


def _instrument_fields(record: CurrentProfileRecord) -> list[Field]:
    common = record.common
    instrument = INSTRUMENT_TYPES.get(record.header.family_id, DEFAULT_INSTRUMENT_TYPE)
    return [
        ("IT", str(instrument)),
        ("SN", str(common.serial_number)),
        ("NB", str(record.number_of_beams)),
        ("NC", str(record.number_of_cells)),
        ("BD", _fmt(common.blanking, 2)),
        ("CS", _fmt(common.cell_size, 2)),
        ("CY", record.coordinate_system_label),
    ]


def _sensor_fields(record: CurrentProfileRecord) -> list[Field]:
    common = record.common
    std = record.standard_deviation
    ts = common.timestamp
    return [
        ("DATE", _date(ts)),
        ("TIME", _time(ts)),
        ("EC", f"{common.error_word:08X}"),
        ("SC", f"{common.status_word:08X}"),
        ("BV", _fmt(common.battery_voltage, 2)),
        ("SS", _fmt(common.speed_of_sound, 2)),
        ("HSD", _fmt(std.heading if std else None, 2)),
        ("H", _fmt(common.heading, 2)),
        ("PI", _fmt(common.pitch, 2)),
        ("PISD", _fmt(std.pitch if std else None, 2)),
        ("R", _fmt(common.roll, 2)),
        ("RSD", _fmt(std.roll if std else None, 2)),
        ("P", _fmt(common.pressure, 3)),
        ("PSD", _fmt(std.pressure if std else None, 3)),
        ("T", _fmt(common.temperature, 2)),
    ]


def _velocity_tag(label: str, beam: int) -> str:
    tags = VELOCITY_TAGS.get(label, VELOCITY_TAGS["BEAM"])
    return tags[beam] if beam < len(tags) else f"V{beam + 1}"


def _per_beam(
    values: np.ndarray, cell: int, beams: int, render: Callable[[float], str]
) -> list[str]:
    if values.size == 0:
        return [""] * beams
    return [render(values[beam, cell]) for beam in range(beams)]


def _cell_fields(record: CurrentProfileRecord, cell: int) -> list[Field]:
    common = record.common
    ts = common.timestamp
    beams = record.number_of_beams
    label = record.coordinate_system_label
    position = common.blanking + (cell + 0.5) * common.cell_size

    velocities = _per_beam(record.velocity, cell, beams, lambda v: f"{v:.3f}")
    amplitudes = _per_beam(record.amplitude, cell, beams, lambda v: f"{v:.2f}")
    correlations = _per_beam(record.correlation, cell, beams, lambda v: str(int(v)))

    fields: list[Field] = [
        ("DATE", _date(ts)),
        ("TIME", _time(ts)),
        ("CN", str(cell + 1)),
        ("CP", _fmt(position, 2)),
    ]
    fields += [(_velocity_tag(label, b), v) for b, v in enumerate(velocities)]
    fields += [(f"A{b + 1}", v) for b, v in enumerate(amplitudes)]
    fields += [(f"C{b + 1}", v) for b, v in enumerate(correlations)]
    return fields


def _render_profile(code: str, family: str, fields: list[Field]) -> str:
    suffix = code[len(family) :]
    if suffix == "2":
        return format_sentence([code] + [f"{tag}={value}" for tag, value in fields])
    values = [value for _, value in fields]
    if suffix == "":
        dropped = BARE_DROPPED_FIELDS[family]
        values = [v for i, v in enumerate(values) if i not in dropped]
    return format_sentence([code] + values)


def _profile_sentences(record: CurrentProfileRecord, code: str) -> list[str]:
    family = code.rstrip("12")
    if family == "PNORI":
        return [_render_profile(code, family, _instrument_fields(record))]
    if family == "PNORS":
        return [_render_profile(code, family, _sensor_fields(record))]
    return [
        _render_profile(code, family, _cell_fields(record, cell))
        for cell in range(record.number_of_cells)
    ]


def _wave_prefix(record: WaveRecord) -> list[str]:
    return [_date(record.timestamp), _time(record.timestamp)]


def _wave_error_code(record: WaveRecord) -> str:
    return f"{record.error_word & 0xFFFF:04X}"


def _pnorw(record: WaveRecord) -> list[str]:
    p = record.parameters
    if p is None:
        return []
    fields = _wave_prefix(record) + [
        str(record.spectrum_type),
        str(record.processing_method),
    ]
    fields += [
        _fmt(v, 2)
        for v in (
            p.height0,
            p.height3,
            p.height10,
            p.height_max,
            p.period_mean,
            p.period_peak,
            p.period_z,
            p.direction_at_peak_period,
            p.spreading_at_peak_period,
            p.wave_direction_mean,
            p.unidirectivity_index,
            p.pressure_mean,
        )
    ]
    fields += [str(record.number_of_no_detects), str(record.number_of_bad_detects)]
    fields += [_fmt(p.current_speed_mean, 2), _fmt(p.current_direction_mean, 2)]
    fields.append(_wave_error_code(record))
    return [format_sentence(["PNORW"] + fields)]


def _pnorb(record: WaveRecord) -> list[str]:
    lines = []
    for band in (record.swell, record.sea):
        if band is None:
            continue
        fields = _wave_prefix(record) + [
            str(record.spectrum_type),
            str(record.processing_method),
        ]
        fields += [
            _fmt(v, 2)
            for v in (
                band.low_frequency,
                band.high_frequency,
                band.height0,
                band.period_mean,
                band.period_peak,
                band.direction_at_peak_period,
                band.spreading_at_peak_period,
                band.wave_direction_mean,
            )
        ]
        fields.append(_wave_error_code(record))
        lines.append(format_sentence(["PNORB"] + fields))
    return lines


def _spectrum_head(record: WaveRecord, spectrum: WaveSpectrum) -> list[str]:
    return _wave_prefix(record) + [
        str(record.spectrum_type),
        _fmt(spectrum.low_frequency, 4),
        _fmt(spectrum.step_frequency, 4),
        str(spectrum.number_of_bins),
    ]


def _pnore(record: WaveRecord) -> list[str]:
    spectrum = record.energy
    if spectrum is None:
        return []
    values = [_fmt(v, 4) for v in spectrum.data]
    return [format_sentence(["PNORE"] + _spectrum_head(record, spectrum) + values)]


def _sliced(
    code: str,
    record: WaveRecord,
    spectrum: WaveSpectrum | None,
    tags: Sequence[str],
    decimals: int,
) -> list[str]:
    if spectrum is None:
        return []
    n = spectrum.number_of_bins
    lines = []
    for i, tag in enumerate(tags):
        chunk = spectrum.data[i * n : (i + 1) * n]
        values = [_fmt(v, decimals) for v in chunk]
        lines.append(
            format_sentence([code, tag] + _spectrum_head(record, spectrum) + values)
        )
    return lines


def _wave_sentences(record: WaveRecord, code: str) -> list[str]:
    if code == "PNORW":
        return _pnorw(record)
    if code == "PNORB":
        return _pnorb(record)
    if code == "PNORE":
        return _pnore(record)
    if code == "PNORF":
        return _sliced("PNORF", record, record.fourier, FOURIER_TAGS, 4)
    return _sliced("PNORWD", record, record.direction, DIRECTION_TAGS, 2)


def validate_codes(codes: Iterable[str]) -> list[str]:
    normalized = [code.strip().upper() for code in codes if code.strip()]
    unknown = [code for code in normalized if code not in SENTENCE_CODES]
    if unknown:
        raise ValueError(
            f"unsupported sentence code(s): {', '.join(unknown)}; "
            f"choose from {', '.join(SENTENCE_CODES)}"
        )
    return normalized


def sentences_for_record(record: Record, codes: Sequence[str]) -> list[str]:
    lines: list[str] = []
    for code in codes:
        if isinstance(record, CurrentProfileRecord) and code not in WAVE_CODES:
            lines.extend(_profile_sentences(record, code))
        elif isinstance(record, WaveRecord) and code in WAVE_CODES:
            lines.extend(_wave_sentences(record, code))
    return lines


def encode_sentences(records: Iterable[Record], codes: Iterable[str]) -> list[str]:
    """Render the requested sentence codes for every applicable record, in order."""

    selected = validate_codes(codes)
    lines: list[str] = []
    for record in records:
        lines.extend(sentences_for_record(record, selected))
    return lines


__all__ = [
    "SENTENCE_CODES",
    "encode_sentences",
    "format_sentence",
    "nmea_checksum",
    "sentences_for_record",
    "validate_codes",
]
