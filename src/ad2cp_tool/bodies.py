"""
Record body decoders, one per AD2CP data series family.

Bodies are not laid out monotonically: several fields depend on values
stored later in the same block (blanking needs a status bit, ambiguity
velocity needs the velocity scaling) and the variable sections start at a
body-declared ``offset_of_data``. Every such jump is an absolute seek from
the record's ``data_start`` through :meth:`DecodeContext.seek`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import numpy as np

from .bits import read_bitfields
from .cursor import ACCELEROMETER_SCALE, ByteCursor, velocity_scale
from .errors import INVALID_TIMESTAMP, UNKNOWN_TAG, Diagnostic
from .header import RecordHeader
from .records import (
    BEAM_CELL_LAYOUT,
    ERROR_STATUS_LAYOUT,
    EXTENDED_STATUS_LAYOUT,
    PRESENCE_LAYOUT,
    SPECTRUM_BEAM_BIN_LAYOUT,
    STATUS_LAYOUT,
    WAVE_ERROR_LAYOUT,
    WAVE_FLAGS_LAYOUT,
    WAVE_STATUS_LAYOUT,
    AhrsData,
    AltimeterData,
    AltimeterRawData,
    AstData,
    CommonData,
    CurrentProfileRecord,
    EchosounderProfileRecord,
    EchosounderRawRecord,
    EchosounderRawStatus,
    ErrorStatus,
    ExtendedStatus,
    PresenceFlags,
    ProfileStatus,
    RawStringRecord,
    Record,
    SpectrumData,
    SpectrumProfileRecord,
    StandardDeviationData,
    StmData,
    UnknownRecord,
    WaveBand,
    WaveError,
    WaveFlags,
    WaveParameters,
    WaveRecord,
    WaveSpectrum,
    WaveStatus,
)
from .timestamps import read_datetime

# Offsets from data_start inside the common block.
KIND_WORD_OFFSET = 30
BLANKING_OFFSET = 34
AMBIGUITY_VELOCITY_OFFSET = 52
COMMON_BLOCK_SIZE = 76

# Spectrum payload starts this far past offset_of_data.
SPECTRUM_DATA_SKIP = 56

WAVE_PARAMETER_COUNT = 20
WAVE_BAND_COUNT = 8
WAVE_RESERVED_TRAILER = 20
WAVE_SPECTRUM_RESERVED = 22

# Data series ids whose velocity section opens with the STM extension.
# False means the id is known and carries no extension.
STM_EXTENSION: dict[int, bool] = {
    0x15: True,
    0x1A: True,
    0x16: False,
    0x18: False,
}


@dataclass
class DecodeContext:
    """State threaded through one record's body decode."""

    cursor: ByteCursor
    header: RecordHeader
    index: int = 0
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def data_start(self) -> int:
        return self.header.data_start

    def seek(self, offset: int) -> None:
        self.cursor.seek_to(self.header.data_start + offset)

    def note(self, code: str, message: str, offset: int | None = None) -> None:
        self.diagnostics.append(
            Diagnostic(
                code=code,
                record_index=self.index,
                offset=self.cursor.tell() if offset is None else offset,
                message=message,
            )
        )


def _read_timestamp(ctx: DecodeContext) -> datetime | None:
    offset = ctx.cursor.tell()
    fields = read_datetime(ctx.cursor)
    try:
        return fields.to_datetime()
    except ValueError as exc:
        ctx.note(INVALID_TIMESTAMP, f"{fields}: {exc}", offset=offset)
        return None


def _gated_matrix(
    cursor: ByteCursor, dtype: str, rows: int, cols: int, factor: int
) -> np.ndarray:
    count = rows * cols * factor
    values = cursor.read_array(dtype, count)
    if count == 0:
        return values
    return values.reshape(rows, cols)


def decode_common(ctx: DecodeContext) -> CommonData:
    cur = ctx.cursor
    ctx.seek(0)
    version = cur.read_u8()
    offset_of_data = cur.read_u8()
    _, presence_fields = read_bitfields(cur, 2, PRESENCE_LAYOUT)
    serial_number = cur.read_u32()
    timestamp = _read_timestamp(ctx)
    speed_of_sound = 0.1 * cur.read_u16()
    temperature = 0.01 * cur.read_i16()
    pressure = 0.001 * cur.read_u32()
    heading = 0.01 * cur.read_u16()
    pitch = 0.01 * cur.read_i16()
    roll = 0.01 * cur.read_i16()
    cur.skip(2)  # kind-specific word, decoded by the caller
    cell_size = 0.001 * cur.read_u16()
    cur.skip(2)  # blanking
    nominal_correlation = cur.read_u8()
    temperature_pressure_sensor = cur.read_u8() / 5 - 4
    battery_voltage = 0.1 * cur.read_u16()
    magnetometer = (cur.read_i16(), cur.read_i16(), cur.read_i16())
    accelerometer = (
        ACCELEROMETER_SCALE * cur.read_i16(),
        ACCELEROMETER_SCALE * cur.read_i16(),
        ACCELEROMETER_SCALE * cur.read_i16(),
    )
    cur.skip(2)  # ambiguity velocity
    data_set_description = cur.read_u16()
    transmitted_energy = cur.read_u16()
    velocity_scaling = cur.read_i8()
    power_level = cur.read_i8()
    magnetometer_temperature = 0.001 * cur.read_i16()
    real_time_clock_temperature = 0.01 * cur.read_i16()
    error_word, error_fields = read_bitfields(cur, 2, ERROR_STATUS_LAYOUT)
    _, extended_fields = read_bitfields(cur, 2, EXTENDED_STATUS_LAYOUT)
    status_word, status_fields = read_bitfields(cur, 4, STATUS_LAYOUT)
    ensemble_counter = cur.read_u32()
    status = ProfileStatus(**status_fields)

    ctx.seek(AMBIGUITY_VELOCITY_OFFSET)
    ambiguity_velocity = velocity_scale(velocity_scaling) * cur.read_u16()
    ctx.seek(BLANKING_OFFSET)
    blanking = cur.read_u16() * (0.01 if status.blanking_scaling_cm else 0.001)
    ctx.seek(COMMON_BLOCK_SIZE)

    return CommonData(
        version=version,
        offset_of_data=offset_of_data,
        presence=PresenceFlags.from_fields(presence_fields),
        serial_number=serial_number,
        timestamp=timestamp,
        speed_of_sound=speed_of_sound,
        temperature=temperature,
        pressure=pressure,
        heading=heading,
        pitch=pitch,
        roll=roll,
        cell_size=cell_size,
        blanking=blanking,
        nominal_correlation=nominal_correlation,
        temperature_pressure_sensor=temperature_pressure_sensor,
        battery_voltage=battery_voltage,
        magnetometer=magnetometer,
        accelerometer=accelerometer,
        ambiguity_velocity=ambiguity_velocity,
        data_set_description=data_set_description,
        transmitted_energy=transmitted_energy,
        velocity_scaling=velocity_scaling,
        power_level=power_level,
        magnetometer_temperature=magnetometer_temperature,
        real_time_clock_temperature=real_time_clock_temperature,
        error_word=error_word,
        error=ErrorStatus(**error_fields),
        extended_status=ExtendedStatus(**extended_fields),
        status_word=status_word,
        status=status,
        ensemble_counter=ensemble_counter,
    )


def _decode_stm(ctx: DecodeContext) -> StmData | None:
    series = ctx.header.data_series_id
    has_extension = STM_EXTENSION.get(series)
    if has_extension is None:
        ctx.note(
            UNKNOWN_TAG,
            f"no velocity-section layout for data series 0x{series:02X}; "
            "assuming no STM extension",
        )
        return None
    if not has_extension:
        return None
    cur = ctx.cursor
    return StmData(scattering=cur.read_f32(), high_range=cur.read_f32())


def decode_current_profile(ctx: DecodeContext) -> CurrentProfileRecord:
    cur = ctx.cursor
    common = decode_common(ctx)
    flags = common.presence

    ctx.seek(KIND_WORD_OFFSET)
    _, layout = read_bitfields(cur, 2, BEAM_CELL_LAYOUT)
    beams = layout["number_of_beams"]
    cells = layout["number_of_cells"]

    ctx.seek(common.offset_of_data)
    stm = _decode_stm(ctx)

    # Velocity and amplitude are only stored alongside correlation data.
    velocity = _gated_matrix(
        cur,
        "<i2",
        beams,
        cells,
        flags.factor("has_velocity_data", "has_correlation_data"),
    ) * velocity_scale(common.velocity_scaling)
    amplitude = 0.5 * _gated_matrix(
        cur,
        "<u1",
        beams,
        cells,
        flags.factor("has_amplitude_data", "has_correlation_data"),
    )
    correlation = _gated_matrix(
        cur, "<u1", beams, cells, flags.factor("has_correlation_data")
    )

    altimeter = None
    if flags.has_altimeter_data:
        altimeter = AltimeterData(
            distance=cur.read_f32(), quality=cur.read_u16(), status=cur.read_u16()
        )

    ast = None
    if flags.has_ast_data:
        ast = AstData(
            distance=cur.read_f32(),
            quality=cur.read_u16(),
            offset=cur.read_i16(),
            pressure=cur.read_f32(),
        )

    altimeter_raw = None
    if flags.has_altimeter_raw_data:
        sample_count = cur.read_u32()
        sample_distance = 1e-4 * cur.read_u16()
        altimeter_raw = AltimeterRawData(
            sample_distance=sample_distance,
            samples=cur.read_array("<i2", sample_count),
        )

    ahrs = None
    if flags.has_ahrs_data:
        ahrs = AhrsData(
            rotation_matrix=cur.read_array("<f4", 9).reshape(3, 3),
            quaternion=cur.read_f32_tuple(4),
            gyro=cur.read_f32_tuple(3),
        )

    percentage_good = cur.read_array(
        "<u1", cells * flags.factor("has_percentage_good_data")
    )

    standard_deviation = None
    if flags.has_standard_deviation_data:
        standard_deviation = StandardDeviationData(
            pitch=0.01 * cur.read_i16(),
            roll=0.01 * cur.read_i16(),
            heading=0.01 * cur.read_i16(),
            pressure=0.001 * cur.read_i16(),
        )

    return CurrentProfileRecord(
        header=ctx.header,
        common=common,
        number_of_beams=beams,
        coordinate_system=layout["coordinate_system"],
        number_of_cells=cells,
        stm=stm,
        velocity=velocity,
        amplitude=amplitude,
        correlation=correlation,
        altimeter=altimeter,
        ast=ast,
        altimeter_raw=altimeter_raw,
        ahrs=ahrs,
        percentage_good=percentage_good,
        standard_deviation=standard_deviation,
    )


def decode_echosounder_profile(ctx: DecodeContext) -> EchosounderProfileRecord:
    cur = ctx.cursor
    common = decode_common(ctx)
    ctx.seek(KIND_WORD_OFFSET)
    cells = cur.read_u16()
    ctx.seek(AMBIGUITY_VELOCITY_OFFSET)
    frequency = cur.read_u16()
    ctx.seek(common.offset_of_data)
    return EchosounderProfileRecord(
        header=ctx.header,
        common=common,
        number_of_cells=cells,
        echosounder_frequency=frequency,
        echosounder_data=0.01 * cur.read_array("<u2", cells),
    )


def decode_echosounder_raw(ctx: DecodeContext) -> EchosounderRawRecord:
    cur = ctx.cursor
    ctx.seek(0)
    version = cur.read_u8()
    offset_of_data = cur.read_u8()
    timestamp = _read_timestamp(ctx)
    error_word, error_fields = read_bitfields(cur, 2, ERROR_STATUS_LAYOUT)
    status_word, status_fields = read_bitfields(cur, 4, STATUS_LAYOUT)
    serial_number = cur.read_u32()
    number_of_samples = cur.read_u32()
    start_sample_index = cur.read_u32()
    sampling_rate = cur.read_f32()

    ctx.seek(offset_of_data)
    samples = cur.read_array("<i4", 2 * number_of_samples).reshape(-1, 2)

    return EchosounderRawRecord(
        header=ctx.header,
        version=version,
        offset_of_data=offset_of_data,
        timestamp=timestamp,
        error_word=error_word,
        error=ErrorStatus(**error_fields),
        status_word=status_word,
        status=EchosounderRawStatus(**status_fields),
        serial_number=serial_number,
        number_of_samples=number_of_samples,
        start_sample_index=start_sample_index,
        sampling_rate=sampling_rate,
        samples=samples,
    )


def decode_spectrum_profile(ctx: DecodeContext) -> SpectrumProfileRecord:
    cur = ctx.cursor
    common = decode_common(ctx)
    ctx.seek(KIND_WORD_OFFSET)
    _, layout = read_bitfields(cur, 2, SPECTRUM_BEAM_BIN_LAYOUT)
    beams = layout["number_of_beams"]
    bins = layout["number_of_bins"]

    spectrum = None
    ctx.seek(common.offset_of_data)
    if common.presence.has_spectrum_data:
        cur.skip(SPECTRUM_DATA_SKIP)
        start_frequency = cur.read_f32()
        step_frequency = cur.read_f32()
        spectrum = SpectrumData(
            start_frequency=start_frequency,
            step_frequency=step_frequency,
            bins=_gated_matrix(cur, "<i2", beams, bins, 1),
        )

    return SpectrumProfileRecord(
        header=ctx.header,
        common=common,
        number_of_beams=beams,
        number_of_bins=bins,
        spectrum=spectrum,
    )


def _wave_band(cur: ByteCursor) -> WaveBand:
    band = WaveBand(*cur.read_f32_tuple(WAVE_BAND_COUNT))
    cur.skip(WAVE_RESERVED_TRAILER)
    return band


def _wave_spectrum(cur: ByteCursor, per_bin: int) -> WaveSpectrum:
    low, high, step = cur.read_f32_tuple(3)
    bins = cur.read_u16()
    cur.skip(WAVE_SPECTRUM_RESERVED)
    data = cur.read_array("<f4", per_bin * bins).astype(np.float64)
    return WaveSpectrum(
        low_frequency=low,
        high_frequency=high,
        step_frequency=step,
        number_of_bins=bins,
        data=data,
    )


def decode_wave(ctx: DecodeContext) -> WaveRecord:
    cur = ctx.cursor
    ctx.seek(0)
    version = cur.read_u8()
    offset_of_data = cur.read_u8()
    _, flag_fields = read_bitfields(cur, 2, WAVE_FLAGS_LAYOUT)
    flags = WaveFlags.from_fields(flag_fields)
    serial_number = cur.read_u32()
    timestamp = _read_timestamp(ctx)
    wave_counter = cur.read_u16()
    error_word, error_fields = read_bitfields(cur, 4, WAVE_ERROR_LAYOUT)
    _, status_fields = read_bitfields(cur, 4, WAVE_STATUS_LAYOUT)
    spectrum_type = cur.read_u8()
    processing_method = cur.read_u8()
    target_cell = cur.read_u8()
    cur.skip(1)
    number_of_no_detects = cur.read_u16()
    number_of_bad_detects = cur.read_u16()
    cut_off_frequency = cur.read_f32()
    processing_time = cur.read_f32()
    number_of_zero_crossings = cur.read_u16()
    version_string = cur.read_bytes(4).decode("ascii", errors="replace").rstrip("\x00")

    ctx.seek(offset_of_data)
    parameters = None
    if flags.has_wave_parameters:
        parameters = WaveParameters(*cur.read_f32_tuple(WAVE_PARAMETER_COUNT))
        cur.skip(WAVE_RESERVED_TRAILER)
    swell = sea = None
    if flags.has_wave_band:
        swell = _wave_band(cur)
        sea = _wave_band(cur)
    energy = _wave_spectrum(cur, 1) if flags.has_energy_spectra else None
    fourier = _wave_spectrum(cur, 4) if flags.has_fourier_spectra else None
    direction = _wave_spectrum(cur, 2) if flags.has_direction_spectra else None

    return WaveRecord(
        header=ctx.header,
        version=version,
        offset_of_data=offset_of_data,
        flags=flags,
        serial_number=serial_number,
        timestamp=timestamp,
        wave_counter=wave_counter,
        error_word=error_word,
        error=WaveError(**error_fields),
        status=WaveStatus(**status_fields),
        spectrum_type=spectrum_type,
        processing_method=processing_method,
        target_cell=target_cell,
        number_of_no_detects=number_of_no_detects,
        number_of_bad_detects=number_of_bad_detects,
        cut_off_frequency=cut_off_frequency,
        processing_time=processing_time,
        number_of_zero_crossings=number_of_zero_crossings,
        version_string=version_string,
        parameters=parameters,
        swell=swell,
        sea=sea,
        energy=energy,
        fourier=fourier,
        direction=direction,
    )


def decode_raw_string(ctx: DecodeContext) -> RawStringRecord:
    ctx.seek(0)
    payload = ctx.cursor.read_bytes(ctx.header.data_size)
    return RawStringRecord(
        header=ctx.header, text=payload.decode("utf-8", errors="replace")
    )


BODY_DECODERS: dict[int, Callable[[DecodeContext], Record]] = {
    0x15: decode_current_profile,
    0x16: decode_current_profile,
    0x18: decode_current_profile,
    0x1A: decode_current_profile,
    0x1E: decode_current_profile,
    0x1F: decode_current_profile,
    0x1C: decode_echosounder_profile,
    0x23: decode_echosounder_raw,
    0x24: decode_echosounder_raw,
    0x20: decode_spectrum_profile,
    0x30: decode_wave,
    0xA0: decode_raw_string,
}


_DECODER_KINDS = {
    decode_current_profile: CurrentProfileRecord.kind,
    decode_echosounder_profile: EchosounderProfileRecord.kind,
    decode_echosounder_raw: EchosounderRawRecord.kind,
    decode_spectrum_profile: SpectrumProfileRecord.kind,
    decode_wave: WaveRecord.kind,
    decode_raw_string: RawStringRecord.kind,
}


def series_kind(series: int) -> str:
    decoder = BODY_DECODERS.get(series)
    return UnknownRecord.kind if decoder is None else _DECODER_KINDS[decoder]


def decode_body(ctx: DecodeContext) -> Record:
    series = ctx.header.data_series_id
    decoder = BODY_DECODERS.get(series)
    if decoder is None:
        ctx.note(
            UNKNOWN_TAG,
            f"unknown data series 0x{series:02X}; skipping {ctx.header.data_size} bytes",
            offset=ctx.header.offset,
        )
        return UnknownRecord(header=ctx.header)
    return decoder(ctx)


__all__ = [
    "BODY_DECODERS",
    "DecodeContext",
    "decode_body",
    "decode_common",
    "decode_current_profile",
    "decode_echosounder_profile",
    "decode_echosounder_raw",
    "decode_spectrum_profile",
    "decode_wave",
    "decode_raw_string",
    "series_kind",
]
