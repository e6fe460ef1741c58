"""
Decoded AD2CP record types.

Every record kind is a frozen dataclass carrying its :class:`RecordHeader`.
Packed words (presence flags, status and error words) are small dataclasses
whose field names match the bit layouts declared next to them, so a decoded
layout dict can be splatted straight into the constructor.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Mapping

import numpy as np

from .bits import BitLayout, label_for
from .header import RecordHeader

WAKE_UP_LABELS = {
    0: "bad power",
    1: "power applied",
    2: "break",
    3: "RTC alarm",
}
PROFILE_ORIENTATION_LABELS = {
    0: "XUP",
    1: "XDOWN",
    2: "YUP",
    3: "YDOWN",
    4: "ZUP",
    5: "ZDOWN",
    7: "AHRS",
}
# No entry for 2 here; the raw echosounder table has one.
PROFILE_AUTO_ORIENTATION_LABELS = {0: "Fixed", 1: "Auto", 3: "AHRS3D"}
RAW_ORIENTATION_LABELS = {4: "UP", 5: "DOWN", 7: "AHRS"}
RAW_AUTO_ORIENTATION_LABELS = {0: "Fixed", 1: "Auto", 2: "Auto3D", 3: "AHRS3D"}
COORDINATE_SYSTEM_LABELS = {0: "ENU", 1: "XYZ", 2: "BEAM", 3: "not used"}
SPECTRUM_TYPE_LABELS = {0: "Pressure", 1: "Velocity", 2: "Auto depth", 3: "AST only"}
PROCESSING_METHOD_LABELS = {2: "SUV", 4: "MLMST"}

PRESENCE_LAYOUT: BitLayout = (
    ("has_spectrum_data", 1),
    ("has_standard_deviation_data", 1),
    ("has_percentage_good_data", 1),
    ("has_ahrs_data", 1),
    ("has_echosounder_data", 1),
    ("has_ast_data", 1),
    ("has_altimeter_raw_data", 1),
    ("has_altimeter_data", 1),
    ("has_correlation_data", 1),
    ("has_amplitude_data", 1),
    ("has_velocity_data", 1),
    ("has_external_sensor", 1),
    ("has_tilt_sensor", 1),
    ("has_compass_sensor", 1),
    ("has_temperature_sensor", 1),
    ("has_pressure_sensor", 1),
)

BEAM_CELL_LAYOUT: BitLayout = (
    ("number_of_beams", 4),
    ("coordinate_system", 2),
    ("number_of_cells", 10),
)

SPECTRUM_BEAM_BIN_LAYOUT: BitLayout = (
    ("number_of_beams", 3),
    ("number_of_bins", 13),
)

ERROR_STATUS_LAYOUT: BitLayout = (
    ("tag_error_beam4_quadrature", 1),
    ("tag_error_beam4_in_phase", 1),
    ("tag_error_beam3_quadrature", 1),
    ("tag_error_beam3_in_phase", 1),
    ("tag_error_beam2_quadrature", 1),
    ("tag_error_beam2_in_phase", 1),
    ("tag_error_beam1_quadrature", 1),
    ("tag_error_beam1_in_phase", 1),
    (None, 2),
    ("sensor_read_failure", 1),
    ("measurement_not_finished", 1),
    ("data_retrieval_samples_missing", 1),
    ("data_retrieval_underrun", 1),
    ("data_retrieval_overflow", 1),
    ("data_retrieval_fifo_error", 1),
)

EXTENDED_STATUS_LAYOUT: BitLayout = (
    ("internal_processing", 1),
    ("extended_status_valid", 1),
    (None, 6),
    ("processor_idle_below_3_percent", 1),
    ("processor_idle_below_6_percent", 1),
    ("processor_idle_below_12_percent", 1),
    ("external_sound_velocity_probe", 1),
    ("external_heading_pitch_roll_position", 1),
    ("external_heading", 1),
    ("external_pitch_roll", 1),
    ("file_system_flush", 1),
)

STATUS_LAYOUT: BitLayout = (
    ("wake_up_state", 4),
    ("orientation", 3),
    ("auto_orientation", 3),
    ("previous_wake_up_state", 4),
    ("previous_measurement_skipped", 1),
    ("active_configuration", 1),
    ("echosounder_index", 4),
    ("telemetry_data", 1),
    ("boost_running", 1),
    ("echosounder_frequency_bin", 5),
    (None, 3),
    ("blanking_scaling_cm", 1),
    (None, 1),
)

WAVE_FLAGS_LAYOUT: BitLayout = (
    (None, 11),
    ("has_direction_spectra", 1),
    ("has_fourier_spectra", 1),
    ("has_wave_band", 1),
    ("has_energy_spectra", 1),
    ("has_wave_parameters", 1),
)

WAVE_ERROR_LAYOUT: BitLayout = (
    (None, 16),
    ("no_pressure_peak", 1),
    ("close_to_clip", 1),
    ("ast_height_loss", 1),
    ("high_tilt", 1),
    ("correlation", 1),
    (None, 3),
    ("no_pressure", 1),
    ("low_pressure", 1),
    ("low_amplitude", 1),
    ("white_noise", 1),
    ("unreasonable_estimation", 1),
    ("never_processed", 1),
    ("ast_out_of_bound", 1),
    ("direction_ambiguity", 1),
)

WAVE_STATUS_LAYOUT: BitLayout = (
    (None, 8),
    ("active_configuration", 1),
    (None, 23),
)


def _flags_from(fields: Mapping[str, int]) -> dict[str, bool]:
    return {name: bool(value) for name, value in fields.items()}


@dataclass(frozen=True)
class PresenceFlags:
    has_spectrum_data: bool = False
    has_standard_deviation_data: bool = False
    has_percentage_good_data: bool = False
    has_ahrs_data: bool = False
    has_echosounder_data: bool = False
    has_ast_data: bool = False
    has_altimeter_raw_data: bool = False
    has_altimeter_data: bool = False
    has_correlation_data: bool = False
    has_amplitude_data: bool = False
    has_velocity_data: bool = False
    has_external_sensor: bool = False
    has_tilt_sensor: bool = False
    has_compass_sensor: bool = False
    has_temperature_sensor: bool = False
    has_pressure_sensor: bool = False

    @classmethod
    def from_fields(cls, fields: Mapping[str, int]) -> "PresenceFlags":
        return cls(**_flags_from(fields))

    def factor(self, *names: str) -> int:
        """Product of the named flags as 0/1, used to size gated arrays."""
        result = 1
        for name in names:
            result *= int(getattr(self, name))
        return result


@dataclass(frozen=True)
class ErrorStatus:
    tag_error_beam4_quadrature: int
    tag_error_beam4_in_phase: int
    tag_error_beam3_quadrature: int
    tag_error_beam3_in_phase: int
    tag_error_beam2_quadrature: int
    tag_error_beam2_in_phase: int
    tag_error_beam1_quadrature: int
    tag_error_beam1_in_phase: int
    sensor_read_failure: int
    measurement_not_finished: int
    data_retrieval_samples_missing: int
    data_retrieval_underrun: int
    data_retrieval_overflow: int
    data_retrieval_fifo_error: int


@dataclass(frozen=True)
class ExtendedStatus:
    internal_processing: int
    extended_status_valid: int
    processor_idle_below_3_percent: int
    processor_idle_below_6_percent: int
    processor_idle_below_12_percent: int
    external_sound_velocity_probe: int
    external_heading_pitch_roll_position: int
    external_heading: int
    external_pitch_roll: int
    file_system_flush: int


@dataclass(frozen=True)
class ProfileStatus:
    orientation_labels: ClassVar[Mapping[int, str]] = PROFILE_ORIENTATION_LABELS
    auto_orientation_labels: ClassVar[Mapping[int, str]] = PROFILE_AUTO_ORIENTATION_LABELS

    wake_up_state: int
    orientation: int
    auto_orientation: int
    previous_wake_up_state: int
    previous_measurement_skipped: int
    active_configuration: int
    echosounder_index: int
    telemetry_data: int
    boost_running: int
    echosounder_frequency_bin: int
    blanking_scaling_cm: int

    @property
    def wake_up_state_label(self) -> str:
        return label_for(WAKE_UP_LABELS, self.wake_up_state)

    @property
    def previous_wake_up_state_label(self) -> str:
        return label_for(WAKE_UP_LABELS, self.previous_wake_up_state)

    @property
    def orientation_label(self) -> str:
        return label_for(self.orientation_labels, self.orientation)

    @property
    def auto_orientation_label(self) -> str:
        return label_for(self.auto_orientation_labels, self.auto_orientation)

    @property
    def echosounder_number(self) -> int:
        return self.echosounder_index + 1


@dataclass(frozen=True)
class EchosounderRawStatus(ProfileStatus):
    orientation_labels: ClassVar[Mapping[int, str]] = RAW_ORIENTATION_LABELS
    auto_orientation_labels: ClassVar[Mapping[int, str]] = RAW_AUTO_ORIENTATION_LABELS

    @property
    def echo_index_label(self) -> str:
        return f"FREQ{self.echosounder_index + 1}"


@dataclass(frozen=True)
class WaveFlags:
    has_direction_spectra: bool
    has_fourier_spectra: bool
    has_wave_band: bool
    has_energy_spectra: bool
    has_wave_parameters: bool

    @classmethod
    def from_fields(cls, fields: Mapping[str, int]) -> "WaveFlags":
        return cls(**_flags_from(fields))


@dataclass(frozen=True)
class WaveError:
    no_pressure_peak: int
    close_to_clip: int
    ast_height_loss: int
    high_tilt: int
    correlation: int
    no_pressure: int
    low_pressure: int
    low_amplitude: int
    white_noise: int
    unreasonable_estimation: int
    never_processed: int
    ast_out_of_bound: int
    direction_ambiguity: int


@dataclass(frozen=True)
class WaveStatus:
    active_configuration: int


@dataclass(frozen=True)
class CommonData:
    """Fixed block shared by the current profile, echosounder and spectrum records."""

    version: int
    offset_of_data: int
    presence: PresenceFlags
    serial_number: int
    timestamp: datetime | None
    speed_of_sound: float
    temperature: float
    pressure: float
    heading: float
    pitch: float
    roll: float
    cell_size: float
    blanking: float
    nominal_correlation: int
    temperature_pressure_sensor: float
    battery_voltage: float
    magnetometer: tuple[int, int, int]
    accelerometer: tuple[float, float, float]
    ambiguity_velocity: float
    data_set_description: int
    transmitted_energy: int
    velocity_scaling: int
    power_level: int
    magnetometer_temperature: float
    real_time_clock_temperature: float
    error_word: int
    error: ErrorStatus
    extended_status: ExtendedStatus
    status_word: int
    status: ProfileStatus
    ensemble_counter: int


@dataclass(frozen=True)
class StmData:
    scattering: float
    high_range: float


@dataclass(frozen=True)
class AltimeterData:
    distance: float
    quality: int
    status: int


@dataclass(frozen=True)
class AstData:
    distance: float
    quality: int
    offset: int
    pressure: float


@dataclass(frozen=True)
class AltimeterRawData:
    sample_distance: float
    samples: np.ndarray

    @property
    def number_of_samples(self) -> int:
        return int(self.samples.size)


@dataclass(frozen=True)
class AhrsData:
    rotation_matrix: np.ndarray
    quaternion: tuple[float, ...]
    gyro: tuple[float, ...]


@dataclass(frozen=True)
class StandardDeviationData:
    pitch: float
    roll: float
    heading: float
    pressure: float


@dataclass(frozen=True)
class SpectrumData:
    start_frequency: float
    step_frequency: float
    bins: np.ndarray


@dataclass(frozen=True)
class WaveParameters:
    height0: float
    height3: float
    height10: float
    height_max: float
    height_mean: float
    period_mean: float
    period_peak: float
    period_z: float
    period_1d3: float
    period_1d10: float
    period_max: float
    period_energy: float
    direction_at_peak_period: float
    spreading_at_peak_period: float
    wave_direction_mean: float
    unidirectivity_index: float
    pressure_mean: float
    current_speed_mean: float
    current_direction_mean: float
    ast_mean_distance: float


@dataclass(frozen=True)
class WaveBand:
    low_frequency: float
    high_frequency: float
    height0: float
    period_mean: float
    period_peak: float
    direction_at_peak_period: float
    wave_direction_mean: float
    spreading_at_peak_period: float


@dataclass(frozen=True)
class WaveSpectrum:
    low_frequency: float
    high_frequency: float
    step_frequency: float
    number_of_bins: int
    data: np.ndarray


@dataclass(frozen=True)
class CurrentProfileRecord:
    kind: ClassVar[str] = "current_profile"

    header: RecordHeader
    common: CommonData
    number_of_beams: int
    coordinate_system: int
    number_of_cells: int
    stm: StmData | None
    velocity: np.ndarray
    amplitude: np.ndarray
    correlation: np.ndarray
    altimeter: AltimeterData | None
    ast: AstData | None
    altimeter_raw: AltimeterRawData | None
    ahrs: AhrsData | None
    percentage_good: np.ndarray
    standard_deviation: StandardDeviationData | None

    @property
    def coordinate_system_label(self) -> str:
        return label_for(COORDINATE_SYSTEM_LABELS, self.coordinate_system)


@dataclass(frozen=True)
class EchosounderProfileRecord:
    kind: ClassVar[str] = "echosounder_profile"

    header: RecordHeader
    common: CommonData
    number_of_cells: int
    echosounder_frequency: int
    echosounder_data: np.ndarray


@dataclass(frozen=True)
class EchosounderRawRecord:
    kind: ClassVar[str] = "echosounder_raw"

    header: RecordHeader
    version: int
    offset_of_data: int
    timestamp: datetime | None
    error_word: int
    error: ErrorStatus
    status_word: int
    status: EchosounderRawStatus
    serial_number: int
    number_of_samples: int
    start_sample_index: int
    sampling_rate: float
    samples: np.ndarray


@dataclass(frozen=True)
class SpectrumProfileRecord:
    kind: ClassVar[str] = "spectrum_profile"

    header: RecordHeader
    common: CommonData
    number_of_beams: int
    number_of_bins: int
    spectrum: SpectrumData | None


@dataclass(frozen=True)
class WaveRecord:
    kind: ClassVar[str] = "wave"

    header: RecordHeader
    version: int
    offset_of_data: int
    flags: WaveFlags
    serial_number: int
    timestamp: datetime | None
    wave_counter: int
    error_word: int
    error: WaveError
    status: WaveStatus
    spectrum_type: int
    processing_method: int
    target_cell: int
    number_of_no_detects: int
    number_of_bad_detects: int
    cut_off_frequency: float
    processing_time: float
    number_of_zero_crossings: int
    version_string: str
    parameters: WaveParameters | None
    swell: WaveBand | None
    sea: WaveBand | None
    energy: WaveSpectrum | None
    fourier: WaveSpectrum | None
    direction: WaveSpectrum | None

    @property
    def spectrum_type_label(self) -> str:
        return label_for(SPECTRUM_TYPE_LABELS, self.spectrum_type)

    @property
    def processing_method_label(self) -> str:
        return label_for(PROCESSING_METHOD_LABELS, self.processing_method)


@dataclass(frozen=True)
class RawStringRecord:
    kind: ClassVar[str] = "raw_string"

    header: RecordHeader
    text: str


@dataclass(frozen=True)
class UnknownRecord:
    kind: ClassVar[str] = "unknown"

    header: RecordHeader


Record = (
    CurrentProfileRecord
    | EchosounderProfileRecord
    | EchosounderRawRecord
    | SpectrumProfileRecord
    | WaveRecord
    | RawStringRecord
    | UnknownRecord
)
