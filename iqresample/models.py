"""Core data types and tuning constants shared across the resampling pipeline."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

# --- Application constants ---
APP_NAME = "iq_resample_tool"
PRESETS_FILENAME = "iq_resample_tool_presets.conf"

# --- Pipeline and buffer configuration ---
STOPBAND_ATTENUATION_DB = 60.0
PROGRESS_UPDATE_INTERVAL = 1
NUM_BUFFERS = 512
BUFFER_SIZE_SAMPLES = 131072
RESAMPLER_OUTPUT_SAFETY_MARGIN = 128
IO_RING_BUFFER_CAPACITY = 1024 * 1024 * 1024
WRITER_THREAD_CHUNK_SIZE = 1024 * 1024

# --- DSP and sanity-check limits ---
MIN_ACCEPTABLE_RATIO = 0.001
MAX_ACCEPTABLE_RATIO = 1000.0
SHIFT_FACTOR_LIMIT = 5.0
DC_BLOCK_CUTOFF_HZ = 10.0

# --- I/Q correction tuning ---
IQ_CORRECTION_FFT_SIZE = 1024
IQ_CORRECTION_DEFAULT_PERIOD = 2000000
IQ_BASE_INCREMENT = 0.0001
IQ_MAX_PASSES = 25
IQ_CORRECTION_PEAK_THRESHOLD_DB = -60.0
IQ_CORRECTION_SMOOTHING_FACTOR = 0.05

# --- Parsing and resource limits ---
MAX_PRESETS = 128
MAX_LINE_LENGTH = 1024

# --- Input summary limits ---
MAX_SUMMARY_ITEMS = 16
SUMMARY_LABEL_MAX = 63
SUMMARY_VALUE_MAX = 127


class SampleFormat(enum.IntEnum):
    """Raw sample encodings understood by the converters."""

    FORMAT_UNKNOWN = 0
    S8 = 1
    U8 = 2
    S16 = 3
    U16 = 4
    S32 = 5
    U32 = 6
    F32 = 7
    CS8 = 8
    CU8 = 9
    CS16 = 10
    CU16 = 11
    CS32 = 12
    CU32 = 13
    CF32 = 14
    SC16Q11 = 15


class OutputType(enum.IntEnum):
    """Container written to the output target."""

    RAW = 0
    WAV = 1
    WAV_RF64 = 2


class SdrSoftwareType(enum.IntEnum):
    """Recording software that produced an input file."""

    UNKNOWN = 0
    SDR_CONSOLE = 1
    SDR_SHARP = 2
    SDR_UNO = 3
    SDR_CONNECT = 4


class FrequencyShiftRequestType(enum.IntEnum):
    """How a frequency shift was requested."""

    NONE = 0
    MANUAL = 1
    METADATA_CALC_TARGET = 2


@dataclass
class PresetDefinition:
    """A named bundle of output settings loaded from the presets file."""

    name: str
    description: Optional[str] = None
    target_rate: float = 0.0
    sample_format_name: Optional[str] = None
    output_type: OutputType = OutputType.RAW
    gain: float = 0.0
    gain_provided: bool = False
    dc_block_enable: bool = False
    dc_block_provided: bool = False
    iq_correction_enable: bool = False
    iq_correction_provided: bool = False


@dataclass
class SdrMetadata:
    """Metadata recovered from an SDR recording; None marks an absent field."""

    source_software: SdrSoftwareType = SdrSoftwareType.UNKNOWN
    software_name: Optional[str] = None
    software_version: Optional[str] = None
    radio_model: Optional[str] = None
    center_freq_hz: Optional[float] = None
    timestamp_unix: Optional[int] = None
    timestamp_str: Optional[str] = None


@dataclass(frozen=True)
class SummaryItem:
    """One label/value line of an input summary."""

    label: str
    value: str


@dataclass
class InputSummary:
    """Ordered, bounded list of summary lines describing the input source."""

    items: list[SummaryItem] = field(default_factory=list)

    def add(self, label: str, value: object) -> None:
        """Append a line; silently ignored once the summary is full."""
        if len(self.items) >= MAX_SUMMARY_ITEMS:
            return
        self.items.append(
            SummaryItem(str(label)[:SUMMARY_LABEL_MAX], str(value)[:SUMMARY_VALUE_MAX])
        )

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


@dataclass
class SourceInfo:
    """Length and rate of the input source; frames <= 0 means unknown length."""

    frames: int = 0
    samplerate: int = 0


@dataclass
class AppConfig:
    """User-facing configuration for one run."""

    input_type: Optional[str] = None
    input_filename: Optional[str] = None
    output_filename: Optional[str] = None
    sample_type_name: Optional[str] = None
    output_type_name: Optional[str] = None
    output_type_provided: bool = False
    output_to_stdout: bool = False
    preset_name: Optional[str] = None
    gain: float = 1.0
    gain_provided: bool = False
    shift_after_resample: bool = False
    no_resample: bool = False
    raw_passthrough: bool = False
    user_rate_provided: bool = False
    iq_correction_enable: bool = False
    dc_block_enable: bool = False

    frequency_shift_request_type: FrequencyShiftRequestType = FrequencyShiftRequestType.NONE
    frequency_shift_request_value: float = 0.0

    freq_shift_hz: float = 0.0
    freq_shift_requested: bool = False

    center_frequency_target_hz: float = 0.0
    set_center_frequency_target_hz: bool = False

    raw_file_sample_rate_hz: Optional[float] = None
    raw_file_format: Optional[str] = None

    output_type: OutputType = OutputType.RAW
    output_format: SampleFormat = SampleFormat.FORMAT_UNKNOWN
    target_rate: float = 0.0
    help_requested: bool = False

    effective_input_filename: Optional[str] = None
    effective_output_filename: Optional[str] = None

    presets: list[PresetDefinition] = field(default_factory=list)


def _empty_complex() -> np.ndarray:
    return np.zeros(0, dtype=np.complex64)


@dataclass
class SampleChunk:
    """A pooled unit of work travelling through the pipeline stages."""

    raw_input_data: bytearray = field(default_factory=bytearray)
    complex_pre_resample_data: np.ndarray = field(default_factory=_empty_complex)
    complex_resampled_data: np.ndarray = field(default_factory=_empty_complex)
    complex_post_resample_data: Optional[np.ndarray] = None
    final_output_data: bytes = b""
    frames_read: int = 0
    frames_to_write: int = 0
    is_last_chunk: bool = False
    stream_discontinuity_event: bool = False


ProgressCallback = Callable[[int, int, int, Any], None]


@dataclass
class AppResources:
    """Runtime state shared by the pipeline stages."""

    config: Optional[AppConfig] = None
    resampler: Any = None
    pre_resample_nco: Any = None
    post_resample_nco: Any = None
    actual_nco_shift_hz: float = 0.0
    is_passthrough: bool = False

    dc_block: Any = None
    iq_corrector: Any = None
    iq_accum_buffer: np.ndarray = field(
        default_factory=lambda: np.zeros(IQ_CORRECTION_FFT_SIZE, dtype=np.complex64)
    )
    iq_samples_in_accum: int = 0

    selected_input_ops: Any = None
    source_info: SourceInfo = field(default_factory=SourceInfo)
    input_format: SampleFormat = SampleFormat.FORMAT_UNKNOWN
    input_bytes_per_sample_pair: int = 0
    sdr_info: SdrMetadata = field(default_factory=SdrMetadata)
    sdr_info_present: bool = False
    writer: Any = None
    output_bytes_per_sample_pair: int = 0

    sample_chunk_pool: list[SampleChunk] = field(default_factory=list)
    max_out_samples: int = 0

    free_sample_chunk_queue: Any = None
    raw_to_pre_process_queue: Any = None
    pre_process_to_resampler_queue: Any = None
    resampler_to_post_process_queue: Any = None
    iq_optimization_data_queue: Any = None
    stdout_queue: Any = None
    file_write_buffer: Any = None

    progress_lock: threading.Lock = field(default_factory=threading.Lock)
    error_occurred: bool = False
    end_of_stream_reached: bool = False
    threads_started: bool = False

    total_frames_read: int = 0
    total_output_frames: int = 0
    final_output_size_bytes: int = 0
    expected_total_output_frames: int = -1
    start_time: float = 0.0

    progress_callback: Optional[ProgressCallback] = None
    progress_callback_udata: Any = None