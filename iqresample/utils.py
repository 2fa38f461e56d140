"""Small formatting and lookup helpers."""

from __future__ import annotations

import math
import sys
from typing import Optional, TextIO

from .models import SampleFormat, SdrSoftwareType

_FORMAT_TABLE: tuple[tuple[SampleFormat, str, str], ...] = (
    (SampleFormat.S8, "s8", "s8 (Signed 8-bit Real)"),
    (SampleFormat.U8, "u8", "u8 (Unsigned 8-bit Real)"),
    (SampleFormat.S16, "s16", "s16 (Signed 16-bit Real)"),
    (SampleFormat.U16, "u16", "u16 (Unsigned 16-bit Real)"),
    (SampleFormat.S32, "s32", "s32 (Signed 32-bit Real)"),
    (SampleFormat.U32, "u32", "u32 (Unsigned 32-bit Real)"),
    (SampleFormat.F32, "f32", "f32 (32-bit Float Real)"),
    (SampleFormat.CU8, "cu8", "cu8 (Unsigned 8-bit Complex)"),
    (SampleFormat.CS8, "cs8", "cs8 (Signed 8-bit Complex)"),
    (SampleFormat.CU16, "cu16", "cu16 (Unsigned 16-bit Complex)"),
    (SampleFormat.CS16, "cs16", "cs16 (Signed 16-bit Complex)"),
    (SampleFormat.CU32, "cu32", "cu32 (Unsigned 32-bit Complex)"),
    (SampleFormat.CS32, "cs32", "cs32 (Signed 32-bit Complex)"),
    (SampleFormat.CF32, "cf32", "cf32 (32-bit Float Complex)"),
    (SampleFormat.SC16Q11, "sc16q11", "sc16q11 (16-bit Signed Complex Q4.11)"),
)

_FORMAT_BY_NAME = {name: fmt for fmt, name, _ in _FORMAT_TABLE}
_DESCRIPTION_BY_FORMAT = {fmt: desc for fmt, _, desc in _FORMAT_TABLE}

_SOFTWARE_NAMES = {
    SdrSoftwareType.UNKNOWN: "Unknown",
    SdrSoftwareType.SDR_CONSOLE: "SDR Console",
    SdrSoftwareType.SDR_SHARP: "SDR#",
    SdrSoftwareType.SDR_UNO: "SDRuno",
    SdrSoftwareType.SDR_CONNECT: "SDRconnect",
}

_C_WHITESPACE = " \t\n\v\f\r"


def clear_stdin_buffer(stream: Optional[TextIO] = None) -> None:
    """Discard input up to and including the next newline, or to end of input."""
    (stream if stream is not None else sys.stdin).readline()


def format_file_size(size_bytes: int) -> str:
    """Render a byte count with decimal B/KB/MB/GB units."""
    if size_bytes < 0:
        return "(N/A)"
    kilo, mega, giga = 1000, 1000**2, 1000**3
    if size_bytes < kilo:
        return f"{size_bytes} B"
    if size_bytes < mega:
        return f"{size_bytes / kilo:.2f} KB"
    if size_bytes < giga:
        return f"{size_bytes / mega:.2f} MB"
    return f"{size_bytes / giga:.2f} GB"


def get_basename_for_parsing(path: Optional[str]) -> Optional[str]:
    """Return the final component of a path the way POSIX basename() does."""
    if path is None:
        return None
    if path == "":
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def sdr_software_type_to_string(kind: object) -> str:
    """Human-readable name of a recording software type."""
    try:
        return _SOFTWARE_NAMES[SdrSoftwareType(kind)]
    except ValueError:
        return "Invalid Type"


def trim_whitespace(text: Optional[str]) -> Optional[str]:
    """Strip leading and trailing ASCII whitespace."""
    if text is None:
        return None
    return text.strip(_C_WHITESPACE)


def format_duration(total_seconds: float) -> str:
    """Render seconds as HH:MM:SS; 'N/A' for negative or non-finite input."""
    if not math.isfinite(total_seconds) or total_seconds < 0:
        return "N/A"
    if 0 < total_seconds < 1.0:
        total_seconds = 1.0
    hours = int(total_seconds / 3600)
    total_seconds -= hours * 3600
    minutes = int(total_seconds / 60)
    total_seconds -= minutes * 60
    seconds = int(math.floor(total_seconds + 0.5))
    if seconds >= 60:
        minutes += 1
        seconds = 0
    if minutes >= 60:
        hours += 1
        minutes = 0
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_from_string(name: Optional[str]) -> SampleFormat:
    """Look up a sample format by name, case-insensitively."""
    if name is None:
        return SampleFormat.FORMAT_UNKNOWN
    return _FORMAT_BY_NAME.get(name.lower(), SampleFormat.FORMAT_UNKNOWN)


def format_description(fmt: object) -> str:
    """Full description of a sample format, or 'Unknown'."""
    try:
        return _DESCRIPTION_BY_FORMAT.get(SampleFormat(fmt), "Unknown")
    except ValueError:
        return "Unknown"