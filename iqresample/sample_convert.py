"""Conversion between raw I/Q sample encodings and normalized complex floats."""

from __future__ import annotations

import numpy as np

from .models import SampleFormat

_BYTES_PER_SAMPLE = {
    SampleFormat.S8: 1,
    SampleFormat.U8: 1,
    SampleFormat.S16: 2,
    SampleFormat.U16: 2,
    SampleFormat.S32: 4,
    SampleFormat.U32: 4,
    SampleFormat.F32: 4,
    SampleFormat.CS8: 2,
    SampleFormat.CU8: 2,
    SampleFormat.CS16: 4,
    SampleFormat.CU16: 4,
    SampleFormat.CS32: 8,
    SampleFormat.CU32: 8,
    SampleFormat.CF32: 8,
    SampleFormat.SC16Q11: 4,
}

# Integer complex inputs: (component dtype, offset, scale, compute in double)
_INPUT_SPECS = {
    SampleFormat.CS8: ("<i1", 0.0, 128.0, False),
    SampleFormat.CU8: ("<u1", 127.5, 128.0, False),
    SampleFormat.CS16: ("<i2", 0.0, 32768.0, False),
    SampleFormat.SC16Q11: ("<i2", 0.0, 2048.0, False),
    SampleFormat.CU16: ("<u2", 32767.5, 32768.0, False),
    SampleFormat.CS32: ("<i4", 0.0, 2147483648.0, True),
    SampleFormat.CU32: ("<u4", 2147483647.5, 2147483648.0, True),
}


def _as_format(fmt: object) -> SampleFormat:
    try:
        return SampleFormat(fmt)
    except ValueError:
        return SampleFormat.FORMAT_UNKNOWN


def bytes_per_sample(fmt: object) -> int:
    """Bytes per sample (per I/Q pair for complex formats); 0 if unknown."""
    return _BYTES_PER_SAMPLE.get(_as_format(fmt), 0)


def convert_raw_to_cf32(
    data: bytes | bytearray | memoryview,
    num_frames: int,
    input_format: object,
    gain: float,
) -> np.ndarray:
    """Decode ``num_frames`` I/Q pairs into gain-adjusted complex64 samples.

    Raises ValueError for formats that cannot be used as complex input or
    when ``data`` holds fewer than ``num_frames`` frames.
    """
    fmt = _as_format(input_format)
    if fmt not in _INPUT_SPECS and fmt is not SampleFormat.CF32:
        raise ValueError(f"Unhandled input format: {input_format!r}")
    if num_frames < 0:
        raise ValueError("num_frames must not be negative")

    needed = num_frames * _BYTES_PER_SAMPLE[fmt]
    buffer = memoryview(data).cast("B")
    if len(buffer) < needed:
        raise ValueError(
            f"Input holds {len(buffer)} bytes, {needed} needed for {num_frames} frames"
        )
    raw = bytes(buffer[:needed])
    gain32 = np.float32(gain)

    if fmt is SampleFormat.CF32:
        samples = np.frombuffer(raw, dtype="<c8").astype(np.complex64)
        return (samples * gain32).astype(np.complex64)

    dtype, offset, scale, use_double = _INPUT_SPECS[fmt]
    pairs = np.frombuffer(raw, dtype=dtype).reshape(-1, 2)
    if use_double:
        norm = (pairs.astype(np.float64) - offset) / scale
        scaled = (norm * np.float64(gain32)).astype(np.float32)
    else:
        norm = (pairs.astype(np.float32) - np.float32(offset)) / np.float32(scale)
        scaled = (norm * gain32).astype(np.float32)

    out = np.empty(num_frames, dtype=np.complex64)
    out.real = scaled[:, 0]
    out.imag = scaled[:, 1]
    return out


def _round_clip(values: np.ndarray, low: float, high: float) -> np.ndarray:
    values = np.nan_to_num(values, nan=0.0, posinf=high, neginf=low)
    return np.clip(np.rint(values), low, high)


def convert_cf32_to_block(samples: np.ndarray, output_format: object) -> bytes:
    """Encode complex samples into interleaved I/Q bytes of ``output_format``.

    Raises ValueError for formats that cannot be used as complex output.
    """
    fmt = _as_format(output_format)
    data = np.asarray(samples, dtype=np.complex64).ravel()
    re32 = data.real.astype(np.float32)
    im32 = data.imag.astype(np.float32)
    pair32 = np.stack((re32, im32), axis=-1)

    if fmt is SampleFormat.CS8:
        scaled = pair32 * np.float32(127.0)
        out = _round_clip(scaled, -128.0, 127.0).astype("<i1")
    elif fmt is SampleFormat.CU8:
        shifted = pair32 * np.float32(127.0) + np.float32(127.5)
        shifted = np.nan_to_num(shifted, nan=0.0, posinf=255.0, neginf=0.0)
        clamped = np.clip(shifted, np.float32(0.0), np.float32(255.0))
        out = np.floor(clamped + np.float32(0.5)).astype("<u1")
    elif fmt is SampleFormat.CS16:
        out = _round_clip(pair32 * np.float32(32767.0), -32768.0, 32767.0).astype("<i2")
    elif fmt is SampleFormat.SC16Q11:
        out = _round_clip(pair32 * np.float32(2048.0), -32768.0, 32767.0).astype("<i2")
    elif fmt is SampleFormat.CU16:
        shifted = pair32 * np.float32(32767.0) + np.float32(32767.5)
        out = _round_clip(shifted, 0.0, 65535.0).astype("<u2")
    elif fmt is SampleFormat.CS32:
        scaled = pair32.astype(np.float64) * 2147483647.0
        out = _round_clip(scaled, -2147483648.0, 2147483647.0).astype("<i4")
    elif fmt is SampleFormat.CU32:
        shifted = pair32.astype(np.float64) * 2147483647.0 + 2147483647.5
        out = _round_clip(shifted, 0.0, 4294967295.0).astype("<u4")
    elif fmt is SampleFormat.CF32:
        return data.astype("<c8").tobytes()
    else:
        raise ValueError(f"Unhandled output format: {output_format!r}")
    return out.tobytes()