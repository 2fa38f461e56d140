"""Frequency shifting of complex sample streams with numerically controlled oscillators."""

from __future__ import annotations

import logging
import math
import sys
from typing import Optional, TextIO

import numpy as np

from .models import SHIFT_FACTOR_LIMIT, AppConfig, AppResources
from .utils import clear_stdin_buffer

log = logging.getLogger(__name__)

_TWO_PI = 2.0 * math.pi
_ZERO_SHIFT_EPSILON = 1e-9


class ShiftError(ValueError):
    """Raised when a requested frequency shift cannot be configured."""


class Nco:
    """A numerically controlled oscillator that mixes blocks of complex samples.

    ``frequency`` is given in radians per sample. The phase carries over from
    one block to the next, so a stream can be mixed in pieces.
    """

    def __init__(self, frequency: float) -> None:
        self.frequency = float(frequency)
        self._phase = 0.0

    @property
    def phase(self) -> float:
        return self._phase

    def _mix(self, samples: np.ndarray, sign: float) -> np.ndarray:
        data = np.asarray(samples, dtype=np.complex64).ravel()
        count = data.size
        if count == 0:
            return data.copy()
        phases = self._phase + self.frequency * np.arange(count, dtype=np.float64)
        rotator = np.exp(sign * 1j * phases)
        out = (data.astype(np.complex128) * rotator).astype(np.complex64)
        self._phase = math.fmod(self._phase + self.frequency * count, _TWO_PI)
        return out

    def mix_up(self, samples: np.ndarray) -> np.ndarray:
        """Shift the samples up in frequency and return the mixed block."""
        return self._mix(samples, 1.0)

    def mix_down(self, samples: np.ndarray) -> np.ndarray:
        """Shift the samples down in frequency and return the mixed block."""
        return self._mix(samples, -1.0)

    def reset(self) -> None:
        """Reset the phase accumulator, keeping the frequency."""
        self._phase = 0.0


def _make_nco(shift_hz: float, rate: float, stage: str) -> Nco:
    if abs(shift_hz) > SHIFT_FACTOR_LIMIT * rate:
        raise ShiftError(
            f"Requested frequency shift {shift_hz:.2f} Hz exceeds sanity limit for the "
            f"{stage} rate of {rate:.1f} Hz."
        )
    return Nco(_TWO_PI * abs(shift_hz) / rate)


def create_ncos(config: AppConfig, resources: AppResources) -> None:
    """Work out the required shift and create the oscillator for the stage that applies it.

    Raises ShiftError when a target frequency is requested without centre
    frequency metadata, or when the shift exceeds the sanity limit.
    """
    resources.pre_resample_nco = None
    resources.post_resample_nco = None

    required_shift_hz = 0.0
    if config.set_center_frequency_target_hz:
        center = resources.sdr_info.center_freq_hz
        if center is None:
            raise ShiftError(
                "--target-freq provided, but input file lacks center frequency metadata."
            )
        required_shift_hz = center - config.center_frequency_target_hz
    elif config.freq_shift_requested:
        required_shift_hz = config.freq_shift_hz

    resources.actual_nco_shift_hz = required_shift_hz

    if abs(required_shift_hz) < _ZERO_SHIFT_EPSILON:
        return

    if config.shift_after_resample:
        resources.post_resample_nco = _make_nco(
            required_shift_hz, float(config.target_rate), "post-resample"
        )
    else:
        resources.pre_resample_nco = _make_nco(
            required_shift_hz, float(resources.source_info.samplerate), "pre-resample"
        )


def shift_apply(nco: Optional[Nco], shift_hz: float, samples: np.ndarray) -> np.ndarray:
    """Mix ``samples`` up for a non-negative shift, down otherwise.

    Without an oscillator, or with an empty block, the samples are returned as they are.
    """
    if nco is None or len(samples) == 0:
        return samples
    if shift_hz >= 0:
        return nco.mix_up(samples)
    return nco.mix_down(samples)


def check_nyquist_warning(
    config: AppConfig,
    resources: AppResources,
    stdin: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> bool:
    """Warn when the shift exceeds the Nyquist frequency and ask whether to go on.

    Returns True to continue, False when the user declines or input ends.
    """
    if (
        config is None
        or resources is None
        or config.output_to_stdout
        or abs(resources.actual_nco_shift_hz) < _ZERO_SHIFT_EPSILON
    ):
        return True

    rate = (
        float(config.target_rate)
        if config.shift_after_resample
        else float(resources.source_info.samplerate)
    )
    nyquist = rate / 2.0
    if abs(resources.actual_nco_shift_hz) <= nyquist:
        return True

    inp = stdin if stdin is not None else sys.stdin
    err = stderr if stderr is not None else sys.stderr

    log.warning(
        "Required frequency shift %.2f Hz exceeds the Nyquist frequency %.2f Hz for the "
        "stage where it is applied.",
        resources.actual_nco_shift_hz,
        nyquist,
    )
    log.warning("This may cause aliasing and corrupt the signal.")

    while True:
        err.write("Continue anyway? (y/n): ")
        err.flush()
        line = inp.readline()
        if line == "":
            err.write("\nEOF detected. Cancelling.\n")
            return False
        answer = line[0]
        if answer == "\n":
            # A bare newline was the character read; the rest of the next line is discarded.
            clear_stdin_buffer(inp)
        answer = answer.lower()
        if answer == "n":
            log.debug("Operation cancelled by user.")
            return False
        if answer == "y":
            return True


def reset_nco(nco: Optional[Nco]) -> None:
    """Reset an oscillator's phase if there is one."""
    if nco is not None:
        nco.reset()


def destroy_ncos(resources: Optional[AppResources]) -> None:
    """Drop both oscillators."""
    if resources is not None:
        resources.pre_resample_nco = None
        resources.post_resample_nco = None