"""Worker loops for the pre-processing, resampling and post-processing pipeline stages."""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from .models import (
    IQ_CORRECTION_DEFAULT_PERIOD,
    IQ_CORRECTION_FFT_SIZE,
    AppConfig,
    AppResources,
    SampleChunk,
)
from .sample_convert import convert_cf32_to_block, convert_raw_to_cf32
from .signal_handler import ShutdownController
from .spectrum_shift import reset_nco, shift_apply

log = logging.getLogger(__name__)


def _apply_stage(stage: Any, samples: np.ndarray) -> np.ndarray:
    """Run an in-place or returning ``apply`` stage and give back the processed block."""
    result = stage.apply(samples)
    return samples if result is None else result


def _recycle(resources: AppResources, chunk: SampleChunk) -> bool:
    return resources.free_sample_chunk_queue.enqueue(chunk)


def _accumulate_for_optimization(
    resources: AppResources, samples: np.ndarray, samples_since_last_opt: int
) -> int:
    """Feed samples into the optimisation window; hand full windows to the optimiser.

    Returns the updated count of samples since the last window was handed over.
    """
    remaining = samples
    while remaining.size > 0:
        needed = IQ_CORRECTION_FFT_SIZE - resources.iq_samples_in_accum
        take = min(remaining.size, needed)
        start = resources.iq_samples_in_accum
        resources.iq_accum_buffer[start:start + take] = remaining[:take]
        resources.iq_samples_in_accum += take
        remaining = remaining[take:]

        if resources.iq_samples_in_accum == IQ_CORRECTION_FFT_SIZE:
            opt_queue = resources.iq_optimization_data_queue
            if samples_since_last_opt >= IQ_CORRECTION_DEFAULT_PERIOD and opt_queue is not None:
                opt_chunk = resources.free_sample_chunk_queue.try_dequeue()
                if opt_chunk is not None:
                    opt_chunk.complex_pre_resample_data = resources.iq_accum_buffer.copy()
                    if not opt_queue.enqueue(opt_chunk):
                        _recycle(resources, opt_chunk)
                    samples_since_last_opt = 0
            resources.iq_samples_in_accum = 0
    return samples_since_last_opt + samples.size


def pre_processor_worker(
    config: AppConfig, resources: AppResources, controller: ShutdownController
) -> None:
    """Convert raw chunks to complex floats and apply DC block, I/Q correction and pre-resample shift."""
    samples_since_last_opt = 0
    in_queue = resources.raw_to_pre_process_queue
    out_queue = resources.pre_process_to_resampler_queue

    while True:
        chunk: Optional[SampleChunk] = in_queue.dequeue()
        if chunk is None:
            break

        if chunk.stream_discontinuity_event:
            reset_nco(resources.pre_resample_nco)
            if not out_queue.enqueue(chunk):
                _recycle(resources, chunk)
            continue

        if chunk.is_last_chunk:
            out_queue.enqueue(chunk)
            break

        try:
            samples = convert_raw_to_cf32(
                chunk.raw_input_data, chunk.frames_read, resources.input_format, config.gain
            )
        except ValueError:
            controller.handle_fatal_thread_error(
                "Pre-Processor: Failed to convert samples.", resources
            )
            _recycle(resources, chunk)
            continue

        if config.dc_block_enable and resources.dc_block is not None:
            samples = _apply_stage(resources.dc_block, samples)

        if config.iq_correction_enable:
            samples_since_last_opt = _accumulate_for_optimization(
                resources, samples, samples_since_last_opt
            )
            if resources.iq_corrector is not None:
                samples = _apply_stage(resources.iq_corrector, samples)

        if resources.pre_resample_nco is not None:
            samples = shift_apply(
                resources.pre_resample_nco, resources.actual_nco_shift_hz, samples
            )

        chunk.complex_pre_resample_data = samples

        if not out_queue.enqueue(chunk):
            _recycle(resources, chunk)
            break


def resampler_worker(resources: AppResources) -> None:
    """Resample each chunk to the target rate, or copy it through in passthrough mode."""
    in_queue = resources.pre_process_to_resampler_queue
    out_queue = resources.resampler_to_post_process_queue

    while True:
        chunk: Optional[SampleChunk] = in_queue.dequeue()
        if chunk is None:
            break

        if chunk.stream_discontinuity_event:
            if resources.resampler is not None:
                resources.resampler.reset()
            if not out_queue.enqueue(chunk):
                _recycle(resources, chunk)
            continue

        if chunk.is_last_chunk:
            out_queue.enqueue(chunk)
            break

        frames = chunk.complex_pre_resample_data[: chunk.frames_read]
        if resources.is_passthrough:
            resampled = np.array(frames, dtype=np.complex64, copy=True)
        else:
            resampled = np.asarray(resources.resampler.execute(frames), dtype=np.complex64)
        chunk.complex_resampled_data = resampled
        chunk.frames_to_write = int(resampled.size)

        if not out_queue.enqueue(chunk):
            _recycle(resources, chunk)
            break


def post_processor_worker(
    config: AppConfig, resources: AppResources, controller: ShutdownController
) -> None:
    """Apply the post-resample shift, encode to the output format and hand data to the writer."""
    in_queue = resources.resampler_to_post_process_queue

    while True:
        chunk: Optional[SampleChunk] = in_queue.dequeue()
        if chunk is None:
            break

        if chunk.stream_discontinuity_event:
            reset_nco(resources.post_resample_nco)
            if config.output_to_stdout:
                if not resources.stdout_queue.enqueue(chunk):
                    _recycle(resources, chunk)
                    break
            elif not _recycle(resources, chunk):
                break
            continue

        if not chunk.is_last_chunk:
            final = chunk.complex_resampled_data[: chunk.frames_to_write]
            if resources.post_resample_nco is not None:
                final = shift_apply(
                    resources.post_resample_nco, resources.actual_nco_shift_hz, final
                )
                chunk.complex_post_resample_data = final
            try:
                chunk.final_output_data = convert_cf32_to_block(final, config.output_format)
            except ValueError:
                controller.handle_fatal_thread_error(
                    "Post-Processor: Failed to convert samples.", resources
                )
                _recycle(resources, chunk)
                break

        if config.output_to_stdout:
            if not resources.stdout_queue.enqueue(chunk):
                _recycle(resources, chunk)
                break
            if chunk.is_last_chunk:
                break
            continue

        buffer = resources.file_write_buffer
        if not chunk.is_last_chunk:
            bytes_to_write = chunk.frames_to_write * resources.output_bytes_per_sample_pair
            if bytes_to_write > 0:
                written = buffer.write(chunk.final_output_data[:bytes_to_write])
                if written < bytes_to_write:
                    log.warning(
                        "I/O buffer overrun! Dropped %d bytes. System may be overloaded.",
                        bytes_to_write - written,
                    )
        else:
            buffer.signal_end_of_stream()

        if not _recycle(resources, chunk):
            break
        if chunk.is_last_chunk:
            break