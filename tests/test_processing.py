import numpy as np
import pytest

from iqresample.models import AppConfig, AppResources, SampleChunk, SampleFormat
from iqresample.processing import (
    post_processor_worker,
    pre_processor_worker,
    resampler_worker,
)
from iqresample.sample_convert import convert_cf32_to_block, convert_raw_to_cf32
from iqresample.signal_handler import ShutdownController
from iqresample.spectrum_shift import Nco
from iqresample.work_queue import WorkQueue


class FakeResampler:
    def __init__(self):
        self.resets = 0

    def execute(self, samples):
        return np.asarray(samples)[::2]

    def reset(self):
        self.resets += 1


class FakeWriteBuffer:
    def __init__(self, limit=None):
        self.data = bytearray()
        self.ended = False
        self.limit = limit

    def write(self, data):
        n = len(data) if self.limit is None else min(self.limit, len(data))
        self.data += data[:n]
        return n

    def signal_end_of_stream(self):
        self.ended = True


class Doubler:
    def apply(self, samples):
        return samples * np.float32(2.0)


def make_resources():
    res = AppResources()
    for name in (
        "free_sample_chunk_queue",
        "raw_to_pre_process_queue",
        "pre_process_to_resampler_queue",
        "resampler_to_post_process_queue",
        "stdout_queue",
        "iq_optimization_data_queue",
    ):
        setattr(res, name, WorkQueue(16))
    return res


def drain(queue):
    items = []
    while True:
        item = queue.try_dequeue()
        if item is None:
            return items
        items.append(item)


RAW = bytes([64, 192, 0, 32, 255, 1])  # three CS8 frames


def test_pre_processor_converts_and_forwards_last_chunk():
    config = AppConfig(gain=1.0)
    res = make_resources()
    res.input_format = SampleFormat.CS8
    chunk = SampleChunk(raw_input_data=bytearray(RAW), frames_read=3)
    last = SampleChunk(is_last_chunk=True)
    res.raw_to_pre_process_queue.enqueue(chunk)
    res.raw_to_pre_process_queue.enqueue(last)

    pre_processor_worker(config, res, ShutdownController())

    out = drain(res.pre_process_to_resampler_queue)
    assert out == [chunk, last]
    expected = convert_raw_to_cf32(RAW, 3, SampleFormat.CS8, 1.0)
    np.testing.assert_array_equal(chunk.complex_pre_resample_data, expected)
    assert chunk.complex_pre_resample_data[0] == pytest.approx(0.5 - 0.5j)


def test_pre_processor_applies_dc_block_stage():
    config = AppConfig(gain=1.0, dc_block_enable=True)
    res = make_resources()
    res.input_format = SampleFormat.CS8
    res.dc_block = Doubler()
    chunk = SampleChunk(raw_input_data=bytearray(RAW), frames_read=3)
    res.raw_to_pre_process_queue.enqueue(chunk)
    res.raw_to_pre_process_queue.enqueue(SampleChunk(is_last_chunk=True))

    pre_processor_worker(config, res, ShutdownController())

    expected = convert_raw_to_cf32(RAW, 3, SampleFormat.CS8, 1.0) * 2
    np.testing.assert_allclose(chunk.complex_pre_resample_data, expected)


def test_pre_processor_accumulates_iq_window():
    config = AppConfig(gain=1.0, iq_correction_enable=True)
    res = make_resources()
    res.input_format = SampleFormat.CS8
    res.iq_corrector = Doubler()
    chunk = SampleChunk(raw_input_data=bytearray(RAW), frames_read=3)
    res.raw_to_pre_process_queue.enqueue(chunk)
    res.raw_to_pre_process_queue.enqueue(SampleChunk(is_last_chunk=True))

    pre_processor_worker(config, res, ShutdownController())

    converted = convert_raw_to_cf32(RAW, 3, SampleFormat.CS8, 1.0)
    assert res.iq_samples_in_accum == 3
    np.testing.assert_array_equal(res.iq_accum_buffer[:3], converted)
    np.testing.assert_allclose(chunk.complex_pre_resample_data, converted * 2)
    assert drain(res.iq_optimization_data_queue) == []


def test_pre_processor_shift_and_discontinuity_resets_nco():
    config = AppConfig(gain=1.0)
    res = make_resources()
    res.input_format = SampleFormat.CS8
    nco = Nco(0.3)
    res.pre_resample_nco = nco
    res.actual_nco_shift_hz = 100.0
    chunk = SampleChunk(raw_input_data=bytearray(RAW), frames_read=3)
    res.raw_to_pre_process_queue.enqueue(chunk)
    res.raw_to_pre_process_queue.enqueue(SampleChunk(stream_discontinuity_event=True))
    res.raw_to_pre_process_queue.enqueue(SampleChunk(is_last_chunk=True))

    pre_processor_worker(config, res, ShutdownController())

    converted = convert_raw_to_cf32(RAW, 3, SampleFormat.CS8, 1.0)
    np.testing.assert_allclose(
        np.abs(chunk.complex_pre_resample_data), np.abs(converted), rtol=1e-5
    )
    assert nco.phase == 0.0
    assert len(drain(res.pre_process_to_resampler_queue)) == 3


def test_pre_processor_bad_format_reports_fatal_error():
    config = AppConfig(gain=1.0)
    res = make_resources()
    res.input_format = SampleFormat.FORMAT_UNKNOWN
    controller = ShutdownController()
    controller.attach(res)
    res.raw_to_pre_process_queue.enqueue(SampleChunk(raw_input_data=bytearray(RAW), frames_read=3))
    res.raw_to_pre_process_queue.enqueue(SampleChunk(is_last_chunk=True))

    pre_processor_worker(config, res, controller)

    assert res.error_occurred is True
    assert controller.is_shutdown_requested() is True


def test_pre_processor_stops_on_shutdown():
    res = make_resources()
    res.raw_to_pre_process_queue.signal_shutdown()
    pre_processor_worker(AppConfig(), res, ShutdownController())
    assert len(res.pre_process_to_resampler_queue) == 0


def test_resampler_passthrough_copies_frames():
    res = make_resources()
    res.is_passthrough = True
    data = np.array([1 + 1j, 2 - 2j, 3 + 0j], dtype=np.complex64)
    chunk = SampleChunk(complex_pre_resample_data=data, frames_read=3)
    res.pre_process_to_resampler_queue.enqueue(chunk)
    res.pre_process_to_resampler_queue.enqueue(SampleChunk(is_last_chunk=True))

    resampler_worker(res)

    assert chunk.frames_to_write == 3
    np.testing.assert_array_equal(chunk.complex_resampled_data, data)
    assert len(drain(res.resampler_to_post_process_queue)) == 2


def test_resampler_uses_resampler_and_resets_on_discontinuity():
    res = make_resources()
    resampler = FakeResampler()
    res.resampler = resampler
    data = np.arange(6, dtype=np.complex64)
    chunk = SampleChunk(complex_pre_resample_data=data, frames_read=6)
    res.pre_process_to_resampler_queue.enqueue(chunk)
    res.pre_process_to_resampler_queue.enqueue(SampleChunk(stream_discontinuity_event=True))
    res.pre_process_to_resampler_queue.enqueue(SampleChunk(is_last_chunk=True))

    resampler_worker(res)

    np.testing.assert_array_equal(chunk.complex_resampled_data, data[::2])
    assert chunk.frames_to_write == data[::2].size
    assert resampler.resets == 1


def test_post_processor_writes_file_buffer():
    config = AppConfig(output_format=SampleFormat.CS16)
    res = make_resources()
    res.output_bytes_per_sample_pair = 4
    buf = FakeWriteBuffer()
    res.file_write_buffer = buf
    data = np.array([0.5 + 0.25j, -0.5 - 1j], dtype=np.complex64)
    chunk = SampleChunk(complex_resampled_data=data, frames_to_write=2)
    last = SampleChunk(is_last_chunk=True)
    res.resampler_to_post_process_queue.enqueue(chunk)
    res.resampler_to_post_process_queue.enqueue(last)

    post_processor_worker(config, res, ShutdownController())

    assert bytes(buf.data) == convert_cf32_to_block(data, SampleFormat.CS16)
    assert buf.ended is True
    assert drain(res.free_sample_chunk_queue) == [chunk, last]


def test_post_processor_overrun_drops_bytes():
    config = AppConfig(output_format=SampleFormat.CF32)
    res = make_resources()
    res.output_bytes_per_sample_pair = 8
    buf = FakeWriteBuffer(limit=8)
    res.file_write_buffer = buf
    data = np.array([1 + 0j, 0 + 1j], dtype=np.complex64)
    res.resampler_to_post_process_queue.enqueue(
        SampleChunk(complex_resampled_data=data, frames_to_write=2)
    )
    res.resampler_to_post_process_queue.enqueue(SampleChunk(is_last_chunk=True))

    post_processor_worker(config, res, ShutdownController())

    assert len(buf.data) == 8
    assert bytes(buf.data) == convert_cf32_to_block(data[:1], SampleFormat.CF32)


def test_post_processor_stdout_path():
    config = AppConfig(output_format=SampleFormat.CU8, output_to_stdout=True)
    res = make_resources()
    data = np.array([0j, 1 + 1j], dtype=np.complex64)
    chunk = SampleChunk(complex_resampled_data=data, frames_to_write=2)
    disc = SampleChunk(stream_discontinuity_event=True)
    last = SampleChunk(is_last_chunk=True)
    for item in (chunk, disc, last):
        res.resampler_to_post_process_queue.enqueue(item)

    post_processor_worker(config, res, ShutdownController())

    assert drain(res.stdout_queue) == [chunk, disc, last]
    assert chunk.final_output_data == convert_cf32_to_block(data, SampleFormat.CU8)


def test_post_processor_shift_sets_post_data():
    config = AppConfig(output_format=SampleFormat.CF32, output_to_stdout=True)
    res = make_resources()
    res.post_resample_nco = Nco(0.5)
    res.actual_nco_shift_hz = -10.0
    data = np.ones(4, dtype=np.complex64)
    chunk = SampleChunk(complex_resampled_data=data, frames_to_write=4)
    res.resampler_to_post_process_queue.enqueue(chunk)
    res.resampler_to_post_process_queue.enqueue(SampleChunk(is_last_chunk=True))

    post_processor_worker(config, res, ShutdownController())

    assert chunk.complex_post_resample_data is not None
    np.testing.assert_allclose(np.abs(chunk.complex_post_resample_data), 1.0, rtol=1e-5)
    assert chunk.final_output_data == convert_cf32_to_block(
        chunk.complex_post_resample_data, SampleFormat.CF32
    )


def test_post_processor_bad_format_reports_fatal_error():
    config = AppConfig(output_format=SampleFormat.FORMAT_UNKNOWN)
    res = make_resources()
    res.file_write_buffer = FakeWriteBuffer()
    controller = ShutdownController()
    controller.attach(res)
    res.resampler_to_post_process_queue.enqueue(
        SampleChunk(complex_resampled_data=np.ones(2, dtype=np.complex64), frames_to_write=2)
    )

    post_processor_worker(config, res, controller)

    assert res.error_occurred is True
    assert controller.is_shutdown_requested() is True
    assert res.file_write_buffer.data == bytearray()