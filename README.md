# iqresample

Building blocks for processing complex (I/Q) sample streams from
software-defined radios and recordings.

## Modules

- `iqresample.models` – shared data types and tuning constants:
  `SampleFormat`, `OutputType`, `SdrSoftwareType`,
  `FrequencyShiftRequestType`, `PresetDefinition`, `SdrMetadata`,
  `SummaryItem`, `InputSummary` (a list of label/value lines capped at 16
  entries), `SourceInfo`, `AppConfig`, `SampleChunk` and `AppResources`.
- `iqresample.utils` – `format_from_string` (case-insensitive lookup of a
  sample format name such as `cs16`), `format_description`,
  `format_file_size` (decimal B/KB/MB/GB), `format_duration` (`HH:MM:SS`),
  `sdr_software_type_to_string`, `trim_whitespace`,
  `get_basename_for_parsing` and `clear_stdin_buffer`.
- `iqresample.sample_convert` – `bytes_per_sample`, `convert_raw_to_cf32`
  (interleaved `cs8`, `cu8`, `cs16`, `cu16`, `cs32`, `cu32`, `sc16q11` or
  `cf32` bytes to gain-adjusted `complex64` samples normalised to about
  [-1, 1]) and `convert_cf32_to_block` (complex samples back to rounded,
  clipped bytes of any of those formats). Unsupported formats raise
  `ValueError`.
- `iqresample.work_queue` – `WorkQueue`, a bounded blocking FIFO whose
  `enqueue`/`dequeue` can be released by `signal_shutdown`; items still queued
  are handed out by `dequeue` after shutdown, then `None` is returned.
- `iqresample.presets` – finds and parses `iq_resample_tool_presets.conf`.
- `iqresample.spectrum_shift` – `Nco` (numerically controlled oscillator with
  `mix_up`, `mix_down`, `reset`), `create_ncos`, `shift_apply`, `reset_nco`,
  `destroy_ncos` and `check_nyquist_warning`.
- `iqresample.signal_handler` – `ShutdownController`, which routes SIGINT and
  SIGTERM to a graceful shutdown and releases every queue of the attached
  `AppResources`.
- `iqresample.processing` – the worker loops `pre_processor_worker`,
  `resampler_worker` and `post_processor_worker`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Converting samples

```python
from iqresample.models import SampleFormat
from iqresample.sample_convert import convert_raw_to_cf32, convert_cf32_to_block

raw = bytes([0, 127, 128, 64])          # two cs8 frames
samples = convert_raw_to_cf32(raw, 2, SampleFormat.CS8, 1.0)
out = convert_cf32_to_block(samples, SampleFormat.CS16)   # 8 bytes
```

## Frequency shifting

```python
import math
import numpy as np
from iqresample.spectrum_shift import Nco, shift_apply

nco = Nco(2 * math.pi * 1000.0 / 48000.0)   # 1 kHz at 48 kHz, radians per sample
block = np.ones(480, dtype=np.complex64)
shifted = shift_apply(nco, 1000.0, block)   # non-negative shift mixes up
```

The oscillator's phase carries over between blocks; `reset()` sets it back to
zero and keeps the frequency. `create_ncos(config, resources)` works out the
shift from `AppConfig` (a manual `freq_shift_hz`, or the recording's centre
frequency minus `center_frequency_target_hz`) and places the oscillator before
or after resampling according to `shift_after_resample`. It raises
`ShiftError` when a target frequency is asked for without centre-frequency
metadata, or when the shift exceeds five times the sample rate of its stage.

`check_nyquist_warning` prompts `Continue anyway? (y/n): ` on the given
streams when the shift exceeds half the stage's rate, and returns `False` on
`n` or end of input.

## Presets file

Presets are INI-style sections:

```
[preset:example]
description = Example preset
target_rate = 48000
sample_format_name = cs16
output_type = wav
gain = 1.5
dc_block = true
iq_correction = false
```

`output_type` accepts `raw`, `wav` or `wav-rf64`; `dc_block` and
`iq_correction` accept `true` or `false`; keys and these values are
case-insensitive. Lines starting with `#` or `;` are comments. Invalid values
and unknown keys are logged and skipped. At most 128 presets are read.

`parse_presets(lines)` parses any iterable of lines. `load_presets()` looks in
the directories from `default_search_dirs()` – on POSIX the current directory,
`$XDG_CONFIG_HOME/iq_resample_tool` (or `~/.config/iq_resample_tool`),
`/etc/iq_resample_tool` and `/usr/local/etc/iq_resample_tool`; on Windows the
program's directory and `iq_resample_tool` under `%APPDATA%` and
`%PROGRAMDATA%`. If no file or more than one file is found, an empty list is
returned and the reason is logged.

## Pipeline stages

The three workers each take chunks from one `WorkQueue` on `AppResources`
and pass them to the next:

- `pre_processor_worker(config, resources, controller)` reads
  `raw_to_pre_process_queue`, converts raw bytes with `resources.input_format`
  and `config.gain`, applies `resources.dc_block` and `resources.iq_corrector`
  when enabled (any object with an `apply(samples)` method), feeds 1024-sample
  windows to `iq_optimization_data_queue`, applies the pre-resample shift and
  writes to `pre_process_to_resampler_queue`.
- `resampler_worker(resources)` copies samples through when
  `resources.is_passthrough` is set, otherwise calls
  `resources.resampler.execute(samples)`; on a stream discontinuity it calls
  `resources.resampler.reset()`.
- `post_processor_worker(config, resources, controller)` applies the
  post-resample shift, encodes to `config.output_format`, and either puts
  chunks on `stdout_queue` or writes the bytes to
  `resources.file_write_buffer` (an object with `write(data) -> int`,
  `signal_end_of_stream()` and `signal_shutdown()`), then returns chunks to
  `free_sample_chunk_queue`.

Conversion failures are reported through
`ShutdownController.handle_fatal_thread_error`, which records the first error
on `resources.error_occurred` and requests shutdown.

## What this package does not do

There is no command-line program. The package does not read input files or
radio devices, does not write raw or WAV output files, and contains no
resampler, DC-block filter, I/Q-imbalance corrector or file write buffer: the
pipeline stages call whatever objects are placed on `AppResources` for these,
and the caller supplies them, along with the reader and writer threads and the
queues themselves.