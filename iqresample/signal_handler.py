"""Graceful shutdown on interrupt signals and on fatal errors in worker threads."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import Any, Optional

from .models import AppResources

log = logging.getLogger(__name__)

_LINE_CLEAR_SEQUENCE = "\r \r"

_QUEUE_ATTRIBUTES = (
    "free_sample_chunk_queue",
    "raw_to_pre_process_queue",
    "pre_process_to_resampler_queue",
    "resampler_to_post_process_queue",
    "stdout_queue",
    "iq_optimization_data_queue",
)

console_lock = threading.Lock()


class ShutdownController:
    """Tracks whether shutdown was requested and releases every blocked pipeline stage."""

    def __init__(self) -> None:
        self._flag = threading.Event()
        self._lock = threading.Lock()
        self._resources: Optional[AppResources] = None

    def attach(self, resources: Optional[AppResources]) -> None:
        """Set the resources whose queues are released on shutdown."""
        self._resources = resources

    def _on_signal(self, signum: int, frame: Any) -> None:
        if self.is_shutdown_requested():
            return
        with console_lock:
            try:
                if sys.stderr is not None and sys.stderr.isatty():
                    sys.stderr.write(_LINE_CLEAR_SEQUENCE)
                    sys.stderr.flush()
            except (OSError, ValueError):
                pass
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            log.debug("Signal %d (%s) received, initiating graceful shutdown...", signum, name)
        self.request_shutdown()

    def install(self) -> None:
        """Route SIGINT and SIGTERM to a graceful shutdown. Call from the main thread."""
        for signame in ("SIGINT", "SIGTERM", "SIGBREAK"):
            signum = getattr(signal, signame, None)
            if signum is None:
                continue
            try:
                signal.signal(signum, self._on_signal)
            except (ValueError, OSError):
                log.warning("Failed to register handler for %s.", signame)

    def is_shutdown_requested(self) -> bool:
        return self._flag.is_set()

    def reset(self) -> None:
        """Clear the shutdown flag."""
        self._flag.clear()

    def request_shutdown(self) -> None:
        """Set the shutdown flag once and wake every queue and the write buffer."""
        with self._lock:
            if self._flag.is_set():
                return
            self._flag.set()

        resources = self._resources
        if resources is None:
            return

        config = resources.config
        ops = resources.selected_input_ops
        if config is not None and (config.input_type or "").lower() == "rtlsdr":
            stop_stream = getattr(ops, "stop_stream", None)
            if stop_stream is not None:
                log.debug("Calling stop_stream for RTL-SDR to unblock reader thread.")
                stop_stream(config, resources)

        for attr in _QUEUE_ATTRIBUTES:
            queue = getattr(resources, attr, None)
            if queue is not None:
                queue.signal_shutdown()
        if resources.file_write_buffer is not None:
            resources.file_write_buffer.signal_shutdown()

    def handle_fatal_thread_error(self, message: str, resources: AppResources) -> None:
        """Record the first fatal error, log it and start a shutdown."""
        with resources.progress_lock:
            if resources.error_occurred:
                return
            resources.error_occurred = True
        log.critical("%s", message)
        self.request_shutdown()