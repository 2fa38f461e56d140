"""Bounded, blocking, thread-safe FIFO used between pipeline stages."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Optional


class WorkQueue:
    """A bounded FIFO whose blocking operations can be released by shutdown."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("Queue capacity cannot be zero.")
        self._capacity = capacity
        self._items: deque[Any] = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._shutting_down = False

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def enqueue(self, item: Any) -> bool:
        """Add an item, blocking while full; False once shutdown is signalled."""
        with self._not_full:
            while len(self._items) == self._capacity and not self._shutting_down:
                self._not_full.wait()
            if self._shutting_down:
                return False
            self._items.append(item)
            self._not_empty.notify()
            return True

    def dequeue(self) -> Optional[Any]:
        """Remove the oldest item, blocking while empty.

        After shutdown, remaining items are still handed out; None is
        returned once the queue is both shut down and empty.
        """
        with self._not_empty:
            while not self._items and not self._shutting_down:
                self._not_empty.wait()
            if not self._items:
                return None
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def try_dequeue(self) -> Optional[Any]:
        """Remove the oldest item without blocking; None if empty or shut down."""
        with self._lock:
            if not self._items or self._shutting_down:
                return None
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def signal_shutdown(self) -> None:
        """Wake every waiting thread and refuse further enqueues."""
        with self._lock:
            self._shutting_down = True
            self._not_empty.notify_all()
            self._not_full.notify_all()