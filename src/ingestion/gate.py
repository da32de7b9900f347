"""
Run-wide gate bounding how many parse jobs execute at once.
One gate is created per ingestion run and shared by every category dispatch in that run.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ParseGate:
    """Counting gate of fixed capacity with active/peak bookkeeping."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"gate capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._slots = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        """Highest number of jobs that held a slot at the same time."""

        with self._lock:
            return self._peak

    def acquire(self, timeout: float | None = None) -> bool:
        """Take a slot, waiting at most `timeout` seconds when given. Returns False on timeout."""

        if not self._slots.acquire(timeout=timeout):
            return False
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)
        return True

    def release(self) -> None:
        with self._lock:
            self._active -= 1
        self._slots.release()

    @contextmanager
    def slot(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()
