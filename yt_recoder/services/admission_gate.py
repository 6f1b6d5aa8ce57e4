"""
The encoder admission gate.

Transcoding is compute bound, so the number of ffmpeg processes running at
once is capped process-wide. One `EncoderGate` is created at startup with the
configured capacity and shared by every job; it is the only mutable state
that crosses job boundaries.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from loguru import logger


class EncoderGate:
    """
    A counting semaphore bounding concurrent transcodes.

    `slot()` is the normal way in: it tries a non-blocking acquire first so
    that a job which has to wait can say so ("queued"), then blocks, and
    always releases on the way out. `try_acquire`, `acquire` and `release`
    are the underlying primitives.
    """

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise ValueError(f"Encoder capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._count_lock = threading.Lock()
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        with self._count_lock:
            return self._in_use

    def _mark_acquired(self) -> None:
        with self._count_lock:
            self._in_use += 1

    def try_acquire(self) -> bool:
        if self._semaphore.acquire(blocking=False):
            self._mark_acquired()
            return True
        return False

    def acquire(self) -> None:
        self._semaphore.acquire()
        self._mark_acquired()

    def release(self) -> None:
        """
        Raises:
            ValueError: If no slot is currently held.
        """
        with self._count_lock:
            if self._in_use == 0:
                raise ValueError("EncoderGate released more times than it was acquired")
            self._in_use -= 1
        self._semaphore.release()

    @contextmanager
    def slot(self, on_queued: Optional[Callable[[], None]] = None) -> Iterator[None]:
        """
        Holds one encoder slot for the duration of the `with` block.

        Args:
            on_queued: Called once, before blocking, when no slot is free.
        """
        if not self.try_acquire():
            logger.info(f"All {self._capacity} encoder slot(s) busy, queueing.")
            if on_queued is not None:
                on_queued()
            self.acquire()
        try:
            yield
        finally:
            self.release()
