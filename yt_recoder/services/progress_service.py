"""
Per-job progress reporting.

A `ProgressReporter` belongs to exactly one job. Each stage that owns the job
calls `report()`; the reporter timestamps the message relative to the job's
start, re-renders the whole log and pushes it to the sink (for the chat bot,
"edit the status message"). The sink is an external call that may be slow or
fail, and a failing sink never stops the job.
"""

import threading
import time
from typing import Callable, List, Optional, Tuple

from loguru import logger

from ..utils.format_utils import format_progress_line

ProgressSink = Callable[[str], None]


class ProgressReporter:
    """
    Accumulates `(elapsed_seconds, message)` entries for one job.

    Args:
        sink: Receives the full rendered log after every entry.
        header: Text rendered before the first entry.
        clock: Monotonic time source, injectable for tests.
        start_time: Job start on the `clock` scale; defaults to now.
    """

    def __init__(
        self,
        sink: Optional[ProgressSink] = None,
        header: str = "",
        clock: Callable[[], float] = time.monotonic,
        start_time: Optional[float] = None,
    ):
        self._sink = sink
        self._header = header
        self._clock = clock
        self._start = clock() if start_time is None else start_time
        self._entries: List[Tuple[float, str]] = []
        self._lock = threading.Lock()

    @property
    def entries(self) -> List[Tuple[float, str]]:
        with self._lock:
            return list(self._entries)

    def render(self) -> str:
        with self._lock:
            return self._render_locked()

    def _render_locked(self) -> str:
        return self._header + "".join(format_progress_line(elapsed, message) for elapsed, message in self._entries)

    def report(self, message: str) -> None:
        # The lock is held across the sink call so updates reach the sink in
        # the order they were emitted.
        with self._lock:
            elapsed = max(self._clock() - self._start, 0.0)
            if self._entries and elapsed < self._entries[-1][0]:
                elapsed = self._entries[-1][0]
            self._entries.append((elapsed, message))
            rendered = self._render_locked()
            logger.debug(f"Progress [{elapsed:.3f}] {message.strip()}")

            if self._sink is None:
                return
            try:
                self._sink(rendered)
            except Exception as e:
                logger.warning(f"Progress sink failed, continuing without this update: {e}")

    __call__ = report
