"""
Terminal progress bar driven by elapsed time only.

The engine does not count finished probes, so completion is estimated from
the expected duration for the range size and held below 100% until the
scan signals it is done.
"""

from __future__ import annotations

import sys
import threading
import time
from typing import Callable, Optional, TextIO, Tuple

from report.output import format_duration


def expected_duration_s(total: int) -> float:
    if total > 1000:
        return 30.0
    if total > 100:
        return 15.0
    return 5.0


def estimate(elapsed_s: float, total: int) -> Tuple[int, float]:
    """Return (ports completed, percent) for a scan still running."""
    progress = min(elapsed_s / expected_duration_s(total), 0.99)
    return int(total * progress), progress * 100


class ProgressReporter:
    def __init__(
        self,
        stream: Optional[TextIO] = None,
        interval_s: float = 0.1,
        bar_width: int = 40,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ):
        self.stream = stream or sys.stderr
        self.interval_s = interval_s
        self.bar_width = bar_width
        self.on_progress = on_progress
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._total = 0
        self._started = 0.0

    def start(self, total: int) -> None:
        self._total = total
        self._started = time.monotonic()
        self._done.clear()
        self._thread = threading.Thread(target=self._run, name="scan-progress", daemon=True)
        self._thread.start()

    def finish(self) -> None:
        self._done.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._render(self._total, 100.0, time.monotonic() - self._started)
        self.stream.write("\n")
        self.stream.flush()

    def _run(self) -> None:
        while not self._done.wait(self.interval_s):
            elapsed = time.monotonic() - self._started
            completed, percent = estimate(elapsed, self._total)
            self._render(completed, percent, elapsed)

    def _render(self, completed: int, percent: float, elapsed_s: float) -> None:
        if self.on_progress is not None:
            self.on_progress(completed, self._total)
        filled = min(int(percent / 100 * self.bar_width), self.bar_width)
        bar = "█" * filled + "░" * (self.bar_width - filled)
        rate = completed / max(elapsed_s, 0.001)
        if percent < 100:
            remaining = (self._total - completed) / max(rate, 0.001)
            tail = f", ~{format_duration(remaining)} remaining"
        else:
            tail = ", done!"
        self.stream.write(
            f"\r[{bar}] {percent:.1f}% ({completed}/{self._total} ports, {rate:.1f} ports/sec{tail})    "
        )
        self.stream.flush()
