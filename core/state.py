"""
In-memory state for the front ends: the history of completed host reports
(newest first) and a single "scan in progress" slot. Nothing is written to
disk; history lives as long as the process.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List

from core.models import HostReport

log = logging.getLogger(__name__)


class RWLock:
    """
    Readers share the lock; a writer waits for readers to leave and excludes
    everyone. New readers queue behind a waiting writer, so a steady stream of
    readers cannot hold a writer off forever.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ScanHistory:
    def __init__(self):
        self._lock = RWLock()
        self._reports: List[HostReport] = []

    def record(self, report: HostReport) -> None:
        with self._lock.write():
            self._reports.insert(0, report)
        log.debug("recorded report for %s (%d open ports)", report.host, len(report.ports))

    def list_reports(self) -> List[HostReport]:
        with self._lock.read():
            return list(self._reports)

    def clear(self) -> None:
        with self._lock.write():
            self._reports = []

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._reports)


class ScanSlot:
    """At most one front-end scan runs at a time."""

    def __init__(self):
        self._lock = threading.Lock()
        self._busy = False

    def acquire(self) -> bool:
        with self._lock:
            if self._busy:
                return False
            self._busy = True
            return True

    def release(self) -> None:
        with self._lock:
            self._busy = False

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._busy
