"""
Bounded, closable in-memory queue used between scan pipeline stages.

queue.Queue has no notion of "closed", so the producer marks the queue
closed once it has enqueued its last item; consumers see None after the
queue is closed and drained. Blocking operations poll a stop_event so a
cancelled stage never waits forever on a full or empty queue.
"""

import logging
import queue
import threading
from typing import Any, Optional

from core.config import settings

log = logging.getLogger(__name__)


class ClosableQueue:
    def __init__(self, maxsize: int, poll_s: Optional[float] = None):
        if maxsize < 1:
            raise ValueError("queue depth must be at least 1")
        self._q: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self.poll_s = poll_s if poll_s is not None else settings.queue_poll_s
        self.maxsize = maxsize

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Mark the queue closed. Only the single producing stage may call this."""
        self._closed.set()

    def put(self, item: Any, stop_event: Optional[threading.Event] = None) -> bool:
        """
        Enqueue item, waiting for room. Returns False without enqueueing if
        stop_event fires while the queue is full.
        """
        if item is None:
            raise ValueError("None is reserved as the end-of-queue marker")
        if self.closed:
            raise RuntimeError("put on closed queue")
        while True:
            try:
                self._q.put(item, timeout=self.poll_s)
                return True
            except queue.Full:
                if stop_event is not None and stop_event.is_set():
                    log.debug("put abandoned after stop")
                    return False

    def get(self, stop_event: Optional[threading.Event] = None) -> Any:
        """
        Dequeue the next item. Returns None once the queue is closed and
        drained, or as soon as stop_event is set.
        """
        while True:
            if stop_event is not None and stop_event.is_set():
                return None
            try:
                return self._q.get(timeout=self.poll_s)
            except queue.Empty:
                # closed is checked first: after close() no more puts happen
                if self.closed and self._q.empty():
                    return None
