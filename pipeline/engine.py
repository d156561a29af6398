"""
Concurrent TCP connect scan of one host's port range.

Stages, all talking through bounded closable queues:
  feeder   -> work queue    (ports start..end, ascending)
  workers  -> results queue (open ports only, exactly `concurrency` threads)
  barrier  joins every worker, then closes the results queue
  collector (the calling thread) drains results until the queue closes

A single threading.Event cancels every stage cooperatively. The open ports
come back in completion order, not port order; callers that need stable
output sort them.
"""

import logging
import threading
import time
from typing import List, Optional, Tuple

from core.config import settings
from core.errors import ScanCancelled
from core.models import ScanConfig, ScanResult, ScanStatus
from core.queue import ClosableQueue
from probers import l4_tcp

log = logging.getLogger(__name__)


def cancel_after(cancel: threading.Event, seconds: float) -> threading.Timer:
    """Set `cancel` after `seconds`; call .cancel() on the timer to disarm it."""
    timer = threading.Timer(seconds, cancel.set)
    timer.daemon = True
    timer.start()
    return timer


def _feed(config: ScanConfig, work: ClosableQueue) -> None:
    try:
        for port in range(config.start_port, config.end_port + 1):
            if config.cancel.is_set() or not work.put(port, config.cancel):
                log.debug("feeder stopped before port %d", port)
                return
    finally:
        work.close()


def _work(config: ScanConfig, work: ClosableQueue, results: ClosableQueue) -> None:
    while True:
        port = work.get(config.cancel)
        if port is None:
            return
        is_open, err = l4_tcp.probe(config.host, port, config.timeout_s, config.cancel)
        if err is not None:
            return
        if is_open and not results.put(port, config.cancel):
            return


def _barrier(workers: List[threading.Thread], results: ClosableQueue, done: threading.Event) -> None:
    for worker in workers:
        worker.join()
    results.close()
    done.set()


def scan(config: ScanConfig, reporter=None) -> Tuple[ScanResult, Optional[ScanCancelled]]:
    """
    Scan every port in [config.start_port, config.end_port] with at most
    config.concurrency probes in flight.

    Returns the result and None when the range was covered, or the partial
    result and a ScanCancelled when config.cancel fired during the run.
    `reporter`, if given, gets start(total) before probing and finish()
    once the pipeline has drained.
    """
    total = config.port_count
    depth = min(total, settings.max_queue_depth)
    work = ClosableQueue(depth)
    results = ClosableQueue(depth)
    done = threading.Event()

    log.info(
        "scanning %s ports %d-%d (%d workers, %.3fs timeout)",
        config.host, config.start_port, config.end_port, config.concurrency, config.timeout_s,
    )
    started = time.monotonic()
    if reporter is not None:
        reporter.start(total)

    workers = [
        threading.Thread(target=_work, args=(config, work, results), name=f"scan-worker-{i}", daemon=True)
        for i in range(config.concurrency)
    ]
    for worker in workers:
        worker.start()
    threading.Thread(target=_barrier, args=(workers, results, done), name="scan-barrier", daemon=True).start()
    threading.Thread(target=_feed, args=(config, work), name="scan-feeder", daemon=True).start()

    open_ports: List[int] = []
    try:
        while True:
            port = results.get()
            if port is None:
                break
            open_ports.append(port)
            log.debug("%s:%d open", config.host, port)
        done.wait()
    finally:
        if reporter is not None:
            reporter.finish()

    elapsed = time.monotonic() - started
    cancelled = config.cancel.is_set()
    result = ScanResult(
        host=config.host,
        start_port=config.start_port,
        end_port=config.end_port,
        open_ports=open_ports,
        status=ScanStatus.CANCELLED if cancelled else ScanStatus.COMPLETED,
        elapsed_s=round(elapsed, 4),
    )
    if cancelled:
        log.warning("scan of %s cancelled after %.2fs with %d open ports", config.host, elapsed, len(open_ports))
        return result, ScanCancelled(config.host)
    log.info("scan of %s finished in %.2fs: %d open ports", config.host, elapsed, len(open_ports))
    return result, None
