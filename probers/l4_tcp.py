"""
TCP connect probe using a plain connect() without crafting raw packets.
A refused, reset, unreachable or timed-out connect is a closed port, not an
error; only a probe skipped because of cancellation reports one.

Every address a name resolves to (e.g. ::1 and 127.0.0.1 for localhost)
is tried in turn, but all attempts share one deadline of `timeout`.
"""

import logging
import socket
import threading
import time
from typing import Optional, Tuple

from core.errors import ScanCancelled

log = logging.getLogger(__name__)


def dial(host: str, port: int, timeout: float) -> socket.socket:
    """Connect to host:port, raising OSError if no address answers within timeout."""
    deadline = time.monotonic() + timeout
    last_err: Optional[OSError] = None
    for family, type_, proto, _, addr in socket.getaddrinfo(host, port, type=socket.SOCK_STREAM):
        left = deadline - time.monotonic()
        if left <= 0:
            break
        sock = socket.socket(family, type_, proto)
        try:
            sock.settimeout(left)
            sock.connect(addr)
            return sock
        except OSError as exc:
            last_err = exc
            sock.close()
    if last_err is not None:
        raise last_err
    raise socket.timeout(f"connect to {host}:{port} timed out")


def probe(
    host: str,
    port: int,
    timeout: float,
    cancel: Optional[threading.Event] = None,
) -> Tuple[bool, Optional[ScanCancelled]]:
    # an in-flight connect is not interrupted; timeout bounds the wait
    if cancel is not None and cancel.is_set():
        return False, ScanCancelled(host, port)
    try:
        sock = dial(host, port, timeout)
    except (socket.timeout, OSError) as exc:
        log.debug("%s:%d closed (%s)", host, port, exc)
        return False, None
    sock.close()
    return True, None


def probe_single(host: str, port: int, timeout: float) -> bool:
    open_, _ = probe(host, port, timeout)
    return open_
