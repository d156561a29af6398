"""
Cheap reachability check: a host is considered up if any of a few commonly
open ports accepts a connection.
"""

import threading
from typing import Optional

from core.config import settings
from probers import l4_tcp


def is_alive(host: str, timeout: Optional[float] = None, cancel: Optional[threading.Event] = None) -> bool:
    timeout = timeout if timeout is not None else settings.liveness_timeout_s
    for port in settings.liveness_ports:
        is_open, _ = l4_tcp.probe(host, port, timeout, cancel)
        if is_open:
            return True
    return False
