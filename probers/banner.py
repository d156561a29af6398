"""
Banner grabbing against a port already known to be open.

Opens its own connection, sends a minimal request only for protocols that
wait for the client (HTTP), reads once and normalizes the text for display.
Services that greet first (FTP, SSH, SMTP) get nothing written. The connect
shares one timeout across all resolved addresses (see l4_tcp.dial).
"""

import logging
import socket
import time
from typing import Dict, Optional, Tuple

from core.config import settings
from probers.l4_tcp import dial

log = logging.getLogger(__name__)

PROBE_REQUESTS: Dict[int, str] = {
    80: "GET / HTTP/1.0\r\nHost: {host}\r\n\r\n",
    8080: "GET / HTTP/1.0\r\nHost: {host}\r\n\r\n",
}


def clean_banner(text: str, max_len: Optional[int] = None) -> str:
    max_len = max_len if max_len is not None else settings.banner_max_len
    text = text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def _remaining(deadline: float) -> float:
    left = deadline - time.monotonic()
    if left <= 0:
        raise socket.timeout("banner deadline exceeded")
    return left


def grab_banner(host: str, port: int, timeout: float) -> Tuple[str, Optional[OSError]]:
    try:
        with dial(host, port, timeout) as sock:
            deadline = time.monotonic() + timeout
            request = PROBE_REQUESTS.get(port)
            if request:
                sock.settimeout(_remaining(deadline))
                sock.sendall(request.format(host=host).encode())
            sock.settimeout(_remaining(deadline))
            data = sock.recv(settings.banner_read_bytes)
    except (socket.timeout, OSError) as exc:
        log.debug("no banner from %s:%d: %s", host, port, exc)
        return "", exc
    return clean_banner(data.decode(errors="ignore")), None
