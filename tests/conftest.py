import socket
import threading
import time
from typing import List, Optional

import pytest

from core.errors import ScanCancelled


class Listener:
    """Loopback TCP server: optionally greets, or answers one request, then hangs up."""

    def __init__(self, greeting: Optional[bytes] = None, reply: Optional[bytes] = None, hold_s: float = 0.0):
        self.greeting = greeting
        self.reply = reply
        self.hold_s = hold_s
        self.requests: List[bytes] = []
        self.accepted = 0
        self._stop = threading.Event()
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(64)
        self._sock.settimeout(0.05)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self.accepted += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket):
        with conn:
            conn.settimeout(1.0)
            try:
                if self.greeting is not None:
                    conn.sendall(self.greeting)
                if self.reply is not None:
                    self.requests.append(conn.recv(1024))
                    conn.sendall(self.reply)
                if self.hold_s:
                    time.sleep(self.hold_s)
            except OSError:
                pass

    def close(self):
        self._stop.set()
        self._thread.join(timeout=1)
        self._sock.close()


@pytest.fixture
def listener():
    created: List[Listener] = []

    def _make(**kwargs) -> Listener:
        srv = Listener(**kwargs)
        created.append(srv)
        return srv

    yield _make
    for srv in created:
        srv.close()


@pytest.fixture
def closed_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def make_fake_probe(open_ports, delay: float = 0.0, calls: Optional[list] = None):
    """Stand-in for probers.l4_tcp.probe against a fixed set of simulated listeners."""
    open_ports = set(open_ports)

    def fake(host, port, timeout, cancel=None):
        if cancel is not None and cancel.is_set():
            return False, ScanCancelled(host, port)
        if calls is not None:
            calls.append(port)
        if delay:
            time.sleep(min(delay, timeout))
        return port in open_ports, None

    return fake


@pytest.fixture
def fake_probe(monkeypatch):
    from probers import l4_tcp

    def _install(open_ports, delay: float = 0.0, calls: Optional[list] = None):
        monkeypatch.setattr(l4_tcp, "probe", make_fake_probe(open_ports, delay=delay, calls=calls))

    return _install
