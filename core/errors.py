"""
Scan error types. Closed or filtered ports are never errors; the only
condition that leaves the engine is a cooperative cancellation.
"""

from typing import Optional


class ScanError(Exception):
    """Base class for errors raised or returned by the scanner."""


class ScanCancelled(ScanError):
    def __init__(self, host: str, port: Optional[int] = None, reason: str = "cancellation requested"):
        self.host = host
        self.port = port
        self.reason = reason
        target = f"{host}:{port}" if port is not None else host
        super().__init__(f"scan cancelled for {target}: {reason}")
