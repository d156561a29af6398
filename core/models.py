"""
Shared data models: scan input, per-scan engine output and the annotated
per-host report kept in the in-memory history.
"""

from __future__ import annotations

import datetime as dt
import threading
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.config import settings


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScanConfig(BaseModel):
    """
    Input for one engine run. Frozen once built; invalid ranges, a
    non-positive concurrency or timeout are rejected here, before any probe.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    host: str = Field(min_length=1)
    start_port: int = Field(settings.default_start_port, ge=1, le=65535)
    end_port: int = Field(settings.default_end_port, ge=1, le=65535)
    concurrency: int = Field(settings.default_concurrency, ge=1)
    timeout_s: float = Field(settings.default_timeout_s, gt=0)
    cancel: threading.Event = Field(default_factory=threading.Event, exclude=True, repr=False)

    @model_validator(mode="after")
    def check_range(self) -> "ScanConfig":
        if self.start_port > self.end_port:
            raise ValueError(f"start port {self.start_port} is greater than end port {self.end_port}")
        return self

    @property
    def port_count(self) -> int:
        return self.end_port - self.start_port + 1


class ScanResult(BaseModel):
    host: str
    start_port: int
    end_port: int
    # completion order, not port order
    open_ports: List[int] = Field(default_factory=list)
    status: ScanStatus
    elapsed_s: float
    timestamp: dt.datetime = Field(default_factory=_utcnow)


class PortInfo(BaseModel):
    port: int
    service: str = "Unknown"
    banner: str = ""


class HostReport(BaseModel):
    host: str
    ports: List[PortInfo] = Field(default_factory=list)
    os_guess: str = "Unknown OS"
    status: ScanStatus = ScanStatus.COMPLETED
    timestamp: dt.datetime = Field(default_factory=_utcnow)
    duration_s: float = 0.0

    @property
    def open_ports(self) -> List[int]:
        return [p.port for p in self.ports]
