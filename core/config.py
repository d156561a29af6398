"""
Pydantic-based configuration for the scan engine, CLI and HTTP front end.

All knobs are exposed via environment variables (or a local .env file) so
the same defaults apply whether a scan is started from the terminal or
through the API.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, env_file=".env")

    # Scan defaults
    default_start_port: int = Field(1, ge=1, le=65535)
    default_end_port: int = Field(1024, ge=1, le=65535)
    default_concurrency: int = Field(100, ge=1)
    default_timeout_s: float = Field(1.0, gt=0)

    # Pipeline
    max_queue_depth: int = Field(1000, ge=1, description="cap on work/result queue depth")
    queue_poll_s: float = Field(0.05, gt=0, description="how often blocked queue ops re-check cancellation")

    # Liveness
    liveness_ports: List[int] = Field(default_factory=lambda: [80, 443, 22, 3389])
    liveness_timeout_s: float = Field(0.5, gt=0)

    # Banner grabbing
    banner_timeout_s: float = Field(2.0, gt=0)
    banner_read_bytes: int = Field(1024, ge=1)
    banner_max_len: int = Field(100, ge=1)
    banner_concurrency: int = Field(10, ge=1)

    # HTTP front end
    api_host: str = "127.0.0.1"
    api_port: int = Field(8080, ge=1, le=65535)
    scan_deadline_s: float = Field(120.0, gt=0)
    web_default_threads: int = 100
    web_min_threads: int = 10
    web_max_threads: int = 500
    web_default_timeout_ms: int = 500
    web_min_timeout_ms: int = 100
    web_max_timeout_ms: int = 10000
    web_default_window: int = Field(1000, ge=1, description="ports scanned when the end port is missing")

    log_level: str = "INFO"

    @field_validator("liveness_ports")
    @classmethod
    def validate_ports(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("liveness_ports must not be empty")
        for port in v:
            if not 1 <= port <= 65535:
                raise ValueError(f"invalid liveness port {port}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be a standard logging level name")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
