"""
FastAPI front end: starts one background scan at a time and serves the
in-memory history of host reports.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel

from core.config import settings
from core.models import ScanConfig
from pipeline.engine import cancel_after
from pipeline.orchestrator import Orchestrator

log = logging.getLogger(__name__)

app = FastAPI(title="Port Scanner API", version="1.0")
orch = Orchestrator()


class ScanRequest(BaseModel):
    host: str
    start: Optional[int] = None
    end: Optional[int] = None
    timeout_ms: Optional[int] = None
    threads: Optional[int] = None


def build_config(payload: ScanRequest) -> ScanConfig:
    """Out-of-range numbers fall back to defaults instead of failing the request."""
    host = payload.host.strip()
    if not host:
        raise ValueError("host is required")

    start = payload.start
    if start is None or not 1 <= start <= 65535:
        start = 1

    end = payload.end
    if end is None or not 1 <= end <= 65535 or end < start:
        end = min(start + settings.web_default_window, 65535)

    timeout_ms = payload.timeout_ms
    if timeout_ms is None or not settings.web_min_timeout_ms <= timeout_ms <= settings.web_max_timeout_ms:
        timeout_ms = settings.web_default_timeout_ms

    threads = payload.threads
    if threads is None or not settings.web_min_threads <= threads <= settings.web_max_threads:
        threads = settings.web_default_threads

    return ScanConfig(host=host, start_port=start, end_port=end, concurrency=threads, timeout_s=timeout_ms / 1000.0)


def run_scan(config: ScanConfig) -> None:
    timer = cancel_after(config.cancel, settings.scan_deadline_s)
    try:
        orch.scan_host(config, banner_timeout=config.timeout_s)
    except Exception:  # noqa: BLE001
        log.exception("background scan of %s failed", config.host)
    finally:
        timer.cancel()
        orch.slot.release()


@app.post("/api/scan", status_code=202)
def api_scan(payload: ScanRequest, background_tasks: BackgroundTasks):
    if not orch.slot.acquire():
        raise HTTPException(status_code=409, detail="a scan is already in progress")
    try:
        config = build_config(payload)
    except ValueError as exc:
        orch.slot.release()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    background_tasks.add_task(run_scan, config)
    return {
        "status": "scan started",
        "host": config.host,
        "start_port": config.start_port,
        "end_port": config.end_port,
    }


@app.get("/api/scan-status")
def api_scan_status():
    return {"in_progress": orch.slot.in_progress}


@app.get("/api/results")
def api_results():
    try:
        return {"results": [r.model_dump(mode="json") for r in orch.results()]}
    except Exception as exc:  # noqa: BLE001
        log.exception("listing results failed")
        raise HTTPException(status_code=500, detail="listing results failed") from exc


@app.post("/api/clear")
def api_clear():
    orch.clear()
    return {"cleared": True}


@app.get("/api/health")
def api_health():
    return {"status": "ok", "in_progress": orch.slot.in_progress, "reports": len(orch.history)}
