"""
Single-node orchestrator: runs the engine for a host, annotates the open
ports with service names and banners, and keeps the resulting reports in
the in-memory history used by the CLI and the HTTP front end.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from core.config import settings
from core.errors import ScanCancelled
from core.models import HostReport, PortInfo, ScanConfig, ScanResult, ScanStatus
from core.state import ScanHistory, ScanSlot
from core.targets import expand_ip_range
from pipeline import engine, liveness
from probers import banner
from report.services import detect_service, guess_os

log = logging.getLogger(__name__)


class Orchestrator:
    def __init__(self, history: Optional[ScanHistory] = None) -> None:
        self.history = history or ScanHistory()
        self.slot = ScanSlot()

    def _annotate(self, host: str, ports: List[int], grab_banners: bool, timeout: float) -> List[PortInfo]:
        ports = sorted(ports)
        banners = {p: "" for p in ports}
        if grab_banners and ports:
            workers = min(len(ports), settings.banner_concurrency)
            with ThreadPoolExecutor(max_workers=workers) as pool:
                grabbed = pool.map(lambda p: banner.grab_banner(host, p, timeout), ports)
                for port, (text, err) in zip(ports, grabbed):
                    if err is not None:
                        log.debug("banner unavailable for %s:%d", host, port)
                    banners[port] = text
        return [PortInfo(port=p, service=detect_service(p, banners[p]), banner=banners[p]) for p in ports]

    def build_report(self, result: ScanResult, grab_banners: bool = True, banner_timeout: Optional[float] = None) -> HostReport:
        timeout = banner_timeout if banner_timeout is not None else settings.banner_timeout_s
        # no second round-trip once the caller has asked to stop
        grab = grab_banners and result.status == ScanStatus.COMPLETED
        ports = self._annotate(result.host, result.open_ports, grab, timeout)
        return HostReport(
            host=result.host,
            ports=ports,
            os_guess=guess_os(result.open_ports),
            status=result.status,
            duration_s=result.elapsed_s,
        )

    def scan_host(
        self,
        config: ScanConfig,
        reporter=None,
        grab_banners: bool = True,
        banner_timeout: Optional[float] = None,
    ) -> Tuple[HostReport, Optional[ScanCancelled]]:
        result, err = engine.scan(config, reporter=reporter)
        report = self.build_report(result, grab_banners=grab_banners, banner_timeout=banner_timeout)
        self.history.record(report)
        return report, err

    def sweep(
        self,
        targets: str,
        start_port: int = settings.default_start_port,
        end_port: int = settings.default_end_port,
        concurrency: int = settings.default_concurrency,
        timeout_s: float = settings.default_timeout_s,
        cancel: Optional[threading.Event] = None,
        reporter_factory=None,
        grab_banners: bool = True,
    ) -> Tuple[List[HostReport], Optional[ScanCancelled]]:
        """
        Scan each host of an IP range, skipping hosts that fail the liveness
        check. Stops at the first host boundary after cancellation.
        """
        cancel = cancel or threading.Event()
        hosts = expand_ip_range(targets)
        # validated once, before any host is probed
        template = ScanConfig(
            host=hosts[0],
            start_port=start_port,
            end_port=end_port,
            concurrency=concurrency,
            timeout_s=timeout_s,
            cancel=cancel,
        )
        reports: List[HostReport] = []
        log.info("sweeping %d hosts in %s (ports %d-%d)", len(hosts), targets, start_port, end_port)
        for host in hosts:
            if cancel.is_set():
                return reports, ScanCancelled(targets, reason="sweep stopped before " + host)
            if not liveness.is_alive(host, cancel=cancel):
                log.info("%s appears to be down, skipping", host)
                continue
            config = template.model_copy(update={"host": host})
            reporter = reporter_factory() if reporter_factory else None
            report, err = self.scan_host(config, reporter=reporter, grab_banners=grab_banners)
            reports.append(report)
            if err is not None:
                return reports, err
        return reports, None

    def results(self) -> List[HostReport]:
        return self.history.list_reports()

    def clear(self) -> None:
        self.history.clear()
