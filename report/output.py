from __future__ import annotations

import csv
import datetime as dt
from typing import Iterable, List, Optional

from core.models import HostReport, ScanStatus
from report.services import guess_os, service_name


def format_duration(seconds: float) -> str:
    total = int(max(seconds, 0.0) + 0.5)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}h {m}m {s}s"
    if m > 0:
        return f"{m}m {s}s"
    return f"{s}s"


def format_result_summary(host: str, open_ports: List[int]) -> str:
    if not open_ports:
        return f"No open ports found on {host}"
    if len(open_ports) <= 10:
        listed = ", ".join(f"{p} ({service_name(p)})" for p in open_ports)
        return f"{len(open_ports)} open ports on {host}: {listed}"
    listed = ", ".join(f"{p} ({service_name(p)})" for p in open_ports[:5])
    return f"{len(open_ports)} open ports on {host} including: {listed}, ..."


def generate_scan_report(reports: Iterable[HostReport], elapsed_s: float, now: Optional[dt.datetime] = None) -> str:
    reports = list(reports)
    now = now or dt.datetime.now(dt.timezone.utc)
    port_count = sum(len(r.ports) for r in reports)

    lines = [
        "PORT SCANNER REPORT",
        "===================",
        "",
        f"Scan completed at: {now.strftime('%a, %d %b %Y %H:%M:%S %Z')}",
        f"Duration: {format_duration(elapsed_s)}",
        f"Hosts scanned: {len(reports)}",
        f"Open ports found: {port_count}",
        "",
        "DETAILED RESULTS",
        "----------------",
        "",
    ]
    for r in reports:
        lines.append(f"Host: {r.host}")
        lines.append(f"Open ports: {len(r.ports)}")
        if r.status == ScanStatus.CANCELLED:
            lines.append("Status: cancelled (partial results)")
        if r.ports:
            lines.append(f"OS Detection: {guess_os(r.open_ports)}")
            lines.append("PORT\tSERVICE\tBANNER")
            lines.append("----\t-------\t------")
            for p in sorted(r.ports, key=lambda x: x.port):
                lines.append(f"{p.port}\t{p.service}\t{p.banner}")
        else:
            lines.append("No open ports found")
        lines.append("")
    if any(r.status == ScanStatus.CANCELLED for r in reports):
        lines.append("Scan cancelled before completion")
    else:
        lines.append("Scan completed successfully")
    return "\n".join(lines) + "\n"


def save_report(path: str, text: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def save_csv(path: str, reports: Iterable[HostReport]) -> str:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["Host", "Port", "Service", "Banner", "Timestamp"])
        for r in reports:
            stamp = r.timestamp.isoformat()
            for p in sorted(r.ports, key=lambda x: x.port):
                w.writerow([r.host, p.port, p.service, p.banner, stamp])
    return path
