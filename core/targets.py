"""
Target expansion for multi-host sweeps.

Supports:
  - Last-octet ranges: "192.168.1.1-192.168.1.10" (same /24 only)
  - CIDR: "192.168.1.0/28"
  - A single IP or host name (returned unchanged, resolution happens on connect)
"""

import ipaddress
import re
from typing import List

_RANGE = re.compile(r"^[\d.\s]+-[\d.\s]+$")


def _parse_octets(ip: str, which: str) -> List[str]:
    parts = ip.strip().split(".")
    if len(parts) != 4:
        raise ValueError(f"invalid {which} IP address")
    try:
        ipaddress.IPv4Address(ip.strip())
    except ValueError as exc:
        raise ValueError(f"invalid {which} IP address") from exc
    return parts


def expand_ip_range(spec: str) -> List[str]:
    spec = spec.strip()
    if not spec:
        raise ValueError("empty target")

    if _RANGE.match(spec):
        pieces = spec.split("-")
        if len(pieces) != 2:
            raise ValueError("invalid IP range format (use: 192.168.1.1-192.168.1.10)")
        start = _parse_octets(pieces[0], "start")
        end = _parse_octets(pieces[1], "end")
        if start[:3] != end[:3]:
            raise ValueError("IP range must be in the same /24 subnet")
        first, last = int(start[3]), int(end[3])
        if first > last:
            raise ValueError("start IP must be less than or equal to end IP")
        base = ".".join(start[:3])
        return [f"{base}.{octet}" for octet in range(first, last + 1)]

    if "/" in spec:
        net = ipaddress.ip_network(spec, strict=False)
        hosts = [str(ip) for ip in net.hosts()]
        if not hosts:
            hosts = [str(net.network_address)]
        return hosts

    return [spec]
