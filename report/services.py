"""
Static service classification and a coarse OS guess from open ports.
"""

from typing import Dict, Iterable

COMMON_PORTS: Dict[int, str] = {
    20: "FTP Data",
    21: "FTP Control",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    115: "SFTP",
    143: "IMAP",
    194: "IRC",
    443: "HTTPS",
    445: "SMB",
    1433: "MSSQL",
    3306: "MySQL",
    3389: "RDP",
    5432: "PostgreSQL",
    5900: "VNC",
    8080: "HTTP-Alt",
    27017: "MongoDB",
}


def service_name(port: int) -> str:
    return COMMON_PORTS.get(port, "Unknown")


def detect_service(port: int, banner: str = "") -> str:
    """Table lookup first, then a banner hint for ports the table does not know."""
    name = service_name(port)
    if name != "Unknown" or not banner:
        return name
    if "SSH" in banner:
        return "SSH"
    if "HTTP" in banner:
        return "HTTP"
    return name


def guess_os(open_ports: Iterable[int]) -> str:
    ports = set(open_ports)
    if ports & {445, 3389, 135}:
        return "Likely Windows"
    if {22, 111} <= ports:
        return "Likely Linux/Unix"
    if 22 in ports:
        return "Likely Linux/Unix or Network Device"
    if ports & {80, 443}:
        return "Likely Network Device or Appliance"
    return "Unknown OS"
