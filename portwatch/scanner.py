"""TCP port scanning and port range parsing."""

from __future__ import annotations

import re
import socket
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass
class PortState:
    """The observed state of one scanned port."""

    host: str
    port: int
    open: bool
    latency: float = 0.0


@dataclass
class ScanOptions:
    """Settings for a port scan; timeout is in seconds."""

    timeout: float = 2.0
    concurrency: int = 100


def default_options() -> ScanOptions:
    """Return the default scan settings."""
    return ScanOptions(timeout=2.0, concurrency=100)


def _to_int(text: str) -> int | None:
    return int(text) if _INTEGER.fullmatch(text) else None


def parse_port_range(expr: str) -> list[int]:
    """Parse "80", "80,443" or "8000-8100" style expressions into ports.

    Ports keep their first-seen order and duplicates are dropped.
    """
    ports: dict[int, None] = {}
    for part in expr.split(","):
        part = part.strip()
        if "-" in part:
            low, high = part.split("-", 1)
            start = _to_int(low)
            if start is None:
                raise ValueError(f"invalid port range start {low!r}")
            end = _to_int(high)
            if end is None:
                raise ValueError(f"invalid port range end {high!r}")
            if start > end or start < 1 or end > 65535:
                raise ValueError(f"invalid port range {start}-{end}")
            ports.update(dict.fromkeys(range(start, end + 1)))
        else:
            port = _to_int(part)
            if port is None:
                raise ValueError(f"invalid port {part!r}")
            if port < 1 or port > 65535:
                raise ValueError(f"port {port} out of range")
            ports.setdefault(port)
    return list(ports)


def scan_port(host: str, port: int, timeout: float) -> PortState:
    """Check whether a single TCP port accepts connections."""
    start = time.monotonic()
    try:
        connection = socket.create_connection((host, port), timeout=timeout)
    except OSError:
        return PortState(host=host, port=port, open=False)
    latency = time.monotonic() - start
    connection.close()
    return PortState(host=host, port=port, open=True, latency=latency)


def scan_ports(host: str, ports, options: ScanOptions) -> list[PortState]:
    """Scan ports concurrently, at most options.concurrency at a time."""
    ports = list(ports)
    if not ports:
        return []
    with ThreadPoolExecutor(max_workers=options.concurrency) as pool:
        return list(pool.map(lambda p: scan_port(host, p, options.timeout), ports))