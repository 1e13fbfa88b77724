"""Per-port open/close frequency statistics drawn from history."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from .store import Store


@dataclass
class PortStat:
    """How often one port was seen opening and closing."""

    port: int
    opened: int = 0
    closed: int = 0


def port_stats(store: Store, host: str) -> list[PortStat]:
    """Return open/close counts per port for host, ordered by port."""
    opened: Counter[int] = Counter()
    closed: Counter[int] = Counter()
    for entry in store.load():
        if entry.host != host:
            continue
        opened.update(entry.opened)
        closed.update(entry.closed)
    return [
        PortStat(port=port, opened=opened[port], closed=closed[port])
        for port in sorted(opened.keys() | closed.keys())
    ]


def format_stats(stats: list[PortStat]) -> str:
    """Render stats as a fixed-width table."""
    if not stats:
        return "no port activity recorded\n"
    lines = [f"{'PORT':<8} {'OPENED':<8} {'CLOSED':<8}\n"]
    lines += [f"{s.port:<8d} {s.opened:<8d} {s.closed:<8d}\n" for s in stats]
    return "".join(lines)