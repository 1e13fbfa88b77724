"""Table output of recorded watch events."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from .store import HistoryError, Store, _aware
from .summary import _format_table, _rfc3339


def format_ports(ports: list[int]) -> str:
    """Join ports with commas, or "-" when there are none."""
    return ",".join(str(port) for port in ports) if ports else "-"


def print_events(
    store_path, since: datetime | None = None, stream: TextIO | None = None
) -> None:
    """Print the events in store_path at or after since as a table."""
    out = stream if stream is not None else sys.stdout
    path = Path(store_path)
    store = Store(path.parent, events_path=path)
    try:
        events = store.load_events()
    except (OSError, HistoryError) as exc:
        raise HistoryError(f"load events: {exc}") from exc
    if not events:
        out.write("no events recorded\n")
        return

    cutoff = _aware(since) if since is not None else None
    rows = [["TIMESTAMP", "HOST", "OPENED", "CLOSED"]]
    rows += [
        [_rfc3339(e.timestamp), e.host, format_ports(e.opened), format_ports(e.closed)]
        for e in events
        if cutoff is None or e.timestamp >= cutoff
    ]
    out.write(_format_table(rows))