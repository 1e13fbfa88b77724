"""CSV export of a host's history."""

from __future__ import annotations

import csv
from typing import TextIO

from .store import HistoryError, Store
from .summary import _rfc3339


def export_csv(store: Store, host: str, stream: TextIO) -> None:
    """Write host's history to stream as timestamp,event,port rows."""
    try:
        entries = store.load(host)
    except HistoryError as exc:
        raise HistoryError(f"export csv: {exc}") from exc

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(["timestamp", "event", "port"])
    for entry in entries:
        stamp = _rfc3339(entry.timestamp)
        writer.writerows([stamp, "opened", str(port)] for port in entry.opened)
        writer.writerows([stamp, "closed", str(port)] for port in entry.closed)