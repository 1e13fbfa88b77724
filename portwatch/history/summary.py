"""Per-host summaries of history and their table rendering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TextIO

from .store import _ZERO_TIME, HistoryError, QueryOptions, Store


@dataclass
class HostSummary:
    """Aggregated change counts for one host."""

    host: str
    total_events: int = 0
    opened: int = 0
    closed: int = 0
    last_seen: datetime | None = None


def _rfc3339(moment: datetime) -> str:
    text = moment.isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def _format_table(rows: list[list[str]], padding: int = 2) -> str:
    """Align every cell but the last of each row into padded columns."""
    widths: dict[int, int] = {}
    for row in rows:
        for index, cell in enumerate(row[:-1]):
            widths[index] = max(widths.get(index, 0), len(cell))
    lines = []
    for row in rows:
        cells = [cell.ljust(widths[i] + padding) for i, cell in enumerate(row[:-1])]
        cells.append(row[-1])
        lines.append("".join(cells) + "\n")
    return "".join(lines)


def summarize(store: Store, options: QueryOptions | None = None) -> list[HostSummary]:
    """Summarize entries matching options per host, ordered by host."""
    try:
        entries = store.query(options if options is not None else QueryOptions())
    except HistoryError as exc:
        raise HistoryError(f"summarize: {exc}") from exc

    index: dict[str, HostSummary] = {}
    for entry in entries:
        summary = index.setdefault(entry.host, HostSummary(host=entry.host))
        summary.total_events += 1
        summary.opened += len(entry.opened)
        summary.closed += len(entry.closed)
        latest = summary.last_seen if summary.last_seen is not None else _ZERO_TIME
        if entry.timestamp > latest:
            summary.last_seen = entry.timestamp
    return [index[host] for host in sorted(index)]


def print_summary(stream: TextIO, summaries: list[HostSummary]) -> None:
    """Write summaries to stream as an aligned table."""
    rows = [
        ["HOST", "EVENTS", "OPENED", "CLOSED", "LAST SEEN"],
        ["----", "------", "------", "------", "---------"],
    ]
    for s in summaries:
        last_seen = _rfc3339(s.last_seen) if s.last_seen is not None else "-"
        rows.append([s.host, str(s.total_events), str(s.opened), str(s.closed), last_seen])
    stream.write(_format_table(rows))