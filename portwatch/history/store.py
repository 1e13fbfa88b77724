"""Persistent storage for port change events.

A store keeps one JSON-lines file per host under its directory. Entries
can be appended, loaded, queried by host, time range or limit, and pruned
by age or count. A separate events file holds watch-cycle events.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, TypeVar

from ..snapshot import _format_time, _parse_time

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class HistoryError(Exception):
    """Raised when history cannot be read or written."""


def _aware(moment: datetime) -> datetime:
    return moment.astimezone() if moment.tzinfo is None else moment


@dataclass
class _PortChange:
    timestamp: datetime = _ZERO_TIME
    host: str = ""
    opened: list[int] = field(default_factory=list)
    closed: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.timestamp = _aware(self.timestamp)


@dataclass
class Entry(_PortChange):
    """A single scan event recorded in history."""


@dataclass
class WatchEvent(_PortChange):
    """A port change event recorded during a watch cycle."""


@dataclass
class QueryOptions:
    """Filters for querying history; empty or None fields do not filter."""

    host: str = ""
    since: datetime | None = None
    until: datetime | None = None
    limit: int = 0


@dataclass
class PruneOptions:
    """How old entries are removed; zero values mean no limit."""

    max_age: timedelta = timedelta(0)
    max_entries: int = 0


_Change = TypeVar("_Change", bound=_PortChange)


def _encode(change: _PortChange, omit_empty: bool = False) -> str:
    record: dict[str, Any] = {
        "timestamp": _format_time(change.timestamp),
        "host": change.host,
    }
    if change.opened or not omit_empty:
        record["opened"] = list(change.opened)
    if change.closed or not omit_empty:
        record["closed"] = list(change.closed)
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False)


def _ports(value: Any) -> list[int]:
    if value is None:
        return []
    if not isinstance(value, list) or any(
        isinstance(port, bool) or not isinstance(port, int) for port in value
    ):
        raise ValueError(f"ports must be a list of integers, got {value!r}")
    return list(value)


def _decode(cls: type[_Change], data: Any) -> _Change:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    stamp = data.get("timestamp")
    if stamp is not None and not isinstance(stamp, str):
        raise ValueError(f"invalid timestamp {stamp!r}")
    host = data.get("host")
    if host is not None and not isinstance(host, str):
        raise ValueError(f"invalid host {host!r}")
    return cls(
        timestamp=_parse_time(stamp) if stamp is not None else _ZERO_TIME,
        host=host or "",
        opened=_ports(data.get("opened")),
        closed=_ports(data.get("closed")),
    )


def _decode_stream(text: str) -> Iterator[Any]:
    decoder = json.JSONDecoder()
    pos = 0
    while True:
        while pos < len(text) and text[pos] in " \t\r\n":
            pos += 1
        if pos >= len(text):
            return
        value, pos = decoder.raw_decode(text, pos)
        yield value


def _read_changes(path: Path, cls: type[_Change], prefix: str) -> list[_Change]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise HistoryError(f"{prefix}: open {path}: {exc}") from exc
    try:
        return [_decode(cls, value) for value in _decode_stream(text)]
    except ValueError as exc:
        raise HistoryError(f"{prefix}: decode: {exc}") from exc


def _append_line(path: Path, line: str, prefix: str) -> None:
    try:
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(line + "\n")
    except OSError as exc:
        raise HistoryError(f"{prefix}: open {path}: {exc}") from exc


def _parse_lines(data: bytes, cls: type[_Change]) -> list[_Change]:
    """Decode one record per line, skipping lines that do not decode."""
    changes = []
    for line in split_lines(data):
        try:
            changes.append(_decode(cls, json.loads(line)))
        except ValueError:
            continue
    return changes


def _filter_changes(
    changes: list[_Change], max_age: timedelta, max_entries: int
) -> list[_Change]:
    """Drop changes older than max_age, then keep the last max_entries."""
    if max_age > timedelta(0):
        now = datetime.now(timezone.utc)
        changes = [c for c in changes if now - c.timestamp <= max_age]
    if max_entries > 0 and len(changes) > max_entries:
        changes = changes[-max_entries:]
    return changes


def split_lines(data: bytes) -> list[bytes]:
    """Split data on newlines, dropping empty lines."""
    return [line for line in data.split(b"\n") if line]


def _base_name(host: str) -> str:
    if not host:
        return "."
    stripped = host.rstrip("/")
    if not stripped:
        return ""
    return stripped.rsplit("/", 1)[-1]


class Store:
    """Scan history kept as one JSON-lines file per host under a directory.

    Watch events go to events_path, by default events.jsonl in the directory.
    """

    def __init__(self, directory, events_path=None) -> None:
        self.directory = Path(directory)
        self.events_path = (
            Path(events_path) if events_path is not None else self.directory / "events.jsonl"
        )

    def _file_path(self, host: str) -> Path:
        return self.directory / (_base_name(host) + ".jsonl")

    def append(self, entry: Entry) -> None:
        """Add entry to its host's history file."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise HistoryError(f"history: mkdir: {exc}") from exc
        _append_line(self._file_path(entry.host), _encode(entry), "history")

    def load(self, host: str | None = None) -> list[Entry]:
        """Return the entries for host, or for every host when host is None."""
        if host is not None:
            return _read_changes(self._file_path(host), Entry, "history")
        events = self.events_path.resolve()
        files = sorted(
            path
            for path in self.directory.glob("*.jsonl")
            if path.is_file() and path.resolve() != events
        )
        entries: list[Entry] = []
        for path in files:
            entries.extend(_read_changes(path, Entry, "history"))
        return entries

    def query(self, options: QueryOptions) -> list[Entry]:
        """Return entries matching options, in stored order."""
        since = _aware(options.since) if options.since is not None else None
        until = _aware(options.until) if options.until is not None else None
        result: list[Entry] = []
        for entry in self.load():
            if options.host and entry.host != options.host:
                continue
            if since is not None and entry.timestamp < since:
                continue
            if until is not None and entry.timestamp > until:
                continue
            result.append(entry)
            if options.limit > 0 and len(result) >= options.limit:
                break
        return result

    def prune(self, host: str, options: PruneOptions) -> None:
        """Rewrite host's history keeping only what options allow."""
        entries = self.load(host)
        if not entries:
            return
        kept = _filter_changes(entries, options.max_age, options.max_entries)
        try:
            self._file_path(host).unlink(missing_ok=True)
        except OSError as exc:
            raise HistoryError(f"history: prune remove: {exc}") from exc
        for entry in kept:
            self.append(entry)

    def append_event(self, event: WatchEvent) -> None:
        """Append event to the events file; its directory must exist."""
        with open(self.events_path, "a", encoding="utf-8") as handle:
            handle.write(_encode(event, omit_empty=True) + "\n")

    def load_events(self) -> list[WatchEvent]:
        """Read all events, skipping lines that do not decode."""
        try:
            data = self.events_path.read_bytes()
        except FileNotFoundError:
            return []
        return _parse_lines(data, WatchEvent)