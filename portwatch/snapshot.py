"""Snapshots of open ports and comparison between them."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime

_TIMESTAMP = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def _parse_time(text: str) -> datetime:
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    fraction = (match.group(2) or "")[:6].ljust(6, "0")
    zone = "+00:00" if match.group(3) == "Z" else match.group(3)
    return datetime.fromisoformat(f"{match.group(1)}.{fraction}{zone}")


@dataclass
class Snapshot:
    """The open ports observed for a host at a point in time."""

    host: str = ""
    ports: list[int] = field(default_factory=list)
    scanned_at: datetime | None = None


@dataclass
class Diff:
    """Ports that changed between two snapshots."""

    opened: list[int] = field(default_factory=list)
    closed: list[int] = field(default_factory=list)

    def has_changes(self) -> bool:
        """Report whether any ports were opened or closed."""
        return bool(self.opened or self.closed)


def make_snapshot(host: str, ports) -> Snapshot:
    """Create a snapshot of host with a sorted copy of ports, taken now."""
    return Snapshot(host=host, ports=sorted(ports), scanned_at=datetime.now().astimezone())


def save(path, snapshot: Snapshot) -> None:
    """Write snapshot to path as indented JSON."""
    document = {
        "host": snapshot.host,
        "ports": list(snapshot.ports),
        "scanned_at": (
            _format_time(snapshot.scanned_at) if snapshot.scanned_at is not None else None
        ),
    }
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(json.dumps(document, indent=2) + "\n")


def load(path) -> Snapshot:
    """Read a snapshot from path; a missing file gives an empty snapshot."""
    try:
        with open(path, encoding="utf-8") as handle:
            document = json.load(handle)
    except FileNotFoundError:
        return Snapshot()
    if not isinstance(document, dict):
        raise ValueError("snapshot: document must be an object")
    scanned_at = document.get("scanned_at")
    return Snapshot(
        host=document.get("host") or "",
        ports=list(document.get("ports") or []),
        scanned_at=_parse_time(scanned_at) if scanned_at is not None else None,
    )


def compare(old: Snapshot, new: Snapshot) -> Diff:
    """Return the ports opened and closed going from old to new."""
    old_set = set(old.ports)
    new_set = set(new.ports)
    return Diff(opened=sorted(new_set - old_set), closed=sorted(old_set - new_set))