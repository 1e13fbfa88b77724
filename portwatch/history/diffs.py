"""A JSON-lines log of port change events between snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .store import _PortChange, _append_line, _encode, _read_changes


@dataclass
class DiffEntry(_PortChange):
    """A port change event between two snapshots."""


def append_diff(path, entry: DiffEntry) -> None:
    """Append entry to the file at path as one JSON line."""
    _append_line(Path(path), _encode(entry), "history/diff")


def load_diffs(path) -> list[DiffEntry]:
    """Read every entry from path; a missing file gives an empty list."""
    return _read_changes(Path(path), DiffEntry, "history/diff")