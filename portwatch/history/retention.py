"""Retention policies that trim history files by age and count."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from .store import Entry, _encode, _filter_changes, _parse_lines


@dataclass
class RetentionPolicy:
    """How long and how many entries to keep; zero values mean no limit."""

    max_age: timedelta = timedelta(0)
    max_entries: int = 0

    def apply(self, path) -> None:
        """Prune the entries in path and write the result back.

        A missing file is left alone; lines that do not decode are dropped.
        """
        target = Path(path)
        try:
            data = target.read_bytes()
        except FileNotFoundError:
            return
        entries = _filter_changes(
            _parse_lines(data, Entry), self.max_age, self.max_entries
        )
        target.write_text(
            "".join(_encode(entry) + "\n" for entry in entries), encoding="utf-8"
        )


def default_retention_policy() -> RetentionPolicy:
    """Return the default policy: seven days and at most 1000 entries."""
    return RetentionPolicy(max_age=timedelta(days=7), max_entries=1000)