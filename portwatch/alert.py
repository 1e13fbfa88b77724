"""Human-readable alerts for port changes."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TextIO

from .snapshot import Diff


@dataclass
class AlertDiff:
    """Sorted ports opened and closed between two snapshots."""

    opened: list[int] = field(default_factory=list)
    closed: list[int] = field(default_factory=list)


def _sorted_unique(ports) -> list[int]:
    return sorted(set(ports))


class Notifier:
    """Writes alert lines for port changes to a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def notify(self, host: str, diff: Diff) -> None:
        """Write one line per opened and closed port."""
        if not diff.opened and not diff.closed:
            return
        for port in _sorted_unique(diff.opened):
            self.stream.write(f"[{host}] OPENED port {port}\n")
        for port in _sorted_unique(diff.closed):
            self.stream.write(f"[{host}] CLOSED port {port}\n")


def build_diff(diff: Diff) -> AlertDiff:
    """Convert a snapshot diff into an alert diff with sorted ports."""
    return AlertDiff(opened=_sorted_unique(diff.opened), closed=_sorted_unique(diff.closed))