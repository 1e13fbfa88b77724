"""Notification channels and the dispatcher that feeds them."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TextIO

from .alert import AlertDiff


class NotifyError(Exception):
    """Raised when a channel fails to deliver a notification."""


class Channel(ABC):
    """A destination for notifications."""

    @abstractmethod
    def send(self, subject: str, body: str) -> None:
        """Deliver one notification."""


def _now_rfc3339() -> str:
    text = datetime.now().astimezone().isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


class StdoutChannel(Channel):
    """Writes notifications to a text stream, standard output by default."""

    def __init__(self, writer: TextIO | None = None) -> None:
        self.writer = writer if writer is not None else sys.stdout

    def send(self, subject: str, body: str) -> None:
        self.writer.write(f"[{_now_rfc3339()}] {subject}\n{body}\n")


def format_body(diff: AlertDiff) -> str:
    """Render a diff as one indented line per port."""
    lines = [f"  [OPENED] port {port}\n" for port in diff.opened]
    lines += [f"  [CLOSED] port {port}\n" for port in diff.closed]
    return "".join(lines)


class Dispatcher:
    """Sends alert diffs through every registered channel."""

    def __init__(self, *channels: Channel) -> None:
        self.channels = list(channels)

    def dispatch(self, host: str, diff: AlertDiff) -> None:
        """Format diff and send it to all channels; empty diffs are skipped."""
        if not diff.opened and not diff.closed:
            return
        subject = f"Port change detected on {host}"
        body = format_body(diff)
        for channel in self.channels:
            try:
                channel.send(subject, body)
            except Exception as exc:
                raise NotifyError(f"notify: channel send failed: {exc}") from exc