"""Scan cycles over configured hosts and their periodic scheduling."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta

from . import snapshot
from .alert import build_diff
from .config import Config, HostConfig
from .notify import Dispatcher, NotifyError
from .scanner import default_options, parse_port_range, scan_ports

logger = logging.getLogger(__name__)


def snapshot_file(address: str) -> str:
    """Return the snapshot path for a host address."""
    safe = "".join("_" if c in ".:/" else c for c in address)
    return f".portwatch/{safe}.json"


class Runner:
    """Runs one scan, compare and alert cycle for every configured host."""

    def __init__(self, config: Config, dispatcher: Dispatcher) -> None:
        self.config = config
        self.dispatcher = dispatcher

    def run(self) -> None:
        """Scan every host; failures for one host are logged, not raised."""
        for host in self.config.hosts:
            try:
                self._scan_host(host)
            except (OSError, ValueError, NotifyError) as exc:
                logger.error("[portwatch] error scanning host %s: %s", host.address, exc)

    def _scan_host(self, host: HostConfig) -> None:
        options = default_options()
        if host.timeout:
            options.timeout = host.timeout.total_seconds()
        ports = parse_port_range(host.port_range)
        open_ports = [s.port for s in scan_ports(host.address, ports, options) if s.open]

        path = snapshot_file(host.address)
        try:
            previous = snapshot.load(path)
        except (OSError, ValueError):
            previous = snapshot.Snapshot()

        current = snapshot.make_snapshot(host.address, open_ports)
        snapshot.save(path, current)

        diff = snapshot.compare(previous, current)
        if diff.has_changes():
            self.dispatcher.dispatch(host.address, build_diff(diff))


class Scheduler:
    """Calls Runner.run at once and then on every interval until stopped."""

    def __init__(self, runner: Runner, interval) -> None:
        self.runner = runner
        self.interval = (
            interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        )
        self._stop = threading.Event()

    def _run_once(self) -> None:
        try:
            self.runner.run()
        except Exception as exc:  # keep the loop alive whatever a cycle does
            logger.error("[portwatch] run error: %s", exc)

    def start(self) -> None:
        """Run the scheduling loop, blocking until stop is called."""
        logger.info("[portwatch] scheduler started, interval=%ss", self.interval)
        self._run_once()
        next_tick = time.monotonic() + self.interval
        while True:
            if self._stop.wait(max(0.0, next_tick - time.monotonic())):
                logger.info("[portwatch] scheduler stopped")
                return
            self._run_once()
            next_tick += self.interval
            now = time.monotonic()
            while next_tick <= now:
                next_tick += self.interval

    def stop(self) -> None:
        """Signal the loop to exit after the current run."""
        self._stop.set()