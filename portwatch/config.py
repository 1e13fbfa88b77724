"""Loading and validation of the portwatch YAML configuration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import yaml

DEFAULT_TIMEOUT = timedelta(seconds=2)
"""Used when a host timeout is not specified."""

DEFAULT_INTERVAL = timedelta(minutes=5)
"""The default scan interval."""

DEFAULT_SNAPSHOT_DIR = ".portwatch"
"""Where snapshots are stored by default."""


class ConfigError(Exception):
    """Raised when a configuration cannot be loaded or is invalid."""


@dataclass
class HostConfig:
    """A single host to monitor."""

    name: str = ""
    address: str = ""
    port_range: str = ""
    timeout: timedelta = timedelta(0)


@dataclass
class AlertConfig:
    """Alerting settings."""

    slack_webhook: str = ""
    email: str = ""
    log_file: str = ""


@dataclass
class RetentionConfig:
    """History retention settings."""

    max_age_days: int = 0
    max_entries: int = 0

    def max_age(self) -> timedelta:
        """Return the maximum age as a duration."""
        return timedelta(days=self.max_age_days)


def default_retention() -> RetentionConfig:
    """Return the default retention settings."""
    return RetentionConfig(max_age_days=7, max_entries=1000)


@dataclass
class Config:
    """The full portwatch configuration."""

    hosts: list[HostConfig] = field(default_factory=list)
    alert: AlertConfig = field(default_factory=AlertConfig)
    interval: timedelta = timedelta(0)
    snapshot_dir: str = ""
    retention: RetentionConfig = field(default_factory=RetentionConfig)


_UNITS_IN_MICROSECONDS = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}
_DURATION_PART = re.compile(r"(\d*\.?\d*)(ns|us|µs|μs|ms|s|m|h)")


def _parse_duration(text: str) -> timedelta:
    """Parse a duration such as "2s", "10m" or "1h30m"."""
    rest = text
    sign = 1
    if rest[:1] in ("+", "-"):
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ConfigError(f"config: invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None or match.group(1) in ("", "."):
            raise ConfigError(f"config: invalid duration {text!r}")
        total += float(match.group(1)) * _UNITS_IN_MICROSECONDS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total)


def _mapping(node: Any, where: str, allowed: set[str]) -> dict:
    if node is None:
        return {}
    if not isinstance(node, dict):
        raise ConfigError(f"config: {where} must be a mapping")
    for key in node:
        if key not in allowed:
            raise ConfigError(f"config: field {key} not found in {where}")
    return node


def _string(node: dict, key: str, where: str) -> str:
    value = node.get(key)
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"config: {where}.{key} must be a string")
    return str(value)


def _integer(node: dict, key: str, where: str) -> int:
    value = node.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"config: {where}.{key} must be an integer")
    return value


def _duration(node: dict, key: str, where: str) -> timedelta:
    value = node.get(key)
    if value is None:
        return timedelta(0)
    if not isinstance(value, str):
        raise ConfigError(f"config: {where}.{key} must be a duration string")
    return _parse_duration(value)


def _host(node: Any, index: int) -> HostConfig:
    where = f"hosts[{index}]"
    data = _mapping(node, where, {"name", "address", "port_range", "timeout"})
    return HostConfig(
        name=_string(data, "name", where),
        address=_string(data, "address", where),
        port_range=_string(data, "port_range", where),
        timeout=_duration(data, "timeout", where),
    )


def _config(document: Any) -> Config:
    top = _mapping(
        document, "config", {"hosts", "alert", "interval", "snapshot_dir", "retention"}
    )
    hosts_node = top.get("hosts")
    if hosts_node is None:
        hosts_node = []
    if not isinstance(hosts_node, list):
        raise ConfigError("config: hosts must be a list")

    alert = _mapping(top.get("alert"), "alert", {"slack_webhook", "email", "log_file"})
    retention = _mapping(
        top.get("retention"), "retention", {"max_age_days", "max_entries"}
    )
    return Config(
        hosts=[_host(node, index) for index, node in enumerate(hosts_node)],
        alert=AlertConfig(
            slack_webhook=_string(alert, "slack_webhook", "alert"),
            email=_string(alert, "email", "alert"),
            log_file=_string(alert, "log_file", "alert"),
        ),
        interval=_duration(top, "interval", "config"),
        snapshot_dir=_string(top, "snapshot_dir", "config"),
        retention=RetentionConfig(
            max_age_days=_integer(retention, "max_age_days", "retention"),
            max_entries=_integer(retention, "max_entries", "retention"),
        ),
    )


def load(path) -> Config:
    """Read and parse a YAML config file, filling in defaults."""
    try:
        with open(path, encoding="utf-8") as handle:
            document = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"config: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"config: {exc}") from exc
    if document is None:
        raise ConfigError("config: empty document")

    config = _config(document)
    if not config.snapshot_dir:
        config.snapshot_dir = DEFAULT_SNAPSHOT_DIR
    if not config.interval:
        config.interval = DEFAULT_INTERVAL
    if config.retention == RetentionConfig():
        config.retention = default_retention()
    return config


def validate(config: Config) -> None:
    """Check required fields and fill in per-host defaults."""
    if not config.hosts:
        raise ConfigError("config: at least one host must be specified")
    for index, host in enumerate(config.hosts):
        if not host.address:
            raise ConfigError(f"config: host[{index}] missing address")
        if not host.port_range:
            raise ConfigError(f"config: host[{index}] missing port_range")
        if not host.name:
            host.name = host.address
        if not host.timeout:
            host.timeout = DEFAULT_TIMEOUT