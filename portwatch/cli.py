"""Command-line entry point and sub-commands."""

from __future__ import annotations

import argparse
import csv
import io
import json
import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from .config import DEFAULT_SNAPSHOT_DIR, ConfigError, load, validate
from .history.export import export_csv
from .history.retention import RetentionPolicy
from .history.stats import format_stats, port_stats
from .history.store import HistoryError, QueryOptions, Store
from .history.summary import print_summary, summarize
from .history.tags import TagStore, print_tags
from .notify import Dispatcher, StdoutChannel
from .runner import Runner, Scheduler

_USAGE = """\
portwatch - monitor and alert on port changes

Usage:
  portwatch [flags]
  portwatch <command> [args]

Commands:
  history     Show scan history
  summary     Show port change summary
  export      Export history to CSV

Flags:
  -config <path>   Path to config file (default: portwatch.yaml)
  -once            Run a single scan and exit
  -help            Show this help message

Examples:
  portwatch
  portwatch -config /etc/portwatch.yaml
  portwatch -once
  portwatch history -host 192.168.1.1 -limit 20
  portwatch summary
  portwatch export -out history.csv
"""

_HELP = ("help", "-help", "--help")


def usage(stream: TextIO | None = None) -> None:
    """Write the help text to stream, standard output by default."""
    (stream if stream is not None else sys.stdout).write(_USAGE)


def _option_values(args: list[str], name: str) -> list[str]:
    """Every value that directly follows name in args."""
    return [value for flag, value in zip(args, args[1:]) if flag == name]


def _go_list(ports: list[int]) -> str:
    return "[" + " ".join(str(port) for port in ports) + "]"


def _export(store: Store, host: str, out: str) -> None:
    with open(out, "w", newline="", encoding="utf-8") as handle:
        if host:
            export_csv(store, host, handle)
            return
        hosts = sorted({entry.host for entry in store.load()})
        if not hosts:
            csv.writer(handle, lineterminator="\n").writerow(["timestamp", "event", "port"])
            return
        for index, name in enumerate(hosts):
            part = io.StringIO()
            export_csv(store, name, part)
            text = part.getvalue()
            if index > 0:
                text = text.split("\n", 1)[1]
            handle.write(text)


def _history(store: Store, rest: list[str]) -> None:
    hosts = _option_values(rest, "-host")
    limit = 0
    for value in _option_values(rest, "-limit"):
        try:
            limit = int(value)
        except ValueError:
            continue
    entries = store.query(QueryOptions(host=hosts[-1] if hosts else "", limit=limit))
    for entry in entries:
        print(
            f"{entry.timestamp.strftime('%Y-%m-%d %H:%M:%S')}  {entry.host:<20}  "
            f"opened={_go_list(entry.opened)} closed={_go_list(entry.closed)}"
        )


def run_cli(args: list[str], store: Store) -> int:
    """Dispatch a history sub-command and return the exit code."""
    if not args:
        return 0
    command, rest = args[0], list(args[1:])
    try:
        if command in _HELP:
            usage()
        elif command == "summary":
            print_summary(sys.stdout, summarize(store))
        elif command == "export":
            outs = _option_values(rest, "-out")
            hosts = _option_values(rest, "-host")
            out = outs[-1] if outs else "history.csv"
            _export(store, hosts[-1] if hosts else "", out)
            print(f"exported history to {out}")
        elif command == "history":
            _history(store, rest)
        else:
            sys.stderr.write(
                f"unknown command: {command}\nRun 'portwatch help' for usage.\n"
            )
            return 1
    except (HistoryError, OSError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1
    return 0


def history_file(host_name: str) -> str:
    """Return the path of a host's history file."""
    return f".portwatch/{host_name}.history.jsonl"


def run_retention(config_path) -> None:
    """Apply the configured retention policy to every host's history file."""
    try:
        config = load(config_path)
    except ConfigError as exc:
        raise ConfigError(f"load config: {exc}") from exc

    policy = RetentionPolicy(
        max_age=config.retention.max_age(),
        max_entries=config.retention.max_entries,
    )
    for host in config.hosts:
        path = history_file(host.name)
        try:
            policy.apply(path)
        except OSError as exc:
            sys.stderr.write(f"retention: host {host.name}: {exc}\n")
            continue
        print(f"retention applied: {host.name} -> {path}")


def run_stats(args: list[str]) -> int:
    """Print per-port open/close counts for a host; return the exit code."""
    parser = argparse.ArgumentParser(prog="portwatch stats", allow_abbrev=False)
    parser.add_argument("host", nargs="?")
    parser.add_argument("-data", "--data", default=DEFAULT_SNAPSHOT_DIR)
    options = parser.parse_args(args)
    if options.host is None:
        sys.stderr.write("usage: portwatch stats <host>\n")
        return 1

    try:
        stats = port_stats(Store(options.data), options.host)
    except (HistoryError, OSError) as exc:
        sys.stderr.write(f"error loading history: {exc}\n")
        return 1
    print(f"Port statistics for {options.host}:")
    sys.stdout.write(format_stats(stats))
    return 0


def tag_file(data_dir) -> Path:
    """Return the path of the tags file in data_dir."""
    return Path(data_dir) / "tags.json"


def _quoted(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def run_tag(args: list[str]) -> int:
    """Add, delete or list tags; return the exit code."""
    parser = argparse.ArgumentParser(prog="tag", allow_abbrev=False)
    parser.add_argument("-add", "--add", default="", help="add a tag with this name")
    parser.add_argument(
        "-delete", "--delete", default="", help="delete tags with this name"
    )
    parser.add_argument("-note", "--note", default="", help="optional note for the tag")
    parser.add_argument("-list", "--list", action="store_true", help="list all tags")
    parser.add_argument("-data", "--data", default=".", help="directory for tag storage")
    options = parser.parse_args(args)

    store = TagStore(tag_file(options.data))
    try:
        if options.add:
            store.add(options.add, options.note)
            print(f"tag {_quoted(options.add)} added")
        elif options.delete:
            store.delete(options.delete)
            print(f"tag {_quoted(options.delete)} deleted")
        elif options.list:
            print_tags(store, sys.stdout)
        else:
            parser.print_help(sys.stderr)
    except HistoryError as exc:
        action = "adding" if options.add else "deleting" if options.delete else "listing"
        sys.stderr.write(f"error {action} tag{'s' if action == 'listing' else ''}: {exc}\n")
        return 1
    return 0


def _run_retention_command(rest: list[str]) -> int:
    configs = _option_values(rest, "-config")
    try:
        run_retention(configs[-1] if configs else "portwatch.yaml")
    except ConfigError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the monitor, or a sub-command when one is given."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    if args and (args[0] in _HELP or not args[0].startswith("-")):
        command, rest = args[0], args[1:]
        if command == "stats":
            return run_stats(rest)
        if command == "tag":
            return run_tag(rest)
        if command == "retention":
            return _run_retention_command(rest)
        return run_cli(args, Store(DEFAULT_SNAPSHOT_DIR))

    parser = argparse.ArgumentParser(prog="portwatch", allow_abbrev=False)
    parser.add_argument(
        "-config", "--config", default="portwatch.yaml", help="path to config file"
    )
    parser.add_argument(
        "-once", "--once", action="store_true", help="run a single scan cycle and exit"
    )
    options = parser.parse_args(args)

    try:
        config = load(options.config)
    except ConfigError as exc:
        sys.stderr.write(f"config: {exc}\n")
        return 1
    try:
        validate(config)
    except ConfigError as exc:
        sys.stderr.write(f"config invalid: {exc}\n")
        return 1
    try:
        os.makedirs(DEFAULT_SNAPSHOT_DIR, exist_ok=True)
    except OSError as exc:
        sys.stderr.write(f"mkdir: {exc}\n")
        return 1

    runner = Runner(config, Dispatcher(StdoutChannel()))
    if options.once:
        runner.run()
        return 0

    scheduler = Scheduler(runner, config.interval)
    try:
        scheduler.start()
    except KeyboardInterrupt:
        scheduler.stop()
    return 0