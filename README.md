# portwatch

portwatch scans the TCP ports of the hosts you configure and reports when a
port opens or closes between two scans. After each scan the open ports of a
host are saved as a JSON snapshot. The next scan is compared with it, and any
change is printed as a notification on standard output.

The package also keeps a history of port changes as JSON-lines files. You can
query that history, summarise it, export it as CSV, count it per port and trim
it. It can also keep named tags that mark points in time.

## Installation

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Configuration

The monitor reads a YAML file, `portwatch.yaml` by default:

```yaml
hosts:
  - name: localhost
    address: 127.0.0.1
    port_range: "22-80"
    timeout: 2s
interval: 10m
snapshot_dir: .portwatch
alert:
  log_file: /tmp/portwatch.log
retention:
  max_age_days: 7
  max_entries: 1000
```

- `port_range` can be one port (`"80"`), a list (`"80,443"`), a range
  (`"8000-8100"`) or a mix of these. Ports must lie between 1 and 65535.
  Duplicates are dropped.
- Durations (`interval`, `timeout`) are written as `2s`, `500ms`, `10m`,
  `1h30m` and so on.
- Keys the file does not know are rejected.

Defaults apply where a value is left out:

- `interval`: 5 minutes
- `snapshot_dir`: `.portwatch`
- `retention`: 7 days and 1000 entries, when the whole block is absent or zero
- host `name`: the host's address
- host `timeout`: 2 seconds

The file must name at least one host. Each host needs an `address` and a
`port_range`.

## Running the monitor

To scan every host now, and then once per interval until you interrupt it:

```
portwatch
portwatch -config /etc/portwatch.yaml
```

To run a single scan and exit:

```
portwatch -once
```

Each host's snapshot is written to `.portwatch/<address>.json` in the current
directory. In the file name, `.`, `:` and `/` in the address become `_`. The
first scan of a host reports every open port as opened. A notification looks
like this:

```
[2024-01-01T12:00:00+01:00] Port change detected on 127.0.0.1
  [OPENED] port 22
  [CLOSED] port 80
```

A host that cannot be scanned is logged, and the other hosts are still scanned.

## Commands

The commands `history`, `summary` and `export` read the history kept in the
`.portwatch` directory. That directory holds one `<host>.jsonl` file per host.

```
portwatch help
portwatch history -host 192.168.1.1 -limit 20
portwatch summary
portwatch export -out history.csv
portwatch export -host 192.168.1.1 -out host.csv
portwatch stats 192.168.1.1
portwatch stats 192.168.1.1 -data /var/lib/portwatch
portwatch tag -add release-1 -note "first rollout"
portwatch tag -delete release-1
portwatch tag -list
portwatch tag -list -data /var/lib/portwatch
portwatch retention -config portwatch.yaml
```

- `help`: prints the usage text.
- `history`: prints one line per recorded change: the time, the host, and the
  ports opened and closed. `-host` keeps only one host. `-limit` stops after
  that many entries.
- `summary`: prints a table with, for each host, the number of events, the
  ports opened and closed, and the time the host was last seen.
- `export`: writes the history as CSV with the columns `timestamp,event,port`.
  It writes to `history.csv` unless `-out` names another file. `-host`
  exports a single host.
- `stats <host>`: prints how often each port of the host was opened and
  closed. The history directory is `.portwatch` unless `-data` names another.
- `tag`: adds (`-add NAME`, with an optional `-note`), deletes (`-delete NAME`)
  or lists (`-list`) tags. Tags are kept in `tags.json` in the `-data`
  directory, which is the current directory by default.
- `retention`: loads the configuration named by `-config` and trims each
  host's `.portwatch/<name>.history.jsonl` to the configured age and count.

A command returns exit status 1 on error. An unknown command also returns 1.

## Using it as a library

Scanning and comparing:

```python
from portwatch.scanner import parse_port_range, scan_ports, default_options
from portwatch.snapshot import make_snapshot, compare

ports = parse_port_range("22,80,443")
states = scan_ports("127.0.0.1", ports, default_options())
open_ports = [s.port for s in states if s.open]

before = make_snapshot("127.0.0.1", [22, 80])
after = make_snapshot("127.0.0.1", open_ports)
diff = compare(before, after)
print(diff.opened, diff.closed)
```

Recording and reading history:

```python
import sys
from datetime import datetime, timedelta, timezone

from portwatch.history.store import Entry, PruneOptions, QueryOptions, Store
from portwatch.history.summary import print_summary, summarize
from portwatch.history.export import export_csv
from portwatch.history.stats import format_stats, port_stats

store = Store(".portwatch")
store.append(Entry(timestamp=datetime.now(timezone.utc), host="192.168.1.1",
                   opened=[80, 443], closed=[22]))

recent = store.query(QueryOptions(host="192.168.1.1",
                                  since=datetime.now(timezone.utc) - timedelta(days=1)))
store.prune("192.168.1.1", PruneOptions(max_age=timedelta(days=30)))

print_summary(sys.stdout, summarize(store))
export_csv(store, "192.168.1.1", sys.stdout)
print(format_stats(port_stats(store, "192.168.1.1")), end="")
```

Other pieces:

- `portwatch.history.retention.RetentionPolicy.apply(path)` trims a
  JSON-lines file by age and count. `default_retention_policy()` gives
  7 days and 1000 entries.
- `portwatch.history.diffs` has `append_diff` and `load_diffs`, which work on
  a single JSON-lines file of `DiffEntry` records.
- `portwatch.history.tags.TagStore` keeps tags. `print_tags` lists them as a
  table.
- `Store.append_event` and `Store.load_events` keep `WatchEvent` records in
  `events.jsonl`. `portwatch.history.events.print_events` prints such a file
  as a table.
- `portwatch.notify.Dispatcher` sends a diff to any `Channel`.
  `StdoutChannel` writes to a text stream.
- `portwatch.runner.Runner` runs one scan cycle. `Scheduler` repeats it on an
  interval until `stop()` is called.

## What it does not do

- Scans do not record history. The monitor saves snapshots and prints
  notifications only. The history files that the commands read must be
  written through `Store.append`, or by other means.
- Notifications go only to standard output. The `alert` settings
  (`slack_webhook`, `email`, `log_file`) are read and checked but not used.
- Snapshots are always written under `.portwatch/` in the current directory.
  The `snapshot_dir` setting is read but not used.
- The `retention` command trims files named `<name>.history.jsonl`. These are
  not the `<host>.jsonl` files that `Store` writes.