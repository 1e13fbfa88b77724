import io
from datetime import datetime, timezone

from portwatch.history.events import format_ports, print_events
from portwatch.history.store import Store, WatchEvent


def _store(tmp_path):
    path = tmp_path / "history.jsonl"
    return path, Store(tmp_path, events_path=path)


def test_format_ports_empty():
    assert format_ports([]) == "-"


def test_format_ports_joins_in_order():
    assert format_ports([80, 443]) == "80,443"


def test_print_events_missing_file(tmp_path):
    stream = io.StringIO()
    print_events(tmp_path / "missing.jsonl", None, stream)
    assert stream.getvalue() == "no events recorded\n"


def test_print_events_table(tmp_path):
    path, store = _store(tmp_path)
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store.append_event(WatchEvent(timestamp=stamp, host="localhost", opened=[80, 443]))
    store.append_event(WatchEvent(timestamp=stamp, host="remote", closed=[22]))

    stream = io.StringIO()
    print_events(path, None, stream)
    lines = stream.getvalue().splitlines()
    assert lines[0].split() == ["TIMESTAMP", "HOST", "OPENED", "CLOSED"]
    assert len(lines) == 3
    first = lines[1].split()
    assert first[1:] == ["localhost", format_ports([80, 443]), format_ports([])]
    second = lines[2].split()
    assert second[1:] == ["remote", format_ports([]), format_ports([22])]
    assert first[0] == second[0]


def test_print_events_since_filters(tmp_path):
    path, store = _store(tmp_path)
    store.append_event(
        WatchEvent(timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc), host="old-host", opened=[1])
    )
    store.append_event(
        WatchEvent(timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc), host="new-host", opened=[2])
    )
    stream = io.StringIO()
    print_events(path, datetime(2024, 3, 1, tzinfo=timezone.utc), stream)
    out = stream.getvalue()
    assert "new-host" in out
    assert "old-host" not in out


def test_print_events_skips_bad_lines(tmp_path):
    path, store = _store(tmp_path)
    path.write_text("garbage\n")
    store.append_event(WatchEvent(host="good-host", opened=[5]))
    stream = io.StringIO()
    print_events(path, None, stream)
    lines = stream.getvalue().splitlines()
    assert len(lines) == 2
    assert "good-host" in lines[1]