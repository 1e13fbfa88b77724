from datetime import datetime, timedelta, timezone

import pytest

from portwatch.history.store import (
    Entry,
    HistoryError,
    PruneOptions,
    QueryOptions,
    Store,
    WatchEvent,
    split_lines,
)


def _now():
    return datetime.now(timezone.utc).replace(microsecond=0)


def _entry(host, ago, opened):
    return Entry(timestamp=datetime.now(timezone.utc) - ago, host=host, opened=opened, closed=[])


def test_append_and_load(tmp_path):
    store = Store(tmp_path)
    e1 = Entry(timestamp=_now(), host="localhost", opened=[80, 443], closed=[])
    e2 = Entry(timestamp=_now(), host="localhost", opened=[], closed=[80])
    store.append(e1)
    store.append(e2)

    entries = store.load("localhost")
    assert len(entries) == 2
    assert entries[0].host == "localhost"
    assert len(entries[0].opened) == 2
    assert entries == [e1, e2]


def test_load_no_file(tmp_path):
    assert Store(tmp_path).load("ghost-host") == []


def test_append_invalid_dir(tmp_path):
    not_a_dir = tmp_path / "notadir"
    not_a_dir.write_text("")
    with pytest.raises(HistoryError):
        Store(not_a_dir).append(Entry(host="h"))


def test_load_corrupt_file_raises(tmp_path):
    (tmp_path / "bad.jsonl").write_text("{not json\n")
    with pytest.raises(HistoryError):
        Store(tmp_path).load("bad")


def test_host_path_uses_base_name(tmp_path):
    store = Store(tmp_path)
    store.append(Entry(timestamp=_now(), host="a/b", opened=[1]))
    assert (tmp_path / "b.jsonl").is_file()
    assert store.load("b")[0].host == "a/b"


def test_query_by_host(tmp_path):
    store = Store(tmp_path / "history.json")
    now = datetime.now(timezone.utc)
    store.append(Entry(host="host-a", timestamp=now, opened=[80], closed=[]))
    store.append(Entry(host="host-b", timestamp=now, opened=[443], closed=[]))

    results = store.query(QueryOptions(host="host-a"))
    assert len(results) == 1
    assert results[0].host == "host-a"


def test_query_since_until(tmp_path):
    store = Store(tmp_path / "history.json")
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store.append(Entry(host="h", timestamp=base, opened=[22]))
    store.append(Entry(host="h", timestamp=base + timedelta(hours=2), opened=[80]))
    store.append(Entry(host="h", timestamp=base + timedelta(hours=4), opened=[443]))

    results = store.query(
        QueryOptions(since=base + timedelta(hours=1), until=base + timedelta(hours=3))
    )
    assert len(results) == 1
    assert results[0].opened == [80]


def test_query_bounds_are_inclusive(tmp_path):
    store = Store(tmp_path)
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store.append(Entry(host="h", timestamp=base, opened=[22]))
    results = store.query(QueryOptions(since=base, until=base))
    assert [e.opened for e in results] == [[22]]


def test_query_limit(tmp_path):
    store = Store(tmp_path / "history.json")
    now = datetime.now(timezone.utc)
    for i in range(5):
        store.append(Entry(host="h", timestamp=now, opened=[i]))

    results = store.query(QueryOptions(limit=3))
    assert len(results) == 3
    assert [e.opened for e in results] == [[0], [1], [2]]


def test_query_no_file(tmp_path):
    store = Store(tmp_path / "nonexistent_query_history.json")
    assert store.query(QueryOptions()) == []


def test_prune_max_age(tmp_path):
    store = Store(tmp_path)
    store.append(_entry("h", timedelta(hours=2), [80]))
    store.append(_entry("h", timedelta(minutes=30), [443]))
    store.append(_entry("h", timedelta(minutes=5), [8080]))

    store.prune("h", PruneOptions(max_age=timedelta(hours=1)))
    entries = store.load("h")
    assert len(entries) == 2
    assert [e.opened for e in entries] == [[443], [8080]]


def test_prune_max_entries(tmp_path):
    store = Store(tmp_path)
    for i in range(5):
        store.append(_entry("h2", timedelta(minutes=i), [i]))

    store.prune("h2", PruneOptions(max_entries=3))
    entries = store.load("h2")
    assert len(entries) == 3
    assert [e.opened for e in entries] == [[2], [3], [4]]


def test_prune_no_file(tmp_path):
    store = Store(tmp_path)
    store.prune("nobody", PruneOptions(max_age=timedelta(hours=1)))
    assert store.load("nobody") == []


def test_append_event_and_load(tmp_path):
    store = Store(tmp_path, events_path=tmp_path / "history.jsonl")
    now = _now()
    events = [
        WatchEvent(timestamp=now, host="localhost", opened=[80, 443]),
        WatchEvent(timestamp=now + timedelta(minutes=1), host="remote", closed=[22]),
    ]
    for event in events:
        store.append_event(event)

    loaded = store.load_events()
    assert len(loaded) == 2
    assert loaded[0].host == "localhost"
    assert len(loaded[0].opened) == 2
    assert loaded[1].closed[0] == 22
    assert loaded == events


def test_append_event_omits_empty_ports(tmp_path):
    path = tmp_path / "events.jsonl"
    store = Store(tmp_path, events_path=path)
    store.append_event(WatchEvent(timestamp=_now(), host="x", opened=[1]))
    line = path.read_text()
    assert '"opened":[1]' in line
    assert "closed" not in line


def test_load_events_no_file(tmp_path):
    store = Store(tmp_path, events_path=tmp_path / "missing.jsonl")
    assert store.load_events() == []


def test_load_events_skips_bad_lines(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text('garbage\n{"timestamp":"2024-01-01T00:00:00Z","host":"h"}\n')
    loaded = Store(tmp_path, events_path=path).load_events()
    assert [e.host for e in loaded] == ["h"]


def test_append_event_invalid_dir(tmp_path):
    store = Store(tmp_path, events_path=tmp_path / "nonexistent" / "history.jsonl")
    with pytest.raises(OSError):
        store.append_event(WatchEvent(timestamp=_now(), host="x"))


def test_load_all_excludes_events_file(tmp_path):
    store = Store(tmp_path)
    store.append(Entry(timestamp=_now(), host="h", opened=[1]))
    store.append_event(WatchEvent(timestamp=_now(), host="w", opened=[2]))
    assert [e.host for e in store.load()] == ["h"]


def test_split_lines():
    assert split_lines(b"a\n\nb\nc") == [b"a", b"b", b"c"]
    assert split_lines(b"") == []
    assert split_lines(b"\n\n") == []