import json

import pytest

from portwatch.snapshot import Diff, Snapshot, compare, load, make_snapshot, save


def test_save_and_load(tmp_path):
    path = tmp_path / "snap.json"
    orig = make_snapshot("localhost", [22, 80, 443])
    save(path, orig)

    loaded = load(path)
    assert loaded.host == orig.host
    assert loaded.ports == [22, 80, 443]
    assert loaded.scanned_at == orig.scanned_at


def test_saved_file_format(tmp_path):
    path = tmp_path / "snap.json"
    save(path, make_snapshot("h", [443, 22]))
    text = path.read_text(encoding="utf-8")
    document = json.loads(text)
    assert set(document) == {"host", "ports", "scanned_at"}
    assert document["ports"] == [22, 443]
    assert text.endswith("\n")
    assert '\n  "host": "h"' in text


def test_load_missing_file_gives_empty_snapshot(tmp_path):
    assert load(tmp_path / "missing" / "snap.json") == Snapshot()


def test_load_utc_nanosecond_timestamp(tmp_path):
    path = tmp_path / "snap.json"
    path.write_text(
        '{"host": "a", "ports": null, "scanned_at": "2024-01-01T00:00:00.123456789Z"}',
        encoding="utf-8",
    )
    loaded = load(path)
    assert loaded.ports == []
    assert loaded.scanned_at.isoformat() == "2024-01-01T00:00:00.123456+00:00"


def test_load_invalid_json(tmp_path):
    path = tmp_path / "snap.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load(path)


def test_save_invalid_path(tmp_path):
    with pytest.raises(OSError):
        save(tmp_path / "nonexistent" / "snap.json", make_snapshot("localhost", [22]))


def test_make_snapshot_sorts_a_copy():
    ports = [443, 22, 80]
    snap = make_snapshot("h", ports)
    assert snap.ports == [22, 80, 443]
    assert ports == [443, 22, 80]


def test_compare():
    diff = compare(
        make_snapshot("localhost", [22, 80, 443]),
        make_snapshot("localhost", [22, 443, 8080]),
    )
    assert diff.opened == [8080]
    assert diff.closed == [80]
    assert diff.has_changes() is True


def test_compare_no_diff():
    diff = compare(make_snapshot("localhost", [22, 80]), make_snapshot("localhost", [22, 80]))
    assert diff == Diff()
    assert diff.has_changes() is False


def test_compare_empty_snapshots():
    diff = compare(make_snapshot("localhost", []), make_snapshot("localhost", []))
    assert diff.opened == []
    assert diff.closed == []


def test_compare_all_closed():
    diff = compare(make_snapshot("localhost", [22, 80, 443]), make_snapshot("localhost", []))
    assert diff.opened == []
    assert diff.closed == [22, 80, 443]