from datetime import datetime, timezone

import pytest

from portwatch.history.diffs import DiffEntry, append_diff, load_diffs
from portwatch.history.store import HistoryError


def test_append_diff_and_load(tmp_path):
    path = tmp_path / "diffs.jsonl"
    now = datetime.now(timezone.utc).replace(microsecond=0)
    entry = DiffEntry(timestamp=now, host="192.168.1.1", opened=[80, 443], closed=[22])

    append_diff(path, entry)
    entries = load_diffs(path)

    assert len(entries) == 1
    got = entries[0]
    assert got.host == entry.host
    assert got.opened == [80, 443]
    assert got.closed == [22]
    assert got.timestamp == now


def test_load_diffs_no_file(tmp_path):
    assert load_diffs(tmp_path / "nonexistent" / "diffs.jsonl") == []


def test_append_diff_multiple_entries(tmp_path):
    path = tmp_path / "diffs.jsonl"
    for i in range(3):
        append_diff(
            path,
            DiffEntry(timestamp=datetime.now(timezone.utc), host="host-1", opened=[i + 1], closed=[]),
        )
    entries = load_diffs(path)
    assert len(entries) == 3
    assert [e.opened for e in entries] == [[1], [2], [3]]


def test_append_diff_invalid_dir(tmp_path):
    with pytest.raises(HistoryError):
        append_diff(tmp_path / "nonexistent" / "diffs.jsonl", DiffEntry())


def test_load_diffs_decode_error(tmp_path):
    path = tmp_path / "diffs.jsonl"
    path.write_text('{"host":"h","opened":"nope"}\n')
    with pytest.raises(HistoryError):
        load_diffs(path)