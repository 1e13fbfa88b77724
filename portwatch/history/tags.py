"""Named time markers kept in a JSON file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from ..snapshot import _format_time, _parse_time
from .store import _ZERO_TIME, HistoryError
from .summary import _format_table


@dataclass
class Tag:
    """A named marker attached to a point in time."""

    name: str
    note: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _tag_from(data: Any) -> Tag:
    if not isinstance(data, dict):
        raise ValueError("tag must be a JSON object")
    name = data.get("name") or ""
    note = data.get("note") or ""
    created = data.get("created_at")
    if not isinstance(name, str) or not isinstance(note, str):
        raise ValueError("tag name and note must be strings")
    if created is not None and not isinstance(created, str):
        raise ValueError(f"invalid created_at {created!r}")
    return Tag(
        name=name,
        note=note,
        created_at=_parse_time(created) if created is not None else _ZERO_TIME,
    )


def _tag_record(tag: Tag) -> dict[str, Any]:
    record: dict[str, Any] = {"name": tag.name}
    if tag.note:
        record["note"] = tag.note
    record["created_at"] = _format_time(tag.created_at)
    return record


class TagStore:
    """Tags stored as a JSON array in one file."""

    def __init__(self, path) -> None:
        self.path = Path(path)

    def add(self, name: str, note: str = "") -> None:
        """Append a tag created now."""
        tags = self.load()
        tags.append(Tag(name=name, note=note, created_at=datetime.now(timezone.utc)))
        self._save(tags)

    def load(self) -> list[Tag]:
        """Read all tags; a missing file gives an empty list."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise HistoryError(f"tags: read {self.path}: {exc}") from exc
        try:
            document = json.loads(text)
            if document is None:
                return []
            if not isinstance(document, list):
                raise ValueError("tags file must hold a JSON array")
            return [_tag_from(item) for item in document]
        except ValueError as exc:
            raise HistoryError(f"tags: decode {self.path}: {exc}") from exc

    def delete(self, name: str) -> None:
        """Remove every tag called name."""
        self._save([tag for tag in self.load() if tag.name != name])

    def _save(self, tags: list[Tag]) -> None:
        text = json.dumps([_tag_record(tag) for tag in tags], indent=2, ensure_ascii=False)
        try:
            self.path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise HistoryError(f"tags: write {self.path}: {exc}") from exc


def print_tags(store: TagStore, stream: TextIO) -> None:
    """Write all tags in store to stream as a table."""
    try:
        tags = store.load()
    except HistoryError as exc:
        raise HistoryError(f"load tags: {exc}") from exc
    if not tags:
        stream.write("no tags found\n")
        return
    rows = [["NAME", "CREATED", "NOTE"]]
    rows += [
        [tag.name, tag.created_at.strftime("%Y-%m-%d %H:%M:%S"), tag.note] for tag in tags
    ]
    stream.write(_format_table(rows))