"""Flat stores that sit beside the memory records: relationship notes,
work items and PRDs. Same durability model as ``MemoryStore``: one
synchronous write per operation, plain text on disk.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from pai.clock import now_seconds
from pai.memory.models import Prd, RelationshipNote, WorkItem
from pai.storage import StorageError, ensure_dir, read_text, storage_errors, write_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class WorkItemNotFoundError(StorageError):
    """No work item directory exists for the requested id."""


# -- Relationship notes ------------------------------------------------------


def format_relationship_note(note: RelationshipNote) -> str:
    return f"## {note.note_type} @{note.entity}\n\n{note.content}\n\n---\n"


def parse_relationship_notes(text: str, timestamp: int = 0) -> list[RelationshipNote]:
    """Split a day log back into notes on its ``## type @entity`` headers.

    Lossy: blank lines inside a note are dropped, and any content line
    that itself starts with ``##`` is discarded.
    """
    notes: list[RelationshipNote] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("## "):
            note_type, sep, entity = line[3:].partition(" @")
            if sep:
                notes.append(
                    RelationshipNote(
                        note_type=note_type, entity=entity, content="", timestamp=timestamp
                    )
                )
        elif line and not line.startswith("---") and not line.startswith("##"):
            if notes:
                last = notes[-1]
                last.content = f"{last.content}\n{line}" if last.content else line
    return notes


class RelationshipLog:
    """Append-only notes under ``<root>/<YYYY-MM>/<YYYY-MM-DD>.md``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def day_file(self, day: date) -> Path:
        return self._root / day.strftime("%Y-%m") / f"{day.isoformat()}.md"

    def append(self, note: RelationshipNote, *, day: date | None = None) -> Path:
        path = self.day_file(day or datetime.now(UTC).date())
        ensure_dir(path.parent)
        with storage_errors(f"append to {path}"), path.open("a", encoding="utf-8") as f:
            f.write(format_relationship_note(note))
        return path

    def load_all(self) -> list[RelationshipNote]:
        """Every note from every day file, newest day first."""
        if not self._root.is_dir():
            return []
        notes: list[RelationshipNote] = []
        for month in sorted(p for p in self._root.iterdir() if p.is_dir()):
            for path in sorted(month.glob("*.md")):
                text = read_text(path)
                if text is None:
                    continue
                notes.extend(parse_relationship_notes(text, _day_timestamp(path.stem)))
        notes.sort(key=lambda n: n.timestamp, reverse=True)
        return notes


def _day_timestamp(stem: str) -> int:
    """Midnight UTC of a ``YYYY-MM-DD`` file stem, in seconds (0 if unparseable)."""
    try:
        day = date.fromisoformat(stem)
    except ValueError:
        return 0
    return int(datetime(day.year, day.month, day.day, tzinfo=UTC).timestamp())


# -- Work items --------------------------------------------------------------

META_FILE = "META.yaml"
DESCRIPTION_FILE = "description.md"


def format_work_meta(item: WorkItem) -> str:
    completed = "" if item.completed_at is None else str(item.completed_at)
    return (
        f"id: {item.id}\n"
        f"title: {item.title}\n"
        f"status: {item.status}\n"
        f"created_at: {item.created_at}\n"
        f"completed_at: {completed}\n"
    )


def parse_work_meta(text: str, item_id: str) -> WorkItem | None:
    """Parse ``META.yaml`` line by line. A repeated key keeps its last value."""
    title = ""
    status = "active"
    created_at = 0
    completed_at: int | None = None

    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        value = value.strip()
        match key.strip():
            case "title":
                title = value
            case "status":
                status = value
            case "created_at":
                created_at = int(value) if value.lstrip("-").isdigit() else 0
            case "completed_at":
                if value.lstrip("-").isdigit():
                    completed_at = int(value)

    if not title:
        return None
    return WorkItem(
        id=item_id,
        title=title,
        status=status,
        created_at=created_at,
        completed_at=completed_at,
    )


class WorkItemStore:
    """One directory per work item: ``META.yaml`` plus ``description.md``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def save(self, item: WorkItem) -> Path:
        item_dir = ensure_dir(self._root / item.id)
        write_text(item_dir / META_FILE, format_work_meta(item))
        write_text(item_dir / DESCRIPTION_FILE, item.description)
        return item_dir

    def load_all(self) -> list[WorkItem]:
        """All parseable work items, most recently created first."""
        if not self._root.is_dir():
            return []
        items: list[WorkItem] = []
        for item_dir in sorted(p for p in self._root.iterdir() if p.is_dir()):
            meta = item_dir / META_FILE
            if not meta.is_file():
                continue
            text = read_text(meta)
            if text is None:
                continue
            item = parse_work_meta(text, item_dir.name)
            if item is None:
                continue
            description = item_dir / DESCRIPTION_FILE
            if description.is_file():
                item.description = read_text(description) or ""
            items.append(item)
        items.sort(key=lambda w: w.created_at, reverse=True)
        return items

    def complete(self, item_id: str) -> int:
        """Mark a work item completed. Returns the completion timestamp.

        Appends ``completed_at``/``status`` lines instead of rewriting the
        file, so completing twice leaves duplicate keys behind. Readers
        take the last value.
        """
        meta = self._root / item_id / META_FILE
        if not meta.is_file():
            msg = f"Work item {item_id} not found"
            raise WorkItemNotFoundError(msg)

        completed_at = now_seconds()
        with storage_errors(f"read {meta}"):
            existing = meta.read_text(encoding="utf-8")
        write_text(meta, f"{existing.strip()}\ncompleted_at: {completed_at}\nstatus: COMPLETED")
        logger.info("Completed work item %s", item_id)
        return completed_at


# -- PRDs --------------------------------------------------------------------


class PrdStore:
    """One Markdown file per PRD id. No structured fields."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def save(self, prd_id: str, content: str) -> Path:
        path = self._root / f"{prd_id}.md"
        write_text(path, content)
        return path

    def get(self, prd_id: str) -> Prd | None:
        path = self._root / f"{prd_id}.md"
        if not path.is_file():
            return None
        text = read_text(path)
        return None if text is None else Prd(id=prd_id, content=text)

    def load_all(self) -> list[Prd]:
        if not self._root.is_dir():
            return []
        prds = []
        for path in sorted(self._root.glob("*.md")):
            text = read_text(path)
            if text is not None:
                prds.append(Prd(id=path.stem, content=text))
        return prds
