"""Partitioned, human-readable memory store.

Each record is one Markdown file, ``<id>.md``, with a header block:

    ---
    id: work-1718000000000
    title: Ship the Q3 roadmap
    type: WORK
    tags: roadmap, q3
    entities: Acme
    confidence: 0.8
    timestamp: 1718000000000
    ---

    Free-text content...

The partition directory is chosen by ``memory_type``: ``WORK``,
``LEARNING`` and ``RELATIONSHIP`` are subdirectories of the store root,
``general`` records sit in the root itself. Work-item directories and
relationship-note month directories live alongside the records but are
never mistaken for them, since only top-level ``*.md`` files are read.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pai.memory.models import MemoryItem, MemoryType
from pai.storage import ensure_dir, read_text, storage_errors, write_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

HEADER_DELIMITER = "---"
LIST_SEPARATOR = ", "

# Fixed probe order for loads and deletes.
PARTITION_ORDER: tuple[MemoryType, ...] = (
    MemoryType.WORK,
    MemoryType.LEARNING,
    MemoryType.RELATIONSHIP,
    MemoryType.GENERAL,
)


# -- Codec -------------------------------------------------------------------


def _header_value(value: str) -> str:
    # Header values are single-line by construction.
    return " ".join(value.splitlines())


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def format_memory(item: MemoryItem) -> str:
    """Serialize a record to its Markdown file body."""
    header = [
        f"id: {_header_value(item.id)}",
        f"title: {_header_value(item.title)}",
        f"type: {item.memory_type.value}",
        f"tags: {LIST_SEPARATOR.join(_header_value(t) for t in item.tags)}",
        f"entities: {LIST_SEPARATOR.join(_header_value(e) for e in item.entities)}",
        f"confidence: {item.confidence}",
        f"timestamp: {item.timestamp}",
    ]
    return f"{HEADER_DELIMITER}\n" + "\n".join(header) + f"\n{HEADER_DELIMITER}\n\n{item.content}"


def parse_memory(text: str, default_type: MemoryType = MemoryType.GENERAL) -> MemoryItem | None:
    """Parse a record file. Returns None for anything that isn't a valid record.

    Optional fields fall back to defaults (confidence 1.0, timestamp 0,
    empty lists, the partition's type). A missing ``id`` or ``title``, or
    an empty body, rejects the record.
    """
    text = text.replace("\r\n", "\n")
    opening, sep, rest = text.partition("\n")
    if not sep or opening.strip() != HEADER_DELIMITER:
        return None
    # The closing delimiter is a line of its own; "---" inside a value is not one.
    closing = f"\n{HEADER_DELIMITER}\n"
    end = f"\n{rest}".find(closing)
    if end < 0:
        return None
    header = rest[:end]
    body = rest[end + len(closing) - 1 :].strip()

    fields: dict[str, str] = {}
    for raw_line in header.splitlines():
        key, sep, value = raw_line.strip().partition(":")
        if sep:
            fields[key.strip()] = value.strip()

    memory_id = fields.get("id", "")
    title = fields.get("title", "")
    if not memory_id or not title or not body:
        return None

    try:
        confidence = float(fields.get("confidence", "1.0"))
    except ValueError:
        confidence = 1.0
    try:
        timestamp = int(fields.get("timestamp", "0"))
    except ValueError:
        timestamp = 0

    return MemoryItem(
        id=memory_id,
        title=title,
        content=body,
        memory_type=MemoryType.parse(fields["type"]) if "type" in fields else default_type,
        timestamp=timestamp,
        tags=_split_list(fields.get("tags", "")),
        entities=_split_list(fields.get("entities", "")),
        confidence=confidence,
    )


# -- Store -------------------------------------------------------------------


class MemoryStore:
    """Reads and writes memory record files under *root*.

    Holds no in-memory state of its own: the application state keeps the
    mirror and calls these methods for the disk side of write-through.
    All methods are synchronous.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def partition_dir(self, memory_type: MemoryType) -> Path:
        if memory_type is MemoryType.GENERAL:
            return self._root
        return self._root / memory_type.value

    def ensure_dirs(self) -> None:
        for memory_type in PARTITION_ORDER:
            ensure_dir(self.partition_dir(memory_type))

    def path_for(self, item: MemoryItem) -> Path:
        return self.partition_dir(item.memory_type) / f"{item.id}.md"

    # -- Write ---------------------------------------------------------------

    def save(self, item: MemoryItem) -> Path:
        """Write *item* to its partition, replacing any file with the same id."""
        self.ensure_dirs()
        path = self.path_for(item)
        write_text(path, format_memory(item))
        logger.debug("Saved memory %s to %s", item.id, path)
        return path

    def delete(self, memory_id: str) -> bool:
        """Remove the first ``<memory_id>.md`` found, probing partitions in order.

        Returns True if a file was removed.
        """
        for memory_type in PARTITION_ORDER:
            path = self.partition_dir(memory_type) / f"{memory_id}.md"
            if path.is_file():
                with storage_errors(f"delete {path}"):
                    path.unlink()
                logger.info("Deleted memory %s", memory_id)
                return True
        return False

    # -- Read ----------------------------------------------------------------

    def load_all(self) -> list[MemoryItem]:
        """Scan every partition and return valid records, newest first."""
        self.ensure_dirs()
        items: list[MemoryItem] = []
        for memory_type in PARTITION_ORDER:
            directory = self.partition_dir(memory_type)
            for path in sorted(directory.glob("*.md")):
                if not path.is_file():
                    continue
                text = read_text(path)
                if text is None:
                    continue
                item = parse_memory(text, memory_type)
                if item is None:
                    logger.debug("Skipping malformed memory file %s", path)
                    continue
                items.append(item)

        items.sort(key=lambda m: m.timestamp, reverse=True)
        return items

    def search(self, query: str, memory_type: MemoryType | None = None) -> list[MemoryItem]:
        """Case-insensitive substring search over title, content and tags.

        Always re-reads the disk, so edits made outside the app are seen.
        """
        needle = query.lower()
        results = []
        for item in self.load_all():
            if memory_type is not None and item.memory_type != memory_type:
                continue
            if (
                needle in item.title.lower()
                or needle in item.content.lower()
                or any(needle in tag.lower() for tag in item.tags)
            ):
                results.append(item)
        return results
