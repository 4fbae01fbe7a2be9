"""Chat messages and their append-only, file-per-message log."""

from __future__ import annotations

import logging
import shutil
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, ValidationError

from pai.clock import now_seconds
from pai.storage import ensure_dir, read_text, storage_errors, write_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant", "system"]


class ChatMessage(BaseModel):
    """A single conversation turn. Never modified after it is appended."""

    role: Role
    content: str
    timestamp: int = Field(default_factory=now_seconds)  # seconds


def _sort_key(path: Path) -> tuple[int, int]:
    # "<timestamp>.json" or "<timestamp>-<n>.json" for same-second collisions
    stem, _, suffix = path.stem.partition("-")
    try:
        return int(stem), int(suffix or 0)
    except ValueError:
        return 0, 0


class MessageLog:
    """``<root>/<timestamp>.json``, one file per message.

    Two messages in the same second get ``<timestamp>-1.json``,
    ``<timestamp>-2.json`` and so on, so neither overwrites the other.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def append(self, message: ChatMessage) -> Path:
        ensure_dir(self._root)
        path = self._root / f"{message.timestamp}.json"
        n = 0
        while path.exists():
            n += 1
            path = self._root / f"{message.timestamp}-{n}.json"
        write_text(path, message.model_dump_json(indent=2))
        return path

    def load_all(self) -> list[ChatMessage]:
        """All readable messages in append order."""
        if not self._root.is_dir():
            return []
        messages: list[ChatMessage] = []
        for path in sorted(self._root.glob("*.json"), key=_sort_key):
            text = read_text(path)
            if text is None:
                continue
            try:
                messages.append(ChatMessage.model_validate_json(text))
            except ValidationError:
                logger.warning("Skipping malformed message file %s", path)
        messages.sort(key=lambda m: m.timestamp)
        return messages

    def clear(self) -> None:
        if self._root.exists():
            with storage_errors(f"clear {self._root}"):
                shutil.rmtree(self._root)
        ensure_dir(self._root)
