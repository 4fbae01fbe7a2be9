"""Filesystem helpers shared by the on-disk stores.

Every store writes plain files synchronously, one file per record. There
is no temp-file-and-rename step, so a crash mid-write can leave a
truncated file behind; readers skip files they cannot parse.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A filesystem operation on a store failed."""


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise ``OSError`` as ``StorageError`` with a short description."""
    try:
        yield
    except OSError as exc:
        msg = f"Failed to {action}: {exc}"
        raise StorageError(msg) from exc


def ensure_dir(path: Path) -> Path:
    with storage_errors(f"create dir {path}"):
        path.mkdir(parents=True, exist_ok=True)
    return path


def write_text(path: Path, text: str) -> None:
    with storage_errors(f"write {path}"):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def read_text(path: Path) -> str | None:
    """Read a UTF-8 file, returning None (and logging) if it can't be read."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.warning("Skipping unreadable file %s", path)
        return None
