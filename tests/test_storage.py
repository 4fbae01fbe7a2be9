"""Tests for filesystem helpers and the id clock."""

import pytest

from pai.clock import unique_millis
from pai.storage import StorageError, read_text, storage_errors, write_text


def test_write_creates_parents(tmp_path) -> None:
    path = tmp_path / "a" / "b" / "file.txt"
    write_text(path, "hello")
    assert read_text(path) == "hello"


def test_read_missing_returns_none(tmp_path) -> None:
    assert read_text(tmp_path / "missing.txt") is None


def test_read_non_utf8_returns_none(tmp_path) -> None:
    path = tmp_path / "binary.md"
    path.write_bytes(b"\xff\xfe\x00bad")
    assert read_text(path) is None


def test_storage_errors_wraps_oserror() -> None:
    with pytest.raises(StorageError, match="Failed to write x"):
        with storage_errors("write x"):
            raise PermissionError("denied")


def test_unique_millis_strictly_increasing() -> None:
    values = [unique_millis() for _ in range(1000)]
    assert values == sorted(set(values))
