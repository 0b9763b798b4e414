"""File locking for handout records shared between sessions."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import portalocker


def lock_path_for(path: Path) -> Path:
    return path.with_suffix(path.suffix + ".lock")


@contextmanager
def record_lock(path: Path, timeout: float = 10.0) -> Generator[None, None, None]:
    """Hold an exclusive lock on a record for the duration of the block.

    The lock lives in a sibling '.lock' file so the record itself can be
    replaced while locked.

    Raises:
        portalocker.LockException: If the lock isn't acquired within timeout
    """
    lock_path = lock_path_for(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock_path.touch(exist_ok=True)

    with portalocker.Lock(lock_path, timeout=timeout):
        yield


def write_record(path: Path, text: str, timeout: float = 10.0) -> None:
    """Replace a record's contents under lock, via a temp file and rename."""
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with record_lock(path, timeout=timeout):
        try:
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, path)
        except Exception:
            if tmp_path.exists():
                tmp_path.unlink()
            raise


def remove_record(path: Path, timeout: float = 10.0) -> None:
    """Delete a record and, once released, its lock file."""
    with record_lock(path, timeout=timeout):
        if path.exists():
            path.unlink()
    lock_path_for(path).unlink(missing_ok=True)
