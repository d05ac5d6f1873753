from __future__ import annotations

import fcntl
import time
from contextlib import contextmanager
from pathlib import Path

from ..errors import StorageError

POLL_INTERVAL_S = 0.02


@contextmanager
def board_store_lock(data_dir: Path, *, timeout_s: float = 2.0):
    """Exclusive cross-process lock on `data_dir` for the span of one write.

    Raises `StorageError` if the lock file cannot be opened or another process
    holds the lock for longer than `timeout_s`.
    """
    lock_path = data_dir / ".lock"
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        handle = lock_path.open("a+", encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Cannot open lock file {lock_path}: {e}") from e

    with handle:
        deadline = time.monotonic() + timeout_s
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise StorageError(f"Timed out waiting for lock on {data_dir}") from None
                time.sleep(POLL_INTERVAL_S)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
