"""Metadata tier: one small JSON record holding the whole registry.

The record is overwritten wholesale on each save. Stores enforce a byte quota
the way browser local storage does, so a board that keeps binary content
inline fails loudly instead of growing without bound.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.lock import board_store_lock
from ..core.paths import metadata_path, write_text_atomic
from ..errors import StorageError, StorageFullError

logger = logging.getLogger(__name__)

STORE_KEY = "weave-boards"
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class MetadataStore:
    """Synchronous, size-constrained store for a single text record."""

    quota_bytes: Optional[int] = None

    def read(self) -> Optional[str]:
        raise NotImplementedError

    def write(self, text: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def _check_quota(self, text: str) -> None:
        if self.quota_bytes is None:
            return
        needed = len(text.encode("utf-8"))
        if needed > self.quota_bytes:
            raise StorageFullError(needed, self.quota_bytes)


class FileMetadataStore(MetadataStore):
    def __init__(self, data_dir: Path, *, key: str = STORE_KEY, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES):
        self.data_dir = Path(data_dir)
        self.key = key
        self.quota_bytes = quota_bytes

    @property
    def path(self) -> Path:
        return metadata_path(self.data_dir, self.key)

    def read(self) -> Optional[str]:
        path = self.path
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def write(self, text: str) -> None:
        self._check_quota(text)
        with board_store_lock(self.data_dir):
            try:
                write_text_atomic(self.path, text)
            except OSError as e:
                raise StorageError(f"Could not write {self.path}: {e}") from e

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class MemoryMetadataStore(MetadataStore):
    """In-process store, used by tests and throwaway sessions."""

    def __init__(self, text: Optional[str] = None, *, quota_bytes: Optional[int] = None):
        self._text = text
        self.quota_bytes = quota_bytes
        self.writes = 0

    def read(self) -> Optional[str]:
        return self._text

    def write(self, text: str) -> None:
        self._check_quota(text)
        self._text = text
        self.writes += 1

    def clear(self) -> None:
        self._text = None
