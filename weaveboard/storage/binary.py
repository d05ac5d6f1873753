"""Binary tier: a larger async key/value store for encoded payloads.

Keys have the form `boardId:itemId:fieldName`; values are opaque strings
(data URLs in practice). The tier is treated as a cache of recoverable
content, so callers log its failures instead of surfacing them.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from ..core.paths import binary_dir


def make_key(board_id: str, item_id: str, field: str) -> str:
    return f"{board_id}:{item_id}:{field}"


def board_prefix(board_id: str) -> str:
    return f"{board_id}:"


def item_prefix(board_id: str, item_id: str) -> str:
    return f"{board_id}:{item_id}:"


class BinaryStore:
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def keys(self) -> List[str]:
        raise NotImplementedError

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix`. Returns the number removed."""
        doomed = [k for k in await self.keys() if k.startswith(prefix)]
        await asyncio.gather(*(self.delete(k) for k in doomed))
        return len(doomed)


class MemoryBinaryStore(BinaryStore):
    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self.data.keys())


class FileBinaryStore(BinaryStore):
    """One file per key under `<data_dir>/binary/`. Disk I/O runs off the loop."""

    SUFFIX = ".blob"

    def __init__(self, data_dir: Path):
        self.root = binary_dir(Path(data_dir))

    def _path(self, key: str) -> Path:
        return self.root / (quote(key, safe="") + self.SUFFIX)

    def _read(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def _remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def _list(self) -> List[str]:
        if not self.root.is_dir():
            return []
        out: List[str] = []
        for p in sorted(self.root.iterdir()):
            if p.name.endswith(self.SUFFIX):
                out.append(unquote(p.name[: -len(self.SUFFIX)]))
        return out

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._list)
