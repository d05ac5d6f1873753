"""Dual-tier board persistence.

Board state is split in two:

- Metadata (ids, names, positions, text, the connection graph) goes to a small
  synchronous `MetadataStore` as a single JSON record.
- Binary payloads (encoded images, PDFs, thumbnails) go to an async
  `BinaryStore`, keyed by `boardId:itemId:fieldName`.

`strip_binary_fields` and `hydrate` are inverse projections: hydrating a
stripped item list reproduces it exactly while the binary tier is intact.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..core.models import Item, RegistryState, binary_fields_for
from ..errors import StorageError, StorageFullError
from .binary import BinaryStore, board_prefix, item_prefix, make_key
from .metadata import MetadataStore

logger = logging.getLogger(__name__)


class StorageWarning(str, Enum):
    FULL = "full"
    FAILED = "failed"

    @property
    def message(self) -> str:
        if self is StorageWarning.FULL:
            return "Storage is full. Some changes may not be saved. Try removing large images or PDFs."
        return "Failed to save board data."


@dataclass(frozen=True)
class SaveReport:
    ok: bool
    warning: Optional[StorageWarning] = None
    detail: str = ""


def _is_valid_store(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    version = data.get("version")
    if not isinstance(version, (int, float)) or isinstance(version, bool):
        return False
    if not isinstance(data.get("lastActiveBoard"), str):
        return False
    boards = data.get("boards")
    return isinstance(boards, dict) and len(boards) > 0


def _has_content(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def strip_binary_fields(item: Item) -> Item:
    """Metadata-only projection of an item.

    Only binary fields with a payload move out; empty ones stay inline so the
    projection hydrates back to the same item.
    """
    doomed = [n for n in binary_fields_for(item.kind) if _has_content(item.fields.get(n))]
    if not doomed:
        return item
    return item.with_fields({k: v for k, v in item.fields.items() if k not in doomed})


def metadata_projection(state: RegistryState) -> Dict[str, Any]:
    payload = state.to_dict()
    for bid, board in state.boards.items():
        payload["boards"][bid]["nodes"] = [strip_binary_fields(i).to_dict() for i in board.items]
    return payload


class DualTierPersistence:
    def __init__(self, metadata: MetadataStore, binary: BinaryStore):
        self.metadata = metadata
        self.binary = binary

    # --- metadata tier ---

    def load_or_create_registry(self) -> RegistryState:
        """Load the registry, or start fresh when the stored one is unusable.

        Corrupt state is dropped on purpose: the result always holds at
        least one board and an active pointer that resolves.
        """
        try:
            raw = self.metadata.read()
        except StorageError as e:
            logger.warning("Failed to read board data, starting fresh: %s", e)
            raw = None

        if raw:
            state = self._parse_registry(raw)
            if state is not None:
                return state
            logger.warning("Failed to load board data from the metadata store, starting fresh.")

        state = RegistryState.fresh()
        try:
            self.metadata.write(json.dumps(metadata_projection(state)))
        except (StorageError, OSError) as e:
            # Retried on the next save.
            logger.debug("Could not persist fresh registry: %s", e)
        return state

    def _parse_registry(self, raw: str) -> Optional[RegistryState]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if not _is_valid_store(data):
            return None
        try:
            state = RegistryState.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Malformed board record: %s", e)
            return None
        if not state.boards or state.active_board_id not in state.boards:
            return None
        return state

    def save_registry(self, state: RegistryState) -> SaveReport:
        """Write the metadata projection. Never touches the binary tier.

        Failures degrade durability only; the caller's in-memory state is
        left as it was.
        """
        try:
            text = json.dumps(metadata_projection(state))
            self.metadata.write(text)
        except StorageFullError as e:
            logger.warning("Metadata store is full: %s", e)
            return SaveReport(ok=False, warning=StorageWarning.FULL, detail=str(e))
        except (StorageError, OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save board data: %s", e)
            return SaveReport(ok=False, warning=StorageWarning.FAILED, detail=str(e))
        return SaveReport(ok=True)

    # --- binary tier ---

    async def save_binary_fields(self, board_id: str, items: Iterable[Item]) -> int:
        """Write every non-empty binary field. Failures are logged, never raised."""
        keys: List[str] = []
        writes = []
        for item in items:
            for name in binary_fields_for(item.kind):
                value = item.fields.get(name)
                if _has_content(value):
                    key = make_key(board_id, item.id, name)
                    keys.append(key)
                    writes.append(self.binary.set(key, value))

        results = await asyncio.gather(*writes, return_exceptions=True)
        saved = 0
        for key, res in zip(keys, results):
            if isinstance(res, BaseException):
                logger.warning("Failed to save binary data for %s: %s", key, res)
            else:
                saved += 1
        return saved

    async def _load_field(self, board_id: str, item_id: str, name: str) -> Optional[str]:
        key = make_key(board_id, item_id, name)
        try:
            value = await self.binary.get(key)
        except Exception as e:
            logger.warning("Failed to load binary data for %s: %s", key, e)
            return None
        if value is None:
            logger.debug("No binary data stored for %s", key)
        return value if _has_content(value) else None

    async def _hydrate_item(self, board_id: str, item: Item) -> Item:
        names = binary_fields_for(item.kind)
        missing = [n for n in names if not item.fields.get(n)]
        if not missing:
            return item
        values = await asyncio.gather(*(self._load_field(board_id, item.id, n) for n in missing))
        loaded = {n: v for n, v in zip(missing, values) if v is not None}
        if not loaded:
            return item
        merged = dict(item.fields)
        merged.update(loaded)
        return item.with_fields(merged)

    async def hydrate(self, board_id: str, items: Iterable[Item]) -> List[Item]:
        """Splice binary fields back into stripped items.

        Fields already present are left alone; entries missing from the
        binary tier simply stay absent.
        """
        return list(await asyncio.gather(*(self._hydrate_item(board_id, i) for i in items)))

    async def _sweep(self, prefix: str) -> int:
        try:
            removed = await self.binary.delete_prefix(prefix)
        except Exception as e:
            logger.warning("Failed to clean up binary data under %r: %s", prefix, e)
            return 0
        logger.debug("Removed %d binary entries under %r", removed, prefix)
        return removed

    async def delete_board_data(self, board_id: str) -> int:
        return await self._sweep(board_prefix(board_id))

    async def delete_item_data(self, board_id: str, item_id: str) -> int:
        return await self._sweep(item_prefix(board_id, item_id))
