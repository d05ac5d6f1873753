"""Board lifecycle: create, switch, rename, delete, save.

The registry owns the `RegistryState`, the active board's id allocator and
the hydration bookkeeping. Durability is delegated to `DualTierPersistence`.
Lifecycle calls never raise for unknown board ids; they do nothing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Iterable, List, Optional, Set

from ..storage.persistence import DualTierPersistence, SaveReport, StorageWarning, strip_binary_fields
from .ids import IdentityAllocator
from .models import Board, BoardSummary, Connection, Item, ItemKind, RegistryState

logger = logging.getLogger(__name__)


def _clear_loading(item: Item) -> Item:
    # A link preview still loading when saved would stay "loading" forever.
    if item.kind == ItemKind.LINK and item.fields.get("loading"):
        return item.with_fields({**item.fields, "loading": False})
    return item


class BoardRegistry:
    def __init__(self, persistence: DualTierPersistence):
        self.persistence = persistence
        self.state: RegistryState = persistence.load_or_create_registry()
        self.ids = IdentityAllocator(self.state.active_board.item_id_counter)
        self.storage_warning: Optional[StorageWarning] = None

        self._hydrated: Optional[Board] = None
        self._hydrating = True
        self._generation = 0
        self._background: Set[asyncio.Task] = set()

    # --- views ---

    @property
    def active_board_id(self) -> str:
        return self.state.active_board_id

    @property
    def hydrating(self) -> bool:
        return self._hydrating

    @property
    def current_board(self) -> Board:
        """The hydrated active board when available, else its metadata projection."""
        if self._hydrated is not None and self._hydrated.id == self.state.active_board_id:
            return self._hydrated
        return self.state.active_board

    def get_board(self, board_id: str) -> Optional[Board]:
        return self.state.boards.get(board_id)

    def all_boards(self) -> List[BoardSummary]:
        summaries = [BoardSummary(id=b.id, name=b.name, updated_at=b.updated_at) for b in self.state.boards.values()]
        return sorted(summaries, key=lambda s: s.updated_at, reverse=True)

    def dismiss_storage_warning(self) -> None:
        self.storage_warning = None

    # --- background work ---

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return None
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for scheduled binary-tier writes and cleanups to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _persist(self) -> SaveReport:
        report = self.persistence.save_registry(self.state)
        self.storage_warning = report.warning
        return report

    def _activate(self, board: Board) -> None:
        self.ids.reset(board.item_id_counter)
        self.state.active_board_id = board.id
        self._generation += 1
        self._hydrating = True

    # --- lifecycle ---

    def create_board(self, name: Optional[str] = None) -> str:
        """Create an empty board and make it active.

        Pending edits to the previous board are not saved here; flush them
        with `save_current_board` first.
        """
        board = Board.empty(name)
        self.state.boards[board.id] = board
        self._activate(board)
        # Nothing to hydrate on a brand new board.
        self._hydrated = board.copy_with(items=[], connections=[])
        self._hydrating = False
        self._persist()
        logger.debug("Created board %s", board.id)
        return board.id

    def switch_board(self, board_id: str) -> bool:
        board = self.state.boards.get(board_id)
        if board is None:
            return False
        self._activate(board)
        self._persist()
        return True

    async def hydrate_active(self) -> Optional[Board]:
        """Load the active board's binary fields.

        Returns None when another switch superseded this request before it
        finished; the stale result is dropped.
        """
        generation = self._generation
        board = self.state.active_board
        items = await self.persistence.hydrate(board.id, board.items)
        if generation != self._generation or board.id != self.state.active_board_id:
            logger.debug("Discarding stale hydration for board %s", board.id)
            return None
        hydrated = board.copy_with(items=items, connections=list(board.connections))
        self._hydrated = hydrated
        self._hydrating = False
        return hydrated

    def rename_board(self, board_id: str, new_name: str) -> None:
        board = self.state.boards.get(board_id)
        if board is None:
            return
        board.name = new_name
        board.touch()
        if self._hydrated is not None and self._hydrated.id == board_id:
            self._hydrated.name = board.name
            self._hydrated.updated_at = board.updated_at
        self._persist()

    def delete_board(self, board_id: str) -> bool:
        if len(self.state.boards) <= 1 or board_id not in self.state.boards:
            return False

        del self.state.boards[board_id]
        if self.state.active_board_id == board_id:
            self._activate(next(iter(self.state.boards.values())))

        self._persist()
        self._spawn(self.persistence.delete_board_data(board_id))
        return True

    # --- content ---

    def save_current_board(self, items: Iterable[Item], connections: Iterable[Connection]) -> SaveReport:
        """Persist the active board: metadata now, binary fields in the background."""
        if self._hydrating:
            # Saving now would drop binary fields that have not been loaded yet.
            logger.debug("Skipping save of board %s while hydrating", self.state.active_board_id)
            return SaveReport(ok=False, detail="Board is still hydrating")

        full = [_clear_loading(i) for i in items]
        board = self.state.active_board
        board.items = [strip_binary_fields(i) for i in full]
        board.connections = list(connections)
        board.item_id_counter = self.ids.value
        board.touch()
        self._hydrated = board.copy_with(items=full, connections=list(board.connections))

        report = self._persist()
        self._spawn(self.persistence.save_binary_fields(board.id, full))
        return report

    def remove_item_data(self, item_id: str) -> None:
        """Sweep an item's binary entries once the writes already in flight land."""
        pending = list(self._background)
        self._spawn(self._delete_item_after(pending, self.state.active_board_id, item_id))

    async def _delete_item_after(self, pending: List[asyncio.Task], board_id: str, item_id: str) -> None:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self.persistence.delete_item_data(board_id, item_id)
