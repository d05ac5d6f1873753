"""Editing session for the active board.

`WeaveSession` wires the registry, the connection graph and the analysis
controller together and owns the live item list. Edits schedule a debounced
save; board switches and creation flush any pending save first. While the
active board is hydrating, its items are neither exposed nor saved.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .analysis.controller import AnalysisOutcome, IncrementalAnalysisController
from .analysis.finder import LLMRelationshipFinder, RelationshipFinder
from .config import WeaveConfig
from .core.debounce import Debouncer
from .core.graph import ConnectionGraph
from .core.models import Board, Item, ItemKind, Layer, canonical_item_id
from .core.registry import BoardRegistry
from .errors import WeaveError
from .media import image_data_url, pdf_data_url, pdf_page_count
from .storage.binary import FileBinaryStore
from .storage.metadata import FileMetadataStore
from .storage.persistence import DualTierPersistence, SaveReport
from .views.board import BoardView
from .views.geometry import EdgePath

logger = logging.getLogger(__name__)

# New items are placed on a loose grid when no position is given.
GRID_COLUMNS = 4
GRID_STEP = (300.0, 180.0)


def normalize_url(raw: str) -> Optional[str]:
    """Return an http(s) URL for `raw`, adding https:// when it is missing."""
    text = (raw or "").strip()
    if not text:
        return None
    for candidate in (text, f"https://{text}"):
        parsed = urlparse(candidate)
        if parsed.scheme in ("http", "https") and parsed.netloc and not any(ch.isspace() for ch in parsed.netloc):
            return candidate
    return None


def extract_domain(url: str) -> str:
    host = urlparse((url or "").strip()).hostname or ""
    return host[4:] if host.startswith("www.") else host


def link_type_for(url: str) -> str:
    domain = extract_domain(url)
    if domain in ("twitter.com", "x.com"):
        return "twitter"
    if domain in ("youtube.com", "youtu.be", "m.youtube.com"):
        return "youtube"
    return "generic"


def build_persistence(config: WeaveConfig) -> DualTierPersistence:
    data_dir = config.resolved_data_dir()
    return DualTierPersistence(
        FileMetadataStore(data_dir, quota_bytes=config.metadata_quota_bytes),
        FileBinaryStore(data_dir),
    )


class WeaveSession:
    def __init__(
        self,
        registry: BoardRegistry,
        finder: RelationshipFinder,
        *,
        save_debounce_s: float = 0.5,
        status_reset_s: float = 2.0,
        edge_offset_unit: float = 28.0,
    ):
        self.registry = registry
        self.graph = ConnectionGraph()
        self.controller = IncrementalAnalysisController(
            self.graph,
            finder,
            status_reset_s=status_reset_s,
            on_change=lambda layer, added: self.mark_dirty(),
        )
        self.edge_offset_unit = edge_offset_unit
        self._items: List[Item] = []
        self._debouncer = Debouncer(save_debounce_s, self._save_now)
        self.last_report: Optional[SaveReport] = None

    @classmethod
    def open(cls, config: WeaveConfig, finder: Optional[RelationshipFinder] = None) -> "WeaveSession":
        registry = BoardRegistry(build_persistence(config))
        return cls(
            registry,
            finder or LLMRelationshipFinder(config.model, max_tokens=config.max_tokens),
            save_debounce_s=config.save_debounce_s,
            status_reset_s=config.status_reset_s,
            edge_offset_unit=config.edge_offset_unit,
        )

    # --- state ---

    @property
    def hydrating(self) -> bool:
        return self.registry.hydrating

    @property
    def items(self) -> List[Item]:
        if self.hydrating:
            return []
        return list(self._items)

    @property
    def board(self) -> Board:
        return self.registry.current_board

    def find_item(self, item_id: str) -> Optional[Item]:
        cid = canonical_item_id(item_id)
        for item in self.items:
            if canonical_item_id(item.id) == cid:
                return item
        return None

    async def load_active(self) -> bool:
        """Hydrate the active board into the session. False if superseded."""
        board = await self.registry.hydrate_active()
        if board is None:
            return False
        self._items = list(board.items)
        self.graph.clear_all()
        self.graph.load(board.connections)
        logger.debug(
            "Loaded board %s: %d item(s), %d connection(s)", board.id, len(self._items), len(self.graph)
        )
        return True

    # --- saving ---

    def _save_now(self) -> Optional[SaveReport]:
        if self.hydrating:
            return None
        self.last_report = self.registry.save_current_board(self._items, self.graph.to_list())
        return self.last_report

    def mark_dirty(self) -> None:
        """Schedule a save. Outside an event loop the save happens immediately."""
        if self.hydrating:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._save_now()
            return
        self._debouncer.trigger()

    def flush(self) -> bool:
        return self._debouncer.flush()

    @property
    def save_pending(self) -> bool:
        return self._debouncer.pending

    async def close(self) -> None:
        self.flush()
        await self.registry.drain()

    # --- boards ---

    async def create_board(self, name: Optional[str] = None) -> str:
        self.flush()
        board_id = self.registry.create_board(name)
        self._items = []
        await self.load_active()
        return board_id

    async def switch_board(self, board_id: str) -> bool:
        self.flush()
        if not self.registry.switch_board(board_id):
            return False
        self._items = []
        return await self.load_active()

    async def delete_board(self, board_id: str) -> bool:
        was_active = board_id == self.registry.active_board_id
        if was_active:
            self._debouncer.cancel()
        else:
            self.flush()
        if not self.registry.delete_board(board_id):
            return False
        if was_active:
            self._items = []
            await self.load_active()
        return True

    def rename_board(self, board_id: str, name: str) -> None:
        self.registry.rename_board(board_id, name)

    # --- items ---

    def _require_loaded(self) -> None:
        if self.hydrating:
            raise WeaveError("Board is still loading")

    def _next_position(self) -> tuple:
        n = len(self._items)
        return ((n % GRID_COLUMNS) * GRID_STEP[0], (n // GRID_COLUMNS) * GRID_STEP[1])

    def add_item(
        self,
        kind: ItemKind,
        fields: Dict[str, Any],
        *,
        x: Optional[float] = None,
        y: Optional[float] = None,
    ) -> Item:
        self._require_loaded()
        px, py = self._next_position()
        item = Item(
            id=self.registry.ids.next_id(),
            kind=kind,
            x=px if x is None else float(x),
            y=py if y is None else float(y),
            fields=dict(fields),
        )
        self._items.append(item)
        self.mark_dirty()
        return item

    def add_text(self, text: str, **pos: Any) -> Item:
        return self.add_item(ItemKind.TEXT, {"text": text}, **pos)

    def add_link(self, url: str, *, title: str = "", description: str = "", **pos: Any) -> Item:
        normalized = normalize_url(url)
        if normalized is None:
            raise WeaveError(f"Not a valid URL: {url}")
        domain = extract_domain(normalized)
        fields = {
            "url": normalized,
            "title": title or domain or normalized,
            "description": description,
            "image_url": "",
            "domain": domain,
            "link_type": link_type_for(normalized),
            "loading": False,
        }
        return self.add_item(ItemKind.LINK, fields, **pos)

    def add_image(self, path: str | Path, *, label: str = "", **pos: Any) -> Item:
        p = Path(path)
        fields = {"image_data_url": image_data_url(p), "file_name": p.name, "label": label or p.stem}
        return self.add_item(ItemKind.IMAGE, fields, **pos)

    def add_pdf(self, path: str | Path, *, label: str = "", **pos: Any) -> Item:
        p = Path(path)
        fields = {
            "pdf_data_url": pdf_data_url(p),
            "file_name": p.name,
            "label": label or p.stem,
            "page_count": pdf_page_count(p),
        }
        return self.add_item(ItemKind.PDF, fields, **pos)

    def remove_item(self, item_id: str) -> bool:
        """Remove an item and its binary data. Its connections stay, undrawn."""
        self._require_loaded()
        item = self.find_item(item_id)
        if item is None:
            return False
        self._items = [i for i in self._items if i is not item]
        self.registry.remove_item_data(item.id)
        self.mark_dirty()
        return True

    # --- analysis ---

    async def analyze(self, layer: Layer) -> AnalysisOutcome:
        self._require_loaded()
        return await self.controller.run(layer, self._items)

    def clear_connections(self) -> None:
        self.graph.clear_all()
        self.mark_dirty()

    # --- views ---

    def view(self, focus: Optional[Layer] = None) -> BoardView:
        return BoardView(
            self.items,
            self.graph.connections(),
            title=self.board.name,
            focus=focus,
            offset_unit=self.edge_offset_unit,
        )

    def edges(self, focus: Optional[Layer] = None) -> List[EdgePath]:
        return self.view(focus).edges()
