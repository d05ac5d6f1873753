from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

SCHEMA_VERSION = 1
DEFAULT_BOARD_NAME = "Untitled Board"
DEFAULT_ITEM_SIZE: Tuple[float, float] = (240.0, 120.0)

# Rendering layers sometimes hand back ids decorated with this prefix.
ITEM_ID_DECORATION = "node-"


class ItemKind(str, Enum):
    """Content kinds an item can hold."""

    TEXT = "text"
    IMAGE = "image"
    LINK = "link"
    PDF = "pdf"

    @classmethod
    def parse(cls, value: Any) -> "ItemKind":
        v = str(value or "").strip()
        # Older stores used the card component names.
        v = _LEGACY_KINDS.get(v, v)
        try:
            return cls(v)
        except ValueError:
            return cls.TEXT


_LEGACY_KINDS = {
    "textCard": "text",
    "imageCard": "image",
    "linkCard": "link",
    "pdfCard": "pdf",
}


class Layer(str, Enum):
    """Analysis modes; each is an independent overlay graph on the same items."""

    STANDARD = "standard"
    DEEPER = "deeper"
    TENSIONS = "tensions"

    @property
    def uses_prior_connections(self) -> bool:
        return self is Layer.DEEPER

    @classmethod
    def parse(cls, value: Any) -> Optional["Layer"]:
        v = str(value or "").strip().lower()
        if not v:
            return None
        if v == "weave":
            return cls.STANDARD
        try:
            return cls(v)
        except ValueError:
            return None


# Large opaque fields kept out of the metadata store, per kind.
BINARY_FIELDS: Dict[ItemKind, Tuple[str, ...]] = {
    ItemKind.IMAGE: ("image_data_url",),
    ItemKind.PDF: ("pdf_data_url", "thumbnail_data_url"),
}


def binary_fields_for(kind: ItemKind) -> Tuple[str, ...]:
    return BINARY_FIELDS.get(kind, ())


def canonical_item_id(raw: Any) -> str:
    """Return the canonical item id, without any rendering decoration."""
    s = str(raw if raw is not None else "").strip()
    if s.startswith(ITEM_ID_DECORATION):
        s = s[len(ITEM_ID_DECORATION) :]
    return s


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_board_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Item:
    id: str
    kind: ItemKind
    x: float = 0.0
    y: float = 0.0
    fields: Dict[str, Any] = field(default_factory=dict)
    width: float = DEFAULT_ITEM_SIZE[0]
    height: float = DEFAULT_ITEM_SIZE[1]

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def with_fields(self, fields: Dict[str, Any]) -> "Item":
        return replace(self, fields=dict(fields))

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "position": {"x": self.x, "y": self.y},
            "data": dict(self.fields),
        }
        if (self.width, self.height) != DEFAULT_ITEM_SIZE:
            d["size"] = {"w": self.width, "h": self.height}
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Item":
        pos = d.get("position") or {}
        size = d.get("size") or {}
        return cls(
            id=str(d.get("id") or ""),
            kind=ItemKind.parse(d.get("type")),
            x=float(pos.get("x") or 0.0),
            y=float(pos.get("y") or 0.0),
            fields=dict(d.get("data") or {}),
            width=float(size.get("w") or DEFAULT_ITEM_SIZE[0]),
            height=float(size.get("h") or DEFAULT_ITEM_SIZE[1]),
        )


@dataclass(frozen=True)
class Connection:
    """A relationship between two items. Never edited once created."""

    from_id: str
    to_id: str
    label: str
    explanation: str = ""
    category: str = ""  # free-form, chosen by the finder
    strength: float = 0.0
    surprise: float = 0.0
    layer: Optional[Layer] = None

    def pair_key(self) -> str:
        """Unordered key: A<->B and B<->A share it."""
        a, b = sorted((canonical_item_id(self.from_id), canonical_item_id(self.to_id)))
        return f"{a}|{b}"

    def with_layer(self, layer: Layer) -> "Connection":
        return replace(self, layer=layer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "label": self.label,
            "explanation": self.explanation,
            "type": self.category,
            "strength": self.strength,
            "surprise": self.surprise,
            "mode": self.layer.value if self.layer else None,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Connection":
        return cls(
            from_id=str(d.get("from") or ""),
            to_id=str(d.get("to") or ""),
            label=str(d.get("label") or ""),
            explanation=str(d.get("explanation") or ""),
            category=str(d.get("type") or d.get("category") or ""),
            strength=float(d.get("strength") or 0.0),
            surprise=float(d.get("surprise") or 0.0),
            layer=Layer.parse(d.get("mode") or d.get("layer")),
        )


@dataclass
class Board:
    id: str
    name: str = DEFAULT_BOARD_NAME
    items: List[Item] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    item_id_counter: int = 1
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def empty(cls, name: Optional[str] = None) -> "Board":
        now = utc_now_iso()
        return cls(id=new_board_id(), name=name or DEFAULT_BOARD_NAME, created_at=now, updated_at=now)

    def touch(self) -> None:
        self.updated_at = utc_now_iso()

    def copy_with(self, **changes: Any) -> "Board":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [i.to_dict() for i in self.items],
            "connections": [c.to_dict() for c in self.connections],
            "nodeIdCounter": self.item_id_counter,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Board":
        now = utc_now_iso()
        return cls(
            id=str(d.get("id") or ""),
            name=str(d.get("name") or DEFAULT_BOARD_NAME),
            items=[Item.from_dict(i) for i in (d.get("nodes") or []) if isinstance(i, dict)],
            connections=[Connection.from_dict(c) for c in (d.get("connections") or []) if isinstance(c, dict)],
            item_id_counter=int(d.get("nodeIdCounter") or 1),
            created_at=str(d.get("createdAt") or now),
            updated_at=str(d.get("updatedAt") or now),
        )


@dataclass(frozen=True)
class BoardSummary:
    id: str
    name: str
    updated_at: str


@dataclass
class RegistryState:
    """Every board plus the active-board pointer."""

    active_board_id: str
    boards: Dict[str, Board] = field(default_factory=dict)
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def fresh(cls) -> "RegistryState":
        board = Board.empty()
        return cls(active_board_id=board.id, boards={board.id: board})

    @property
    def active_board(self) -> Board:
        return self.boards[self.active_board_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.schema_version,
            "lastActiveBoard": self.active_board_id,
            "boards": {bid: b.to_dict() for bid, b in self.boards.items()},
            "savedAt": time.time(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RegistryState":
        boards: Dict[str, Board] = {}
        for bid, raw in (d.get("boards") or {}).items():
            if not isinstance(raw, dict):
                continue
            board = Board.from_dict(raw)
            if not board.id:
                board.id = str(bid)
            boards[str(bid)] = board
        active = str(d.get("lastActiveBoard") or "")
        if active not in boards and boards:
            active = next(iter(boards))
        return cls(
            active_board_id=active,
            boards=boards,
            schema_version=int(d.get("version") or SCHEMA_VERSION),
        )
