"""Layered connection graph.

Connections are kept per analysis layer in insertion order. The graph only
grows, except for `clear_all()` which resets every layer at once.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

from .models import Connection, Layer, canonical_item_id


class ConnectionGraph:
    def __init__(self, connections: Optional[Iterable[Connection]] = None):
        self._layers: Dict[Layer, List[Connection]] = {}
        # Global insertion order, so the flat board list round-trips.
        self._order: List[Connection] = []
        self._epoch = 0
        if connections:
            self.load(connections)

    @property
    def epoch(self) -> int:
        """Bumped by `clear_all()`; lets in-flight work detect a reset."""
        return self._epoch

    def load(self, connections: Iterable[Connection]) -> None:
        for c in connections:
            layer = c.layer or Layer.STANDARD
            self._add(c if c.layer else c.with_layer(layer))

    def _add(self, conn: Connection) -> None:
        self._layers.setdefault(conn.layer, []).append(conn)
        self._order.append(conn)

    def append(self, layer: Layer, connections: Iterable[Connection]) -> List[Connection]:
        """Tag each connection with `layer` and append it. Returns what was added."""
        added = [c.with_layer(layer) for c in connections]
        for c in added:
            self._add(c)
        return added

    def connections(self, layer: Optional[Layer] = None) -> List[Connection]:
        if layer is None:
            return list(self._order)
        return list(self._layers.get(layer, []))

    def count(self, layer: Layer) -> int:
        return len(self._layers.get(layer, []))

    def layers_present(self) -> Set[Layer]:
        return {layer for layer, conns in self._layers.items() if conns}

    def connected_node_set(self, layer: Layer) -> Set[str]:
        """Canonical ids of every endpoint in `layer`. Recomputed on each call."""
        out: Set[str] = set()
        for c in self._layers.get(layer, []):
            out.add(canonical_item_id(c.from_id))
            out.add(canonical_item_id(c.to_id))
        return out

    def clear_all(self) -> None:
        self._layers.clear()
        self._order.clear()
        self._epoch += 1

    def to_list(self) -> List[Connection]:
        return list(self._order)

    @classmethod
    def from_list(cls, connections: Iterable[Connection]) -> "ConnectionGraph":
        return cls(connections)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self):
        return iter(list(self._order))
