"""Incremental analysis rounds over one layer of the connection graph.

Each layer moves through `idle -> running -> {idle, error, no-new}`. `error`
and `no-new` fall back to `idle` after a short display window. A round:

1. Collects the eligible item ids and the layer's connected-node set.
2. Skips the finder entirely when the layer is saturated: not its first run,
   at least two eligible items, and every one of them already connected.
3. Otherwise asks the finder. The first run of a layer keeps every
   candidate; later runs keep only candidates touching at least one item
   that is not yet connected in the layer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from ..core.graph import ConnectionGraph
from ..core.models import Connection, Item, Layer, canonical_item_id
from ..errors import RelationshipFinderError
from .eligibility import eligible_ids
from .finder import RelationshipFinder

logger = logging.getLogger(__name__)


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"
    NO_NEW = "no-new"


@dataclass(frozen=True)
class AnalysisOutcome:
    layer: Layer
    status: AnalysisStatus
    kept: List[Connection] = field(default_factory=list)
    returned: int = 0
    called_finder: bool = False
    rejected: bool = False
    discarded: bool = False
    error: Optional[str] = None


def filter_novel(candidates: Iterable[Connection], connected: set) -> List[Connection]:
    """Keep candidates with at least one endpoint outside `connected`, in order."""
    out: List[Connection] = []
    for c in candidates:
        from_known = canonical_item_id(c.from_id) in connected
        to_known = canonical_item_id(c.to_id) in connected
        if not from_known or not to_known:
            out.append(c)
    return out


class IncrementalAnalysisController:
    def __init__(
        self,
        graph: ConnectionGraph,
        finder: RelationshipFinder,
        *,
        status_reset_s: float = 2.0,
        on_change: Optional[Callable[[Layer, List[Connection]], object]] = None,
    ):
        self.graph = graph
        self.finder = finder
        self.status_reset_s = status_reset_s
        self.on_change = on_change
        self._status: Dict[Layer, AnalysisStatus] = {}
        self._reset_handles: Dict[Layer, asyncio.TimerHandle] = {}

    def status(self, layer: Layer) -> AnalysisStatus:
        return self._status.get(layer, AnalysisStatus.IDLE)

    def is_running(self, layer: Layer) -> bool:
        return self.status(layer) is AnalysisStatus.RUNNING

    def _set_status(self, layer: Layer, status: AnalysisStatus) -> None:
        handle = self._reset_handles.pop(layer, None)
        if handle is not None:
            handle.cancel()
        self._status[layer] = status
        if status in (AnalysisStatus.ERROR, AnalysisStatus.NO_NEW):
            loop = asyncio.get_running_loop()
            self._reset_handles[layer] = loop.call_later(self.status_reset_s, self._reset, layer, status)

    def _reset(self, layer: Layer, expected: AnalysisStatus) -> None:
        self._reset_handles.pop(layer, None)
        if self._status.get(layer) is expected:
            self._status[layer] = AnalysisStatus.IDLE

    async def run(self, layer: Layer, items: Iterable[Item]) -> AnalysisOutcome:
        """Run one analysis round for `layer`. Rejected while one is in flight."""
        if self.is_running(layer):
            logger.debug("Analysis for layer %s already running; request rejected", layer.value)
            return AnalysisOutcome(layer=layer, status=AnalysisStatus.RUNNING, rejected=True)

        self._set_status(layer, AnalysisStatus.RUNNING)
        try:
            return await self._run(layer, list(items))
        except RelationshipFinderError as e:
            logger.warning("Analysis for layer %s failed: %s", layer.value, e)
            self._set_status(layer, AnalysisStatus.ERROR)
            return AnalysisOutcome(layer=layer, status=AnalysisStatus.ERROR, called_finder=True, error=str(e))
        except BaseException:
            self._set_status(layer, AnalysisStatus.ERROR)
            raise

    async def _run(self, layer: Layer, items: List[Item]) -> AnalysisOutcome:
        epoch = self.graph.epoch
        eligible = eligible_ids(items)
        connected = self.graph.connected_node_set(layer)
        is_first_run = self.graph.count(layer) == 0

        if not is_first_run and len(eligible) >= 2 and all(i in connected for i in eligible):
            logger.debug(
                "All %d eligible items already connected for layer %s; skipping finder",
                len(eligible),
                layer.value,
            )
            self._set_status(layer, AnalysisStatus.NO_NEW)
            return AnalysisOutcome(layer=layer, status=AnalysisStatus.NO_NEW)

        prior = self.graph.connections() if layer.uses_prior_connections else []
        logger.debug(
            "%s for layer %s: %d connection(s) in layer, %d connected item(s)",
            "First run" if is_first_run else "Re-run",
            layer.value,
            self.graph.count(layer),
            len(connected),
        )
        candidates = await self.finder.find(items, layer, prior)

        if self.graph.epoch != epoch:
            logger.debug("Graph cleared while layer %s was running; dropping result", layer.value)
            self._set_status(layer, AnalysisStatus.IDLE)
            return AnalysisOutcome(
                layer=layer,
                status=AnalysisStatus.IDLE,
                returned=len(candidates),
                called_finder=True,
                discarded=True,
            )

        kept = list(candidates) if is_first_run else filter_novel(candidates, connected)
        logger.debug("Kept %d of %d candidate(s) for layer %s", len(kept), len(candidates), layer.value)

        if not kept:
            self._set_status(layer, AnalysisStatus.NO_NEW)
            return AnalysisOutcome(
                layer=layer, status=AnalysisStatus.NO_NEW, returned=len(candidates), called_finder=True
            )

        added = self.graph.append(layer, kept)
        self._set_status(layer, AnalysisStatus.IDLE)
        if self.on_change is not None:
            self.on_change(layer, added)
        return AnalysisOutcome(
            layer=layer,
            status=AnalysisStatus.IDLE,
            kept=added,
            returned=len(candidates),
            called_finder=True,
        )
