"""Edge geometry: parallel bezier paths between board items.

Several connections between the same two items (in any direction, in any
layer) form one group. Members of a group are fanned out symmetrically around
the straight line joining the two items, in insertion order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.models import DEFAULT_ITEM_SIZE, Connection, Item, canonical_item_id

Point = Tuple[float, float]

DEFAULT_OFFSET_UNIT = 28.0
DEFAULT_CURVATURE = 0.25


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def cx(self) -> float:
        return self.x + self.w / 2

    @property
    def cy(self) -> float:
        return self.y + self.h / 2

    @classmethod
    def for_item(cls, item: Item) -> "Rect":
        return cls(item.x, item.y, item.width or DEFAULT_ITEM_SIZE[0], item.height or DEFAULT_ITEM_SIZE[1])


def ports(r: Rect) -> Dict[Side, Point]:
    return {
        Side.TOP: (r.cx, r.top),
        Side.BOTTOM: (r.cx, r.bottom),
        Side.LEFT: (r.left, r.cy),
        Side.RIGHT: (r.right, r.cy),
    }


def choose_sides(src: Rect, dst: Rect) -> Tuple[Side, Side]:
    """Pick facing anchor sides from the dominant axis between centers."""
    dx = dst.cx - src.cx
    dy = dst.cy - src.cy
    if abs(dx) >= abs(dy):
        return (Side.RIGHT, Side.LEFT) if dx >= 0 else (Side.LEFT, Side.RIGHT)
    return (Side.BOTTOM, Side.TOP) if dy >= 0 else (Side.TOP, Side.BOTTOM)


def control_offset(distance: float, curvature: float = DEFAULT_CURVATURE) -> float:
    if distance >= 0:
        return 0.5 * distance
    return curvature * 25 * math.sqrt(-distance)


def control_point(side: Side, p1: Point, p2: Point, curvature: float = DEFAULT_CURVATURE) -> Point:
    """Control point leaving `p1` out of `side`, bent toward `p2`."""
    x1, y1 = p1
    x2, y2 = p2
    if side == Side.LEFT:
        return (x1 - control_offset(x1 - x2, curvature), y1)
    if side == Side.RIGHT:
        return (x1 + control_offset(x2 - x1, curvature), y1)
    if side == Side.TOP:
        return (x1, y1 - control_offset(y1 - y2, curvature))
    return (x1, y1 + control_offset(y2 - y1, curvature))


def cubic_point(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    u = 1 - t
    a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
    return (
        a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
        a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
    )


def offset_indices(n: int) -> List[float]:
    """Symmetric offsets for a group of `n`: 1 -> [0], 2 -> [-0.5, 0.5], 3 -> [-1, 0, 1]."""
    return [i - (n - 1) / 2 for i in range(n)]


def unit_normal(a: Point, b: Point) -> Point:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return (0.0, -1.0)
    return (-dy / length, dx / length)


def _num(v: float) -> str:
    r = round(v, 2)
    return str(int(r)) if r == int(r) else str(r)


def bezier_path_d(source: Point, c1: Point, c2: Point, target: Point) -> str:
    pts = [source, c1, c2, target]
    s, a, b, t = (f"{_num(x)} {_num(y)}" for x, y in pts)
    return f"M {s} C {a} {b} {t}"


@dataclass(frozen=True)
class EdgePath:
    key: str
    connection: Connection
    d: str
    label_x: float
    label_y: float
    offset_index: float
    source: Point
    target: Point
    c1: Point
    c2: Point


class EdgeGeometryEngine:
    def __init__(self, offset_unit: float = DEFAULT_OFFSET_UNIT, curvature: float = DEFAULT_CURVATURE):
        self.offset_unit = offset_unit
        self.curvature = curvature

    def layout(
        self,
        connections: Iterable[Connection],
        rects: Mapping[str, Rect],
        sides: Optional[Mapping[str, Side]] = None,
    ) -> List[EdgePath]:
        """Lay out every connection whose endpoints both have a rect.

        `rects` and `sides` are keyed by canonical item id. A side in `sides`
        pins that item's anchor; otherwise sides face each other.
        """
        rect_by_id = {canonical_item_id(k): v for k, v in rects.items()}
        pinned = {canonical_item_id(k): v for k, v in (sides or {}).items()}

        drawable: List[Tuple[Connection, str, str]] = []
        groups: Dict[str, List[int]] = {}
        for conn in connections:
            a = canonical_item_id(conn.from_id)
            b = canonical_item_id(conn.to_id)
            if a not in rect_by_id or b not in rect_by_id:
                continue
            groups.setdefault(conn.pair_key(), []).append(len(drawable))
            drawable.append((conn, a, b))

        offsets: Dict[int, float] = {}
        for members in groups.values():
            for pos, idx in zip(members, offset_indices(len(members))):
                offsets[pos] = idx

        out: List[EdgePath] = []
        for pos, (conn, a, b) in enumerate(drawable):
            out.append(self._path(conn, rect_by_id[a], rect_by_id[b], pinned.get(a), pinned.get(b), offsets[pos]))
        return out

    def _path(
        self,
        conn: Connection,
        src: Rect,
        dst: Rect,
        src_side: Optional[Side],
        dst_side: Optional[Side],
        offset_index: float,
    ) -> EdgePath:
        auto_src, auto_dst = choose_sides(src, dst)
        src_side = src_side or auto_src
        dst_side = dst_side or auto_dst

        s = ports(src)[src_side]
        t = ports(dst)[dst_side]
        c1 = control_point(src_side, s, t, self.curvature)
        c2 = control_point(dst_side, t, s, self.curvature)

        # Normal taken along the sorted pair so both directions fan the same way.
        first, second = (s, t) if canonical_item_id(conn.from_id) <= canonical_item_id(conn.to_id) else (t, s)
        nx, ny = unit_normal(first, second)
        shift = offset_index * self.offset_unit
        c1 = (c1[0] + nx * shift, c1[1] + ny * shift)
        c2 = (c2[0] + nx * shift, c2[1] + ny * shift)

        lx, ly = cubic_point(s, c1, c2, t, 0.5)
        return EdgePath(
            key=conn.pair_key(),
            connection=conn,
            d=bezier_path_d(s, c1, c2, t),
            label_x=lx,
            label_y=ly,
            offset_index=offset_index,
            source=s,
            target=t,
            c1=c1,
            c2=c2,
        )
