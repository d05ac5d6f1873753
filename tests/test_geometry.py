"""Tests for parallel edge layout and the edge render policy."""

from __future__ import annotations

import pytest

from weaveboard.core.models import Connection, Item, ItemKind, Layer
from weaveboard.views.edges import FALLBACK_COLORS, FOCUSED_OPACITY, UNFOCUSED_OPACITY, colors_for, style_for
from weaveboard.views.geometry import (
    EdgeGeometryEngine,
    Rect,
    Side,
    choose_sides,
    control_offset,
    control_point,
    cubic_point,
    offset_indices,
)

RECTS = {"1": Rect(0, 0, 200, 100), "2": Rect(600, 0, 200, 100), "3": Rect(0, 400, 200, 100)}


def _conn(a: str, b: str, label: str = "", layer=Layer.STANDARD, **kw) -> Connection:
    return Connection(from_id=a, to_id=b, label=label or f"{a}-{b}", layer=layer, **kw)


def test_offset_indices_are_symmetric() -> None:
    assert offset_indices(1) == [0]
    assert offset_indices(2) == [-0.5, 0.5]
    assert offset_indices(3) == [-1, 0, 1]
    for n in range(1, 7):
        idx = offset_indices(n)
        assert sum(idx) == pytest.approx(0)
        assert idx == sorted(idx)


def test_group_offsets_follow_insertion_order() -> None:
    conns = [_conn("1", "2", "a"), _conn("1", "3", "solo"), _conn("2", "1", "b", layer=Layer.TENSIONS), _conn("1", "2", "c")]
    paths = EdgeGeometryEngine().layout(conns, RECTS)

    by_label = {p.connection.label: p for p in paths}
    assert [p.connection.label for p in paths] == ["a", "solo", "b", "c"]
    assert by_label["a"].offset_index == -1
    assert by_label["b"].offset_index == 0
    assert by_label["c"].offset_index == 1
    assert by_label["solo"].offset_index == 0
    assert by_label["a"].key == by_label["b"].key == "1|2"


def test_parallel_edges_do_not_overlap_and_mirror_each_other() -> None:
    conns = [_conn("1", "2", "a"), _conn("1", "2", "b")]
    a, b = EdgeGeometryEngine(offset_unit=28).layout(conns, RECTS)

    assert a.d != b.d
    assert a.label_y != b.label_y
    # Horizontal pair: the fan is vertical and centred on the straight line.
    assert (a.label_y + b.label_y) / 2 == pytest.approx(50)
    # Control points move by the full unit; the midpoint by three quarters of it.
    assert abs(a.label_y - b.label_y) == pytest.approx(0.75 * 28)


def test_reversed_direction_shares_the_fan() -> None:
    forward = EdgeGeometryEngine().layout([_conn("1", "2", "a"), _conn("1", "2", "b")], RECTS)
    mixed = EdgeGeometryEngine().layout([_conn("1", "2", "a"), _conn("2", "1", "b")], RECTS)
    assert forward[0].label_y == pytest.approx(mixed[0].label_y)
    assert forward[1].label_y == pytest.approx(mixed[1].label_y)


def test_label_is_bezier_midpoint() -> None:
    (p,) = EdgeGeometryEngine().layout([_conn("1", "3")], RECTS)
    expected = (
        0.125 * p.source[0] + 0.375 * p.c1[0] + 0.375 * p.c2[0] + 0.125 * p.target[0],
        0.125 * p.source[1] + 0.375 * p.c1[1] + 0.375 * p.c2[1] + 0.125 * p.target[1],
    )
    assert (p.label_x, p.label_y) == pytest.approx(expected)
    assert p.d.startswith("M ") and " C " in p.d


def test_single_edge_anchors_face_each_other() -> None:
    (p,) = EdgeGeometryEngine().layout([_conn("1", "2")], RECTS)
    assert p.source == (200, 50)
    assert p.target == (600, 50)
    assert p.c1 == pytest.approx((400, 50))
    assert p.c2 == pytest.approx((400, 50))


def test_unknown_endpoints_are_skipped() -> None:
    paths = EdgeGeometryEngine().layout([_conn("1", "99"), _conn("1", "2")], RECTS)
    assert [p.connection.label for p in paths] == ["1-2"]


def test_decorated_ids_resolve_to_rects() -> None:
    paths = EdgeGeometryEngine().layout([_conn("node-1", "node-2")], RECTS)
    assert len(paths) == 1


def test_pinned_sides_override_choice() -> None:
    (p,) = EdgeGeometryEngine().layout([_conn("1", "2")], RECTS, sides={"1": Side.BOTTOM, "2": Side.BOTTOM})
    assert p.source == (100, 100)
    assert p.target == (700, 100)


def test_choose_sides_by_dominant_axis() -> None:
    assert choose_sides(RECTS["1"], RECTS["2"]) == (Side.RIGHT, Side.LEFT)
    assert choose_sides(RECTS["2"], RECTS["1"]) == (Side.LEFT, Side.RIGHT)
    assert choose_sides(RECTS["1"], RECTS["3"]) == (Side.BOTTOM, Side.TOP)
    assert choose_sides(RECTS["3"], RECTS["1"]) == (Side.TOP, Side.BOTTOM)


def test_control_offset_curves_back_when_target_is_behind() -> None:
    assert control_offset(100) == 50
    assert control_offset(-100) == pytest.approx(0.25 * 25 * 10)
    assert control_point(Side.RIGHT, (0, 0), (-100, 0)) == pytest.approx((62.5, 0))
    assert control_point(Side.TOP, (0, 0), (0, -80)) == pytest.approx((0, -40))


def test_cubic_point_endpoints() -> None:
    pts = ((0, 0), (1, 2), (3, 2), (4, 0))
    assert cubic_point(*pts, 0) == pytest.approx((0, 0))
    assert cubic_point(*pts, 1) == pytest.approx((4, 0))


def test_rect_for_item_uses_item_size() -> None:
    r = Rect.for_item(Item(id="1", kind=ItemKind.TEXT, x=10, y=20, width=100, height=50))
    assert (r.left, r.top, r.right, r.bottom) == (10, 20, 110, 70)


# --- render policy ---


def test_colors_by_normalized_category() -> None:
    assert colors_for(" Causal ").stroke == "#D66B6B"
    assert colors_for("thematic").stroke == "#6B8DD6"
    assert colors_for("invented-category") is FALLBACK_COLORS


def test_style_for_focus() -> None:
    c = _conn("1", "2", category="temporal", strength=1.0, layer=Layer.DEEPER)

    focused = style_for(c, Layer.DEEPER)
    assert focused.opacity == FOCUSED_OPACITY
    assert focused.show_label
    assert focused.stroke_width == pytest.approx(4.0)
    assert focused.stroke == "#6BC5D6"

    dimmed = style_for(c, Layer.STANDARD)
    assert dimmed.opacity == UNFOCUSED_OPACITY
    assert not dimmed.show_label
    assert dimmed.stroke_width == focused.stroke_width

    assert style_for(c).show_label


def test_focus_change_does_not_change_geometry() -> None:
    conns = [_conn("1", "2", "a"), _conn("1", "2", "b", layer=Layer.TENSIONS)]
    engine = EdgeGeometryEngine()
    before = engine.layout(conns, RECTS)
    for p in before:
        style_for(p.connection, Layer.TENSIONS)
    assert engine.layout(conns, RECTS) == before
