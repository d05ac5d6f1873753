"""Board View - items as cards, connections as fanned bezier edges."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..core.models import Connection, Item, ItemKind, Layer, canonical_item_id
from .edges import LABEL_CHIP, style_for
from .geometry import DEFAULT_OFFSET_UNIT, EdgeGeometryEngine, EdgePath, Rect
from .svg import COLORS, Style, SVGCanvas, save_png

MARGIN = 60
HEADER = 70
MIN_WIDTH, MIN_HEIGHT = 800, 600


class BoardView:
    def __init__(
        self,
        items: Sequence[Item],
        connections: Iterable[Connection],
        *,
        title: str = "",
        focus: Optional[Layer] = None,
        offset_unit: float = DEFAULT_OFFSET_UNIT,
    ):
        self.items = list(items)
        self.connections = list(connections)
        self.title = title
        self.focus = focus
        self.engine = EdgeGeometryEngine(offset_unit=offset_unit)

    def _rects(self) -> dict:
        if not self.items:
            return {}
        min_x = min(i.x for i in self.items)
        min_y = min(i.y for i in self.items)
        dx = MARGIN - min_x
        dy = MARGIN + HEADER - min_y
        out = {}
        for item in self.items:
            r = Rect.for_item(item)
            out[canonical_item_id(item.id)] = Rect(r.x + dx, r.y + dy, r.w, r.h)
        return out

    def edges(self) -> List[EdgePath]:
        return self.engine.layout(self.connections, self._rects())

    def render(self, output_path: str | Path | None = None) -> str:
        rects = self._rects()
        width = max(MIN_WIDTH, int(max((r.right for r in rects.values()), default=0) + MARGIN))
        height = max(MIN_HEIGHT, int(max((r.bottom for r in rects.values()), default=0) + MARGIN))
        canvas = SVGCanvas(width=width, height=height)

        canvas.add_text(
            MARGIN,
            48,
            _short_line(self.title or "Untitled Board", 60),
            style=Style(fill=COLORS["text"], font_size=24, font_weight="bold"),
        )
        layer_text = self.focus.value if self.focus else "all layers"
        stats = f"items: {len(self.items)}  connections: {len(self.connections)}  focus: {layer_text}"
        canvas.add_text(MARGIN, 72, stats, style=Style(fill=COLORS["muted"], font_size=12))

        paths = self.engine.layout(self.connections, rects)
        for p in paths:
            s = style_for(p.connection, self.focus)
            canvas.add_path(p.d, style=Style(stroke=s.stroke, stroke_width=s.stroke_width, opacity=s.opacity))

        for item in self.items:
            r = rects.get(canonical_item_id(item.id))
            if r is not None:
                self._card(canvas, item, r)

        for p in paths:
            if style_for(p.connection, self.focus).show_label:
                self._label_chip(canvas, p)

        if output_path:
            Path(output_path).write_text(canvas.render(), encoding="utf-8")
        return canvas.render()

    def render_png(self, png_path: str | Path) -> bytes:
        return save_png(self.render(), png_path)

    def _card(self, canvas: SVGCanvas, item: Item, r: Rect) -> None:
        canvas.add_rect(
            r.x,
            r.y,
            r.w,
            r.h,
            rx=12,
            style=Style(fill=COLORS["card"], stroke=COLORS["card_border"], filter="card-shadow"),
        )
        accent = COLORS.get(f"{item.kind.value}_accent", COLORS["muted"])
        canvas.add_rect(r.x, r.y, 6, r.h, rx=3, style=Style(fill=accent))

        f = item.fields
        kind_label = item.kind.value.upper()
        canvas.add_text(
            r.x + 16,
            r.y + 22,
            f"{kind_label}  #{canonical_item_id(item.id)}",
            style=Style(fill=COLORS["muted"], font_size=10, font_weight="bold"),
        )
        max_chars = max(10, int((r.w - 32) / 7))

        if item.kind == ItemKind.TEXT:
            lines = _wrap_text(str(f.get("text") or ""), max_chars=max_chars, max_lines=4)
            canvas.add_text_lines(r.x + 16, r.y + 44, lines, style=Style(fill=COLORS["text"], font_size=13))
        elif item.kind == ItemKind.IMAGE:
            if f.get("image_data_url"):
                canvas.add_image(r.x + 16, r.y + 32, r.w - 32, r.h - 58, str(f["image_data_url"]))
            label = str(f.get("label") or f.get("file_name") or "(image)")
            canvas.add_text(r.x + 16, r.bottom - 12, _short_line(label, max_chars), style=Style(fill=COLORS["text"], font_size=12))
        elif item.kind == ItemKind.LINK:
            title = str(f.get("title") or f.get("url") or "(link)")
            lines = _wrap_text(title, max_chars=max_chars, max_lines=2)
            canvas.add_text_lines(
                r.x + 16, r.y + 44, lines, style=Style(fill=COLORS["text"], font_size=13, font_weight="bold")
            )
            canvas.add_text(
                r.x + 16,
                r.bottom - 14,
                _short_line(str(f.get("domain") or ""), max_chars),
                style=Style(fill=COLORS["muted"], font_size=11),
            )
        elif item.kind == ItemKind.PDF:
            label = str(f.get("label") or f.get("file_name") or "(pdf)")
            pages = int(f.get("page_count") or 0)
            canvas.add_text(r.x + 16, r.y + 44, _short_line(label, max_chars), style=Style(fill=COLORS["text"], font_size=13))
            canvas.add_text(
                r.x + 16,
                r.bottom - 14,
                f"{pages} page" + ("" if pages == 1 else "s"),
                style=Style(fill=COLORS["muted"], font_size=11),
            )

    def _label_chip(self, canvas: SVGCanvas, p: EdgePath) -> None:
        text = _short_line(p.connection.label, 32)
        if not text:
            return
        w = 14 + len(text) * 6.2
        h = 18
        canvas.add_rect(
            p.label_x - w / 2,
            p.label_y - h / 2,
            w,
            h,
            rx=9,
            style=Style(fill=LABEL_CHIP.bg, stroke=LABEL_CHIP.border),
        )
        canvas.add_text(
            p.label_x,
            p.label_y + 4,
            text,
            style=Style(fill=LABEL_CHIP.text, font_size=11, text_anchor="middle"),
        )


def _wrap_text(text: str, *, max_chars: int, max_lines: int) -> List[str]:
    t = (text or "").strip()
    if not t:
        return ["(empty)"]

    lines: List[str] = []
    cur = ""
    for w in t.split():
        if not cur:
            cur = w
            continue
        if len(cur) + 1 + len(w) <= max_chars:
            cur = cur + " " + w
        else:
            lines.append(cur)
            cur = w
            if len(lines) >= max_lines:
                break

    if len(lines) < max_lines and cur:
        lines.append(cur)

    if len(lines) == max_lines and (" ".join(lines) != t):
        lines[-1] = lines[-1][: max(0, max_chars - 1)].rstrip() + "…"
    return lines


def _short_line(s: str, max_len: int) -> str:
    ss = (s or "").strip()
    return ss if len(ss) <= max_len else ss[: max_len - 1] + "…"
