"""
Board SVG primitives.

`SVGCanvas` collects elements in paint order and renders one standalone
document; `save_png` rasterizes it with cairosvg.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

# Light paper theme
COLORS = {
    "bg": "#F7F5F0",
    "card": "#FFFFFF",
    "card_border": "#E5E7EB",
    "text": "#1F2937",
    "muted": "#6B7280",
    # Card accent stripe per item kind
    "text_accent": "#6B8DD6",
    "image_accent": "#9B8FD6",
    "link_accent": "#6BC5D6",
    "pdf_accent": "#D66B6B",
}

FONT_STACK = "system-ui, -apple-system, sans-serif"

CARD_SHADOW = (
    '<filter id="card-shadow" x="-20%" y="-20%" width="140%" height="140%">'
    '<feDropShadow dx="0" dy="2" stdDeviation="3" flood-color="#000000" flood-opacity="0.12"/>'
    "</filter>"
)


@dataclass
class Style:
    fill: str = "none"
    stroke: str = "none"
    stroke_width: float = 1.0
    opacity: float = 1.0
    font_size: int = 12
    font_weight: str = "normal"
    text_anchor: str = "start"
    filter: Optional[str] = None

    def shape_attrs(self) -> Dict[str, object]:
        attrs: Dict[str, object] = {"fill": self.fill, "stroke": self.stroke}
        if self.stroke != "none":
            attrs["stroke-width"] = _num(self.stroke_width)
        if self.opacity < 1:
            attrs["opacity"] = _num(self.opacity)
        if self.filter:
            attrs["filter"] = f"url(#{self.filter})"
        return attrs

    def text_attrs(self) -> Dict[str, object]:
        attrs = self.shape_attrs()
        attrs.update(
            {
                "font-family": FONT_STACK,
                "font-size": f"{self.font_size}px",
                "font-weight": self.font_weight,
                "text-anchor": self.text_anchor,
            }
        )
        return attrs


def _num(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".")


def _element(tag: str, attrs: Dict[str, object], body: Optional[str] = None) -> str:
    rendered = " ".join(f'{k}="{html.escape(str(v), quote=True)}"' for k, v in attrs.items())
    if body is None:
        return f"<{tag} {rendered} />"
    return f"<{tag} {rendered}>{body}</{tag}>"


class SVGCanvas:
    """Append-only SVG document. Later elements paint over earlier ones."""

    def __init__(self, width: int = 800, height: int = 600, background: str = COLORS["bg"]):
        self.width = width
        self.height = height
        self.background = background
        self.defs: List[str] = [CARD_SHADOW]
        self.elements: List[str] = []

    def add_rect(self, x: float, y: float, w: float, h: float, rx: float = 0, style: Style | None = None):
        attrs = {"x": _num(x), "y": _num(y), "width": _num(w), "height": _num(h)}
        if rx:
            attrs["rx"] = _num(rx)
        attrs.update((style or Style()).shape_attrs())
        self.elements.append(_element("rect", attrs))

    def add_text(self, x: float, y: float, text: str, style: Style | None = None):
        attrs = {"x": _num(x), "y": _num(y), **(style or Style()).text_attrs()}
        self.elements.append(_element("text", attrs, html.escape(str(text))))

    def add_text_lines(
        self,
        x: float,
        y: float,
        lines: List[str],
        style: Style | None = None,
        line_height: Optional[float] = None,
    ):
        """Multiline text as tspans; SVG ignores newlines inside <text>."""
        if not lines:
            return
        s = style or Style()
        lh = line_height if line_height is not None else s.font_size * 1.25
        spans = "".join(
            _element("tspan", {"x": _num(x), "dy": _num(0 if i == 0 else lh)}, html.escape(str(line)))
            for i, line in enumerate(lines)
        )
        self.elements.append(_element("text", {"x": _num(x), "y": _num(y), **s.text_attrs()}, spans))

    def add_image(self, x: float, y: float, w: float, h: float, href: str):
        attrs = {
            "x": _num(x),
            "y": _num(y),
            "width": _num(w),
            "height": _num(h),
            "href": href,
            "preserveAspectRatio": "xMidYMid slice",
        }
        self.elements.append(_element("image", attrs))

    def add_path(self, d: str, style: Style | None = None):
        attrs = {"d": d, **(style or Style()).shape_attrs()}
        self.elements.append(_element("path", attrs))

    def render(self) -> str:
        header = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">'
        )
        body = [
            '<?xml version="1.0" encoding="UTF-8" standalone="no"?>',
            header,
            f"<defs>{''.join(self.defs)}</defs>",
            _element("rect", {"width": "100%", "height": "100%", "fill": self.background}),
            *self.elements,
            "</svg>",
        ]
        return "\n".join(body)


def svg_string_to_png_bytes(svg: str) -> bytes:
    """Convert an SVG string to PNG bytes."""
    import cairosvg

    return cairosvg.svg2png(bytestring=svg.encode("utf-8"))


def save_png(svg: str, png_path: str | Path) -> bytes:
    """Rasterize `svg` to `png_path` and return the bytes."""
    out_path = Path(png_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    png_bytes = svg_string_to_png_bytes(svg)
    out_path.write_bytes(png_bytes)
    return png_bytes
