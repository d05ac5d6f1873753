"""Visualization views for WeaveBoard."""

from .board import BoardView
from .edges import EdgeStyle, colors_for, style_for
from .geometry import EdgeGeometryEngine, EdgePath, Rect, Side
from .svg import COLORS, Style, SVGCanvas, save_png, svg_string_to_png_bytes

__all__ = [
    "BoardView",
    "EdgeStyle",
    "colors_for",
    "style_for",
    "EdgeGeometryEngine",
    "EdgePath",
    "Rect",
    "Side",
    "COLORS",
    "Style",
    "SVGCanvas",
    "save_png",
    "svg_string_to_png_bytes",
]
