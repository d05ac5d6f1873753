"""How an edge is drawn: colour by category, width by strength, opacity by focus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..core.models import Connection, Layer

FOCUSED_OPACITY = 0.7
UNFOCUSED_OPACITY = 0.06


@dataclass(frozen=True)
class EdgeColors:
    stroke: str
    bg: str
    border: str
    text: str


CATEGORY_COLORS: Dict[str, EdgeColors] = {
    "thematic": EdgeColors("#6B8DD6", "#EFF6FF", "#BFDBFE", "#1D4ED8"),
    "aesthetic": EdgeColors("#9B8FD6", "#FAF5FF", "#E9D5FF", "#7E22CE"),
    "metaphorical": EdgeColors("#D6A56B", "#FFFBEB", "#FDE68A", "#B45309"),
    "genealogical": EdgeColors("#6BD68D", "#F0FDF4", "#BBF7D0", "#15803D"),
    "causal": EdgeColors("#D66B6B", "#FEF2F2", "#FECACA", "#B91C1C"),
    "temporal": EdgeColors("#6BC5D6", "#ECFEFF", "#A5F3FC", "#0E7490"),
    "structural": EdgeColors("#8B8B8B", "#F9FAFB", "#D1D5DB", "#4B5563"),
    "contrasting": EdgeColors("#D6A86B", "#FFF7ED", "#FED7AA", "#C2410C"),
}

FALLBACK_COLORS = EdgeColors("#9CA3AF", "#F9FAFB", "#E5E7EB", "#4B5563")

# Label chip, same for every category.
LABEL_CHIP = EdgeColors(stroke="#D1D5DB", bg="#FFFFFF", border="#D1D5DB", text="#374151")


def colors_for(category: str) -> EdgeColors:
    return CATEGORY_COLORS.get((category or "").strip().lower(), FALLBACK_COLORS)


def stroke_width(strength: float) -> float:
    return 1.5 + strength * 2.5


@dataclass(frozen=True)
class EdgeStyle:
    stroke: str
    stroke_width: float
    opacity: float
    show_label: bool


def style_for(connection: Connection, focus: Optional[Layer] = None) -> EdgeStyle:
    """Style for `connection` while `focus` is the visible layer.

    With no focus every layer is drawn as focused.
    """
    focused = focus is None or (connection.layer or Layer.STANDARD) == focus
    return EdgeStyle(
        stroke=colors_for(connection.category).stroke,
        stroke_width=stroke_width(connection.strength),
        opacity=FOCUSED_OPACITY if focused else UNFOCUSED_OPACITY,
        show_label=focused,
    )
