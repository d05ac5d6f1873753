"""Which items count as having content worth analysing.

Text items still showing the starter placeholder are treated as empty, both
when building the finder request and when deciding whether a layer is already
saturated.
"""

from __future__ import annotations

from typing import Iterable, List

from ..core.models import Item, ItemKind, canonical_item_id

PLACEHOLDER_TEXT = "Drag me around the canvas. Zoom and pan to explore."


def is_empty_item(item: Item) -> bool:
    f = item.fields
    if item.kind == ItemKind.TEXT:
        text = str(f.get("text") or "").strip()
        return not text or text == PLACEHOLDER_TEXT
    if item.kind == ItemKind.IMAGE:
        return not f.get("image_data_url")
    if item.kind == ItemKind.LINK:
        return bool(f.get("loading")) or not f.get("url")
    if item.kind == ItemKind.PDF:
        return not f.get("pdf_data_url")
    return True


def eligible_items(items: Iterable[Item]) -> List[Item]:
    return [i for i in items if not is_empty_item(i)]


def eligible_ids(items: Iterable[Item]) -> List[str]:
    return [canonical_item_id(i.id) for i in eligible_items(items)]
