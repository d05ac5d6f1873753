"""Core domain types and algorithms."""

from .debounce import Debouncer
from .graph import ConnectionGraph
from .ids import IdentityAllocator
from .models import (
    BINARY_FIELDS,
    Board,
    BoardSummary,
    Connection,
    Item,
    ItemKind,
    Layer,
    RegistryState,
    binary_fields_for,
    canonical_item_id,
)

__all__ = [
    # models
    "BINARY_FIELDS",
    "Board",
    "BoardSummary",
    "Connection",
    "Item",
    "ItemKind",
    "Layer",
    "RegistryState",
    "binary_fields_for",
    "canonical_item_id",
    # graph
    "ConnectionGraph",
    "IdentityAllocator",
    "Debouncer",
]
