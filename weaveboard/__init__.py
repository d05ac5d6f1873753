"""
WeaveBoard: a spatial board whose items are woven together by an LLM.

Main interface: WeaveSession
"""

__version__ = "0.1.0"

from .config import WeaveConfig, load_config
from .core.models import Connection, Item, ItemKind, Layer
from .session import WeaveSession

__all__ = ["WeaveConfig", "load_config", "Connection", "Item", "ItemKind", "Layer", "WeaveSession"]
