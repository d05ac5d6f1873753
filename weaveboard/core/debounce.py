from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesce bursts of `trigger()` calls into one callback after a quiet window.

    Must be used from inside a running event loop.
    """

    def __init__(self, delay_s: float, callback: Callable[[], object]):
        self.delay_s = float(delay_s)
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self.fired = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay_s, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Run a pending callback now. Returns False if nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        self._handle = None
        self.fired += 1
        try:
            self._callback()
        except Exception:
            logger.exception("Debounced callback failed")
