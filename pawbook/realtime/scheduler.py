"""Per-key trailing-edge debouncer.

Timers come from an injectable ``call_later(delay, callback, *args)`` returning a
handle with ``cancel()``; by default the running asyncio loop provides it. Tests
pass a manual timer so no real time elapses.
"""

import asyncio
import logging
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

CallLater = Callable[..., Any]


class KeyedDebouncer:
    def __init__(self, on_fire: Callable[[Hashable, Any], None], call_later: Optional[CallLater] = None):
        self._on_fire = on_fire
        self._call_later = call_later
        self._pending: dict[Hashable, Any] = {}
        self._disposed = False

    def _timer(self) -> CallLater:
        if self._call_later is not None:
            return self._call_later
        return asyncio.get_running_loop().call_later

    def schedule(self, key: Hashable, delay: float, value: Any) -> None:
        """(Re)arm the timer for ``key``; only the last value scheduled within ``delay`` fires"""
        if self._disposed:
            logger.warning(f"⚠️ Debouncer disposed, dropping update for {key}")
            return
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._pending[key] = self._timer()(delay, self._fire, key, value)

    def _fire(self, key: Hashable, value: Any) -> None:
        self._pending.pop(key, None)
        try:
            self._on_fire(key, value)
        except Exception as e:
            logger.error(f"❌ Debounced dispatch for {key} failed: {e}")

    def cancel(self, key: Hashable) -> bool:
        handle = self._pending.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending_keys(self) -> list:
        return list(self._pending)

    def dispose(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self._disposed = True

    def reopen(self) -> None:
        self._disposed = False
