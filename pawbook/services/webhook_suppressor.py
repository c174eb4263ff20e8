"""
Duplicate-call suppression for outbound webhooks.

Overlapping triggers (a local update and the change feed echo of it) can ask for
the same notification within moments of each other. The first call for an
``(entity_id, kind)`` key wins; repeats inside the window are blocked.
"""

import logging
import time
from threading import Lock
from typing import Callable

logger = logging.getLogger(__name__)

BOOKING_TERMS = "booking-terms"
SESSION_CREATED = "session-created"


class WebhookSuppressor:
    def __init__(self, window: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self._clock = clock
        # {(entity_id, kind): last_sent_at}
        self._sent: dict[tuple[str, str], float] = {}
        self._lock = Lock()
        self._last_cleanup = clock()

    def should_send(self, entity_id: str, kind: str) -> bool:
        """Claim the key. True for the first call in a window, False for repeats."""
        now = self._clock()
        self._cleanup(now)

        key = (entity_id, kind)
        with self._lock:
            last_sent = self._sent.get(key)
            if last_sent is not None and now - last_sent < self.window:
                logger.info(f"⏭️ Suppressed duplicate {kind} webhook for {entity_id}")
                return False
            self._sent[key] = now
            return True

    def _cleanup(self, now: float) -> None:
        """Drop entries older than twice the window, at most once per window"""
        if now - self._last_cleanup < self.window:
            return

        with self._lock:
            expired = [key for key, sent_at in self._sent.items() if now - sent_at > self.window * 2]
            for key in expired:
                del self._sent[key]
            self._last_cleanup = now

        if expired:
            logger.debug(f"🧹 Cleaned up {len(expired)} webhook suppression entries")

    def __len__(self) -> int:
        return len(self._sent)

    def dispose(self) -> None:
        with self._lock:
            self._sent.clear()
