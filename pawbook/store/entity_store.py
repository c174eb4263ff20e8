import logging
from typing import Callable

from .actions import Action
from .reducer import EntityState, apply

logger = logging.getLogger(__name__)

Listener = Callable[[EntityState, Action], None]


class EntityStore:
    """Holds the current EntityState and runs every dispatch through the reducer"""

    def __init__(self, initial: EntityState = None):
        self._state = initial or EntityState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> EntityState:
        return self._state

    def dispatch(self, action: Action) -> EntityState:
        self._state = apply(self._state, action)
        for listener in list(self._listeners):
            try:
                listener(self._state, action)
            except Exception as e:
                # A broken observer must not undo a dispatch that already happened
                logger.error(f"❌ Store listener failed on {action.type.value}: {e}")
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an observer; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self):
        self._listeners.clear()
        self._state = EntityState()
