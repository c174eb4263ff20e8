"""Change feed: insert/update/delete notifications per table.

``SqlAlchemyChangeFeed`` is the in-process implementation. It watches every
session produced by a ``sessionmaker``, buffers row snapshots per session during
flush and publishes them only once the transaction commits. A rollback discards
the buffer, so subscribers never see a change that did not persist.

Bulk ``Query.update()`` / ``Query.delete()`` statements bypass the unit of work
and are not published.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"

_BUFFER_KEY = "pawbook_change_events"


@dataclass(frozen=True)
class ChangeEvent:
    event_type: str  # insert | update | delete
    table: str
    row: dict = field(default_factory=dict)


Handler = Callable[[ChangeEvent], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class ChangeFeed(Protocol):
    def subscribe(self, table: str, handler: Handler) -> Subscription: ...


class _TableSubscription:
    def __init__(self, feed: "SqlAlchemyChangeFeed", table: str, handler: Handler):
        self._feed = feed
        self.table = table
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)


def _snapshot(instance) -> dict:
    """Column values already loaded on the instance; never triggers a lazy load"""
    state = inspect(instance)
    return {attr.key: state.dict[attr.key] for attr in state.mapper.column_attrs if attr.key in state.dict}


class SqlAlchemyChangeFeed:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._subscriptions: dict[str, list[_TableSubscription]] = {}
        self._attached = False

    def subscribe(self, table: str, handler: Handler) -> _TableSubscription:
        self._attach()
        subscription = _TableSubscription(self, table, handler)
        self._subscriptions.setdefault(table, []).append(subscription)
        logger.info(f"📡 Subscribed to changes on {table}")
        return subscription

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, []))

    def _remove(self, subscription: _TableSubscription) -> None:
        handlers = self._subscriptions.get(subscription.table, [])
        if subscription in handlers:
            handlers.remove(subscription)
        if not handlers:
            self._subscriptions.pop(subscription.table, None)
        if not self._subscriptions:
            self._detach()

    def _attach(self) -> None:
        if self._attached:
            return
        event.listen(self._session_factory, "after_flush", self._after_flush)
        event.listen(self._session_factory, "after_commit", self._after_commit)
        event.listen(self._session_factory, "after_rollback", self._after_rollback)
        self._attached = True

    def _detach(self) -> None:
        if not self._attached:
            return
        event.remove(self._session_factory, "after_flush", self._after_flush)
        event.remove(self._session_factory, "after_commit", self._after_commit)
        event.remove(self._session_factory, "after_rollback", self._after_rollback)
        self._attached = False

    def _after_flush(self, session: Session, _flush_context) -> None:
        buffer = session.info.setdefault(_BUFFER_KEY, [])
        for instance in session.new:
            buffer.append(ChangeEvent(INSERT, instance.__tablename__, _snapshot(instance)))
        for instance in session.dirty:
            if session.is_modified(instance, include_collections=False):
                buffer.append(ChangeEvent(UPDATE, instance.__tablename__, _snapshot(instance)))
        for instance in session.deleted:
            buffer.append(ChangeEvent(DELETE, instance.__tablename__, _snapshot(instance)))

    def _after_commit(self, session: Session) -> None:
        events = session.info.pop(_BUFFER_KEY, [])
        for change in events:
            self._publish(change)

    def _after_rollback(self, session: Session) -> None:
        dropped = session.info.pop(_BUFFER_KEY, [])
        if dropped:
            logger.info(f"🧹 Discarded {len(dropped)} unpublished change(s) after rollback")

    def _publish(self, change: ChangeEvent) -> None:
        for subscription in list(self._subscriptions.get(change.table, [])):
            try:
                subscription.handler(change)
            except Exception as e:
                logger.error(f"❌ Change handler for {change.table} failed: {e}")
