"""Keeps the entity store in step with remote changes.

One subscription per table, tracked in a registry keyed by table name. Inserts and
updates are debounced per ``"<ACTION_TYPE>:<id>"`` key and collapse to the last
payload (trailing edge). Deletes are dispatched immediately and cancel anything
still pending for the same id. Form tables re-fetch their whole collection
instead of translating the single row.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from .. import gateway
from ..domain.forms.repository import BehaviouralBriefRepository, BehaviourQuestionnaireRepository
from ..domain.memberships.repository import EmailAliasRepository
from ..store.actions import Action, ActionType
from ..store.entity_store import EntityStore
from .feed import DELETE, INSERT, ChangeEvent, ChangeFeed, Subscription
from .scheduler import CallLater, KeyedDebouncer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableBinding:
    """How change events on one table become store actions"""

    translate: Optional[Callable[[dict], object]]
    add: Optional[ActionType] = None
    update: Optional[ActionType] = None
    delete: Optional[ActionType] = None
    # Whole-collection reload used instead of translate
    refetch: Optional[ActionType] = None


TABLE_BINDINGS = {
    "clients": TableBinding(
        gateway.row_to_client, ActionType.ADD_CLIENT, ActionType.UPDATE_CLIENT, ActionType.DELETE_CLIENT
    ),
    "sessions": TableBinding(
        gateway.row_to_session, ActionType.ADD_SESSION, ActionType.UPDATE_SESSION, ActionType.DELETE_SESSION
    ),
    "memberships": TableBinding(
        gateway.row_to_membership,
        ActionType.ADD_MEMBERSHIP,
        ActionType.UPDATE_MEMBERSHIP,
        ActionType.DELETE_MEMBERSHIP,
    ),
    "booking_terms": TableBinding(
        gateway.row_to_booking_terms,
        ActionType.ADD_BOOKING_TERMS,
        ActionType.UPDATE_BOOKING_TERMS,
        ActionType.DELETE_BOOKING_TERMS,
    ),
    "behavioural_briefs": TableBinding(None, refetch=ActionType.SET_BEHAVIOURAL_BRIEFS),
    "behaviour_questionnaires": TableBinding(None, refetch=ActionType.SET_BEHAVIOUR_QUESTIONNAIRES),
    # Aliases are grouped per client, so any change reloads that client's list
    "client_email_aliases": TableBinding(None, refetch=ActionType.SET_CLIENT_EMAIL_ALIASES),
}


def debounce_key(action_type: ActionType, entity_id: str) -> str:
    return f"{action_type.value}:{entity_id}"


class ChangeFeedSubscriber:
    def __init__(
        self,
        store: EntityStore,
        feed: ChangeFeed,
        session_factory: sessionmaker,
        debounce_ms: int = 50,
        call_later: Optional[CallLater] = None,
    ):
        self.store = store
        self.feed = feed
        self.session_factory = session_factory
        self.delay = debounce_ms / 1000
        self.debouncer = KeyedDebouncer(self._fire, call_later)
        self._subscriptions: dict[str, Subscription] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def active_tables(self) -> list[str]:
        return list(self._subscriptions)

    def start(self) -> None:
        """Subscribe every bound table once; calling again is a no-op for tables already live"""
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
        self.debouncer.reopen()

        for table in TABLE_BINDINGS:
            if table in self._subscriptions:
                logger.info(f"ℹ️ Already subscribed to {table}, skipping")
                continue
            self._subscriptions[table] = self.feed.subscribe(table, self._on_change)
        logger.info(f"✅ Change feed subscriber live on {len(self._subscriptions)} tables")

    def dispose(self) -> None:
        """Release every subscription and pending timer together"""
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        self.debouncer.dispose()
        for subscription in subscriptions:
            try:
                subscription.unsubscribe()
            except Exception as e:
                logger.error(f"❌ Failed to release subscription: {e}")
        logger.info(f"🧹 Released {len(subscriptions)} change feed subscriptions")

    def _on_change(self, change: ChangeEvent) -> None:
        # Commits may happen on a worker thread; store mutations stay on the loop
        if self._loop is not None and self._loop.is_running() and not self._on_loop():
            self._loop.call_soon_threadsafe(self.handle, change)
            return
        self.handle(change)

    def _on_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def handle(self, change: ChangeEvent) -> None:
        if change.table not in self._subscriptions:
            return
        binding = TABLE_BINDINGS[change.table]

        if binding.refetch is not None:
            self._schedule_refetch(binding.refetch, change)
            return

        entity_id = change.row.get("id")
        if not entity_id:
            logger.warning(f"⚠️ Ignoring {change.event_type} on {change.table} without an id")
            return

        if change.event_type == DELETE:
            self.debouncer.cancel(debounce_key(binding.add, entity_id))
            self.debouncer.cancel(debounce_key(binding.update, entity_id))
            self.store.dispatch(Action(binding.delete, entity_id))
            return

        try:
            entity = binding.translate(change.row)
        except Exception as e:
            logger.error(f"❌ Could not translate {change.table} row {entity_id}: {e}")
            return

        action_type = binding.add if change.event_type == INSERT else binding.update
        self.debouncer.schedule(debounce_key(action_type, entity_id), self.delay, Action(action_type, entity))

    def _schedule_refetch(self, action_type: ActionType, change: ChangeEvent) -> None:
        if action_type == ActionType.SET_CLIENT_EMAIL_ALIASES:
            client_id = change.row.get("client_id")
            if not client_id:
                return
            self.debouncer.schedule(
                debounce_key(action_type, client_id), self.delay, lambda: self._load_aliases(client_id)
            )
            return
        self.debouncer.schedule(action_type.value, self.delay, lambda: self._load_collection(action_type))

    def _load_collection(self, action_type: ActionType) -> Action:
        repository = (
            BehaviouralBriefRepository
            if action_type == ActionType.SET_BEHAVIOURAL_BRIEFS
            else BehaviourQuestionnaireRepository
        )
        with self.session_factory() as db:
            return Action(action_type, repository.get_all(db))

    def _load_aliases(self, client_id: str) -> Action:
        with self.session_factory() as db:
            aliases = EmailAliasRepository.get_by_client_id(db, client_id)
        return Action(ActionType.SET_CLIENT_EMAIL_ALIASES, (client_id, aliases))

    def _fire(self, _key, value) -> None:
        action = value() if callable(value) else value
        self.store.dispatch(action)
