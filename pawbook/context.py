"""
Practice context
Owns every shared mutable structure of a running core and tears them down together
"""

import logging
from collections import defaultdict
from typing import Optional

import httpx
from sqlalchemy.orm import sessionmaker

from .config import CHANGE_FEED_DEBOUNCE_MS, WEBHOOK_SUPPRESSION_WINDOW_SECONDS
from .database import SessionLocal
from .domain.clients.repository import ClientRepository
from .domain.duplicates.merge import ClientMergeService
from .domain.duplicates.service import DismissalRegistry, DuplicateDetectionService
from .domain.forms.repository import (
    BehaviouralBriefRepository,
    BehaviourQuestionnaireRepository,
    BookingTermsRepository,
)
from .domain.memberships.repository import EmailAliasRepository, MembershipRepository
from .domain.sessions.repository import SessionRepository
from .domain.sessions.service import SessionOrchestrator
from .realtime.feed import SqlAlchemyChangeFeed
from .realtime.scheduler import CallLater
from .realtime.subscriber import ChangeFeedSubscriber
from .services.google_calendar_service import CalendarGateway
from .services.notification_service import NotificationService
from .services.webhook_suppressor import WebhookSuppressor
from .store.actions import Action, ActionType
from .store.entity_store import EntityStore

logger = logging.getLogger(__name__)


class PracticeContext:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        http: Optional[httpx.AsyncClient] = None,
        debounce_ms: int = CHANGE_FEED_DEBOUNCE_MS,
        call_later: Optional[CallLater] = None,
        calendar: Optional[CalendarGateway] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.session_factory = session_factory
        self.store = EntityStore()
        self.suppressor = WebhookSuppressor(window=WEBHOOK_SUPPRESSION_WINDOW_SECONDS)

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient()
        self.calendar = calendar or CalendarGateway(self.http)
        self.notifications = notifications or NotificationService(self.http, self.suppressor)

        self.feed = SqlAlchemyChangeFeed(session_factory)
        self.subscriber = ChangeFeedSubscriber(
            self.store, self.feed, session_factory, debounce_ms=debounce_ms, call_later=call_later
        )

        self.sessions = SessionOrchestrator(self.store, session_factory, self.calendar, self.notifications)
        self.dismissals = DismissalRegistry(session_factory)
        self.duplicates = DuplicateDetectionService(self.dismissals)
        self.merges = ClientMergeService(session_factory, self.store)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def load(self) -> None:
        """Replace every store collection with what the database holds now"""
        dispatch = self.store.dispatch
        with self.session_factory() as db:
            dispatch(Action(ActionType.SET_CLIENTS, ClientRepository.get_all(db)))
            dispatch(Action(ActionType.SET_SESSIONS, SessionRepository.get_all(db)))
            dispatch(Action(ActionType.SET_BEHAVIOURAL_BRIEFS, BehaviouralBriefRepository.get_all(db)))
            dispatch(Action(ActionType.SET_BEHAVIOUR_QUESTIONNAIRES, BehaviourQuestionnaireRepository.get_all(db)))
            dispatch(Action(ActionType.SET_BOOKING_TERMS, BookingTermsRepository.get_all(db)))
            dispatch(Action(ActionType.SET_MEMBERSHIPS, MembershipRepository.get_all(db)))

            aliases_by_client = defaultdict(list)
            for alias in EmailAliasRepository.get_all(db):
                aliases_by_client[alias.clientId].append(alias)
            for client_id, aliases in aliases_by_client.items():
                dispatch(Action(ActionType.SET_CLIENT_EMAIL_ALIASES, (client_id, aliases)))

        state = self.store.state
        logger.info(f"✅ Loaded {len(state.clients)} clients and {len(state.sessions)} sessions")

    def start(self) -> None:
        """Load, subscribe and scan for duplicates. Safe to call more than once."""
        if self._started:
            logger.info("ℹ️ Practice context already started")
            return
        self.load()
        self.subscriber.start()
        self.duplicates.refresh(self.store)
        self._started = True

    async def dispose(self) -> None:
        self.subscriber.dispose()
        self.suppressor.dispose()
        self.dismissals.clear_cache()
        if self._owns_http:
            await self.http.aclose()
        self.store.clear()
        self._started = False
        logger.info("🧹 Practice context disposed")
