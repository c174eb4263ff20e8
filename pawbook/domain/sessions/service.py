"""
Session mutation orchestrator

Keeps the entity store, the relational store and the external calendar in step
for session create, update and delete, and decides which integrations fire.

Persistence failures propagate to the caller. Integration failures are logged
and isolated: by the time an integration runs the record is already stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from sqlalchemy.orm import sessionmaker

from ...errors import ClientNotFound, IntegrationError, SessionNotFound
from ...schemas import Client, TrainingSession
from ...services.google_calendar_service import CalendarGateway
from ...services.notification_service import NotificationService
from ...store import selectors
from ...store.actions import Action, ActionType
from ...store.entity_store import EntityStore
from ..clients.repository import ClientRepository
from .repository import SessionRepository
from .schemas import SessionCreate, SessionUpdate

logger = logging.getLogger(__name__)

# Fields whose change must be communicated to the client as a booking-terms notice
BOOKING_TERMS_RELEVANT_FIELDS = frozenset({"sessionType", "bookingDate", "bookingTime"})

ConfirmProceed = Callable[[IntegrationError], bool]


@dataclass(frozen=True)
class CalendarChanges:
    date_changed: bool = False
    time_changed: bool = False
    session_type_changed: bool = False

    @property
    def any(self) -> bool:
        return self.date_changed or self.time_changed or self.session_type_changed


def _differs(prior: TrainingSession, changes: dict, field: str) -> bool:
    return field in changes and changes[field] != getattr(prior, field)


def detect_calendar_changes(prior: TrainingSession, changes: dict) -> CalendarChanges:
    """Compare the requested keys against the stored values"""
    return CalendarChanges(
        date_changed=_differs(prior, changes, "bookingDate"),
        time_changed=_differs(prior, changes, "bookingTime"),
        session_type_changed=_differs(prior, changes, "sessionType"),
    )


def changed_fields(prior: TrainingSession, changes: dict) -> set[str]:
    return {field for field in changes if hasattr(prior, field) and _differs(prior, changes, field)}


def is_booking_terms_relevant(fields: set[str]) -> bool:
    return bool(fields & BOOKING_TERMS_RELEVANT_FIELDS)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionOrchestrator:
    def __init__(
        self,
        store: EntityStore,
        session_factory: sessionmaker,
        calendar: CalendarGateway,
        notifications: NotificationService,
    ):
        self.store = store
        self.session_factory = session_factory
        self.calendar = calendar
        self.notifications = notifications

    def _require_session(self, session_id: str) -> TrainingSession:
        session = selectors.get_session(self.store.state, session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def _client_for(self, client_id: Optional[str]) -> Optional[Client]:
        if not client_id:
            return None
        client = selectors.get_client(self.store.state, client_id)
        if client is None:
            with self.session_factory() as db:
                client = ClientRepository.get_by_id(db, client_id)
        return client

    def _form_flags(self, client_id: Optional[str]) -> dict:
        state = self.store.state
        return {
            "has_signed_booking_terms": selectors.has_signed_booking_terms(state, client_id),
            "has_filled_questionnaire": selectors.has_filled_questionnaire(state, client_id),
        }

    async def _isolated(self, label: str, call: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await call()
        except Exception as e:
            logger.error(f"❌ {label} failed, the stored session is unaffected: {e}")
            return None

    async def create_session(self, data: Union[SessionCreate, dict]) -> TrainingSession:
        """Persist, reflect, then send the booking-terms and session-created notices.

        No calendar event is created here; the session webhook receiver creates it
        and reports the id back through ``apply_calendar_event_id``.
        """
        if not isinstance(data, SessionCreate):
            data = SessionCreate.model_validate(data)

        client = self._client_for(data.clientId)
        if data.clientId and client is None:
            raise ClientNotFound(data.clientId)

        fields = data.model_dump()
        if not fields.get("dogName") and client is not None:
            fields["dogName"] = client.dogName
        if not fields.get("email") and client is not None:
            fields["email"] = client.email

        with self.session_factory() as db:
            session = SessionRepository.create(db, fields)
        logger.info(f"✅ Session {session.id} created ({session.sessionType.value} on {session.bookingDate})")

        self.store.dispatch(Action(ActionType.ADD_SESSION, session))

        flags = self._form_flags(session.clientId)
        await self._isolated(
            "Booking terms notice",
            lambda: self.notifications.notify_booking_terms(session, client, **flags),
        )
        await self._isolated(
            "Session created notice",
            lambda: self.notifications.notify_session_created(session, client, **flags),
        )
        return session

    def _persist(self, session_id: str, changes: dict) -> TrainingSession:
        with self.session_factory() as db:
            updated = SessionRepository.update(db, session_id, changes)
        if updated is None:
            raise SessionNotFound(session_id)
        self.store.dispatch(Action(ActionType.UPDATE_SESSION, updated))
        return updated

    @staticmethod
    def _clean_changes(changes: Union[SessionUpdate, dict]) -> dict:
        if not isinstance(changes, SessionUpdate):
            changes = SessionUpdate.model_validate(changes)
        return changes.model_dump(exclude_unset=True)

    async def update_session(self, session_id: str, changes: Union[SessionUpdate, dict]) -> TrainingSession:
        """Public update path: persists, then fires calendar and notification integrations as needed"""
        prior = self._require_session(session_id)
        changes = self._clean_changes(changes)
        updated = self._persist(session_id, changes)

        calendar_changes = detect_calendar_changes(prior, changes)
        client = self._client_for(updated.clientId)
        if calendar_changes.any:
            event_id = prior.eventId or updated.eventId
            if event_id:
                await self._isolated(
                    "Calendar update", lambda: self.calendar.update_event(event_id, updated, client)
                )
            else:
                # First creation belongs to the webhook receiver
                logger.info(f"ℹ️ Session {session_id} has no calendar event yet, skipping calendar update")

        if is_booking_terms_relevant(changed_fields(prior, changes)):
            flags = self._form_flags(updated.clientId)
            await self._isolated(
                "Booking terms notice",
                lambda: self.notifications.notify_booking_terms(updated, client, **flags),
            )
        return updated

    async def update_session_internal(self, session_id: str, changes: Union[SessionUpdate, dict]) -> TrainingSession:
        """System-originated writes (event ids, payment flags). Never triggers integrations."""
        self._require_session(session_id)
        return self._persist(session_id, self._clean_changes(changes))

    async def apply_calendar_event_id(
        self, session_id: str, event_id: str, google_meet_link: Optional[str] = None
    ) -> TrainingSession:
        changes = {"eventId": event_id}
        if google_meet_link:
            changes["googleMeetLink"] = google_meet_link
        session = await self.update_session_internal(session_id, changes)
        logger.info(f"✅ Stored calendar event {event_id} for session {session_id}")
        return session

    async def mark_session_paid(self, session_id: str) -> TrainingSession:
        return await self.update_session_internal(
            session_id, {"sessionPaid": True, "paymentConfirmedAt": _now_iso()}
        )

    async def delete_session(self, session_id: str, confirm_proceed: Optional[ConfirmProceed] = None) -> bool:
        """
        Delete the calendar event first, then the record.

        If the calendar delete fails the record is only removed when
        ``confirm_proceed(error)`` returns True. Returns whether the record was deleted.
        """
        prior = self._require_session(session_id)

        if prior.eventId:
            try:
                await self.calendar.delete_event(prior.eventId)
            except IntegrationError as e:
                logger.error(f"❌ Calendar delete for session {session_id} failed: {e}")
                if confirm_proceed is None or not confirm_proceed(e):
                    logger.warning(f"⚠️ Keeping session {session_id}; calendar event {prior.eventId} still exists")
                    return False
                logger.warning(f"⚠️ Deleting session {session_id} despite calendar failure (confirmed)")

        with self.session_factory() as db:
            deleted = SessionRepository.delete(db, session_id)
        if not deleted:
            logger.warning(f"⚠️ Session {session_id} was already gone from the database")

        self.store.dispatch(Action(ActionType.DELETE_SESSION, session_id))
        logger.info(f"🗑️ Session {session_id} deleted")
        return True
