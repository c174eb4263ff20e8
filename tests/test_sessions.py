"""Tests for the session mutation orchestrator."""

from unittest.mock import AsyncMock

import httpx
import pydantic
import pytest

from pawbook.domain.sessions.repository import SessionRepository
from pawbook.domain.sessions.service import SessionOrchestrator, detect_calendar_changes
from pawbook.errors import ClientNotFound, ProviderError, SessionNotFound, TransportError
from pawbook.services.google_calendar_service import CalendarGateway
from pawbook.services.notification_service import NotificationService
from pawbook.services.webhook_suppressor import WebhookSuppressor
from pawbook.store import selectors
from pawbook.store.actions import Action, ActionType


@pytest.fixture
def calendar():
    return AsyncMock(spec=CalendarGateway)


@pytest.fixture
def notifications():
    return AsyncMock(spec=NotificationService)


@pytest.fixture
def orchestrator(store, session_factory, calendar, notifications):
    return SessionOrchestrator(store, session_factory, calendar, notifications)


@pytest.fixture
def client(store, make_client):
    client = make_client()
    store.dispatch(Action(ActionType.ADD_CLIENT, client))
    return client


@pytest.fixture
def stored_session(store, make_session, client):
    def _factory(**fields):
        session = make_session(clientId=client.id, **fields)
        store.dispatch(Action(ActionType.ADD_SESSION, session))
        return session

    return _factory


def _db_session(session_factory, session_id):
    with session_factory() as db:
        return SessionRepository.get_by_id(db, session_id)


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_create_persists_and_reflects_without_calendar_create(
        self, orchestrator, store, session_factory, calendar, notifications, client
    ):
        session = await orchestrator.create_session(
            {"clientId": client.id, "sessionType": "Online", "bookingDate": "2026-04-01", "bookingTime": "09:30"}
        )

        assert selectors.get_session(store.state, session.id) == session
        assert _db_session(session_factory, session.id) is not None
        calendar.create_event.assert_not_called()
        notifications.notify_booking_terms.assert_awaited_once()
        notifications.notify_session_created.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dog_name_and_email_default_from_client(self, orchestrator, client):
        session = await orchestrator.create_session(
            {"clientId": client.id, "sessionType": "Training", "bookingDate": "2026-04-01", "bookingTime": "09:30"}
        )
        assert session.dogName == "Rex"
        assert session.email == "sam@example.com"

    @pytest.mark.asyncio
    async def test_unknown_client_is_rejected(self, orchestrator, store):
        with pytest.raises(ClientNotFound):
            await orchestrator.create_session(
                {"clientId": "missing", "sessionType": "Online", "bookingDate": "2026-04-01", "bookingTime": "09:30"}
            )
        assert store.state.sessions == ()

    @pytest.mark.asyncio
    async def test_only_group_and_live_sessions_may_omit_client(self, orchestrator):
        with pytest.raises(pydantic.ValidationError):
            await orchestrator.create_session(
                {"sessionType": "In-Person", "bookingDate": "2026-04-01", "bookingTime": "09:30"}
            )

        group = await orchestrator.create_session(
            {"sessionType": "Group", "bookingDate": "2026-04-01", "bookingTime": "18:00"}
        )
        assert group.clientId is None

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_create(self, orchestrator, store, notifications, client):
        notifications.notify_session_created.side_effect = RuntimeError("webhook exploded")
        session = await orchestrator.create_session(
            {"clientId": client.id, "sessionType": "Online", "bookingDate": "2026-04-01", "bookingTime": "09:30"}
        )
        assert selectors.get_session(store.state, session.id) is not None


class TestUpdateSession:
    @pytest.mark.asyncio
    async def test_date_change_with_event_updates_calendar_once(
        self, orchestrator, stored_session, calendar, notifications
    ):
        session = stored_session(eventId="E1")
        updated = await orchestrator.update_session(session.id, {"bookingDate": "2026-03-20"})

        assert updated.bookingDate == "2026-03-20"
        calendar.update_event.assert_awaited_once()
        assert calendar.update_event.await_args.args[0] == "E1"
        notifications.notify_booking_terms.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notes_only_triggers_nothing(self, orchestrator, stored_session, calendar, notifications, store):
        session = stored_session(eventId="E1")
        await orchestrator.update_session(session.id, {"notes": "Bring treats"})

        calendar.update_event.assert_not_called()
        notifications.notify_booking_terms.assert_not_called()
        notifications.notify_session_created.assert_not_called()
        assert selectors.get_session(store.state, session.id).notes == "Bring treats"

    @pytest.mark.asyncio
    async def test_type_change_without_event_skips_calendar(self, orchestrator, stored_session, calendar):
        session = stored_session()
        await orchestrator.update_session(session.id, {"sessionType": "Online"})
        calendar.update_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_unchanged_value_is_not_a_change(self, orchestrator, stored_session, calendar, notifications):
        session = stored_session(eventId="E1")
        await orchestrator.update_session(session.id, {"bookingDate": session.bookingDate})
        calendar.update_event.assert_not_called()
        notifications.notify_booking_terms.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["sessionType", "bookingDate", "bookingTime", "quote"])
    async def test_required_fields_cannot_be_cleared(self, orchestrator, stored_session, session_factory, field):
        session = stored_session()
        with pytest.raises(pydantic.ValidationError):
            await orchestrator.update_session(session.id, {field: None})
        assert getattr(_db_session(session_factory, session.id), field) == getattr(session, field)

    @pytest.mark.asyncio
    async def test_unknown_session_fails_fast(self, orchestrator):
        with pytest.raises(SessionNotFound):
            await orchestrator.update_session("missing", {"notes": "x"})

    @pytest.mark.asyncio
    async def test_calendar_failure_is_isolated(self, orchestrator, stored_session, calendar, store, session_factory):
        calendar.update_event.side_effect = TransportError("calendar update", 3)
        session = stored_session(eventId="E1")

        updated = await orchestrator.update_session(session.id, {"bookingTime": "15:00"})

        assert updated.bookingTime == "15:00"
        assert _db_session(session_factory, session.id).bookingTime == "15:00"

    @pytest.mark.asyncio
    async def test_repeated_update_sends_one_booking_terms_notice(
        self, store, session_factory, calendar, stored_session, transport, http_client
    ):
        notifications = NotificationService(
            http_client,
            WebhookSuppressor(window=5),
            booking_terms_webhook_url="https://hooks.test/booking-terms",
            session_webhook_url=None,
        )
        orchestrator = SessionOrchestrator(store, session_factory, calendar, notifications)
        session = stored_session()

        await orchestrator.update_session(session.id, {"bookingDate": "2026-03-20"})
        await orchestrator.update_session(session.id, {"bookingDate": "2026-03-21"})

        assert transport.paths() == ["/booking-terms"]

    @pytest.mark.asyncio
    async def test_internal_path_never_fires_integrations(
        self, orchestrator, stored_session, calendar, notifications, store
    ):
        session = stored_session()
        updated = await orchestrator.apply_calendar_event_id(session.id, "E9", "https://meet.test/abc")

        assert updated.eventId == "E9"
        assert selectors.get_session(store.state, session.id).googleMeetLink == "https://meet.test/abc"
        calendar.update_event.assert_not_called()
        notifications.notify_booking_terms.assert_not_called()

    @pytest.mark.asyncio
    async def test_mark_session_paid(self, orchestrator, stored_session):
        paid = await orchestrator.mark_session_paid(stored_session().id)
        assert paid.sessionPaid is True
        assert paid.paymentConfirmedAt

    def test_detect_calendar_changes(self, stored_session):
        session = stored_session()
        changes = detect_calendar_changes(session, {"bookingTime": "11:00", "notes": "x"})
        assert changes.time_changed and not changes.date_changed and changes.any


class TestDeleteSession:
    @pytest.mark.asyncio
    async def test_calendar_delete_happens_before_record_delete(
        self, orchestrator, stored_session, calendar, session_factory, store
    ):
        session = stored_session(eventId="E1")
        seen_in_db = []

        async def check_record(event_id):
            seen_in_db.append(_db_session(session_factory, session.id) is not None)

        calendar.delete_event.side_effect = check_record

        assert await orchestrator.delete_session(session.id) is True
        calendar.delete_event.assert_awaited_once_with("E1")
        assert seen_in_db == [True]
        assert _db_session(session_factory, session.id) is None
        assert selectors.get_session(store.state, session.id) is None

    @pytest.mark.asyncio
    async def test_declined_after_calendar_failure_keeps_record(
        self, orchestrator, stored_session, calendar, session_factory, store
    ):
        calendar.delete_event.side_effect = ProviderError("calendar delete", 500, "boom")
        session = stored_session(eventId="E1")
        asked = []

        def decline(error):
            asked.append(error)
            return False

        assert await orchestrator.delete_session(session.id, confirm_proceed=decline) is False
        assert len(asked) == 1
        assert _db_session(session_factory, session.id) is not None
        assert selectors.get_session(store.state, session.id) is not None

    @pytest.mark.asyncio
    async def test_confirmed_after_calendar_failure_deletes(self, orchestrator, stored_session, calendar, session_factory):
        calendar.delete_event.side_effect = TransportError("calendar delete", 3, httpx.ConnectError("refused"))
        session = stored_session(eventId="E1")

        assert await orchestrator.delete_session(session.id, confirm_proceed=lambda error: True) is True
        assert _db_session(session_factory, session.id) is None

    @pytest.mark.asyncio
    async def test_session_without_event_skips_calendar(self, orchestrator, stored_session, calendar):
        session = stored_session()
        assert await orchestrator.delete_session(session.id) is True
        calendar.delete_event.assert_not_called()
