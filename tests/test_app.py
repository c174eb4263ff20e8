"""Tests for the practice context lifecycle and the event id callback route."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from pawbook.context import PracticeContext
from pawbook.database import get_db
from pawbook.main import create_app
from pawbook.services.google_calendar_service import CalendarGateway
from pawbook.services.notification_service import NotificationService
from pawbook.store import selectors


@pytest.fixture
def context(session_factory, http_client, fake_timer):
    return PracticeContext(
        session_factory,
        http=http_client,
        call_later=fake_timer.call_later,
        calendar=AsyncMock(spec=CalendarGateway),
        notifications=AsyncMock(spec=NotificationService),
    )


@pytest.fixture
def api(context, session_factory):
    app = create_app(context=context, create_tables=False)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client


class TestPracticeContext:
    @pytest.mark.asyncio
    async def test_start_loads_state_once_and_dispose_clears(self, context, make_client, make_session):
        client = make_client(phone="07700900000")
        make_client(phone="07700900000")
        make_session(clientId=client.id)

        context.start()
        context.start()

        assert len(context.store.state.clients) == 2
        assert len(context.store.state.sessions) == 1
        assert len(context.store.state.potential_duplicates) == 1
        assert context.feed.subscriber_count("clients") == 1

        context.suppressor.should_send("s1", "booking-terms")
        await context.dispose()

        assert context.started is False
        assert context.subscriber.active_tables == []
        assert len(context.suppressor) == 0
        assert context.store.state.clients == ()


class TestEventIdRoute:
    def test_health(self, api):
        assert api.get("/health").json() == {"status": "healthy"}

    def test_callback_stores_event_id(self, api, context, make_session, make_client):
        session = make_session(clientId=make_client().id)
        context.load()

        response = api.post("/session/event-id", json={"sessionId": session.id, "eventId": "E42"})
        assert response.status_code == 200
        assert response.json()["eventId"] == "E42"
        assert selectors.get_session(context.store.state, session.id).eventId == "E42"
        context.calendar.update_event.assert_not_called()

        lookup = api.get("/session/event-id", params={"sessionId": session.id}).json()
        assert lookup == {"sessionId": session.id, "eventId": "E42", "hasEventId": True}

    def test_bad_input(self, api):
        assert api.post("/session/event-id", json={"sessionId": "s1"}).status_code == 400
        assert api.get("/session/event-id").status_code == 400

    def test_unknown_session(self, api):
        assert api.post("/session/event-id", json={"sessionId": "nope", "eventId": "E1"}).status_code == 404
        assert api.get("/session/event-id", params={"sessionId": "nope"}).status_code == 404

    def test_api_key_required_when_configured(self, api):
        with patch("pawbook.routes.sessions.WEBHOOK_CALLBACK_API_KEY", "secret"):
            response = api.post("/session/event-id", json={"sessionId": "s1", "eventId": "E1"})
            assert response.status_code == 401

            response = api.post(
                "/session/event-id", json={"sessionId": "nope", "eventId": "E1"}, headers={"x-api-key": "secret"}
            )
            assert response.status_code == 404
