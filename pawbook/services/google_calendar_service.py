"""
Google Calendar Service
Handles calendar event creation, updates, and deletion through the calendar proxy
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

import httpx

from ..config import (
    CALENDAR_API_URL,
    CALENDAR_MAX_RETRIES,
    CALENDAR_RETRY_DELAY_SECONDS,
    CALENDAR_TIMEOUT_SECONDS,
    CALENDAR_TIMEZONE,
)
from ..errors import IntegrationError, ProviderError, TransportError
from ..schemas import Client, TrainingSession

logger = logging.getLogger(__name__)

SESSION_DURATION = timedelta(hours=1)


def format_event_summary(session: TrainingSession, client: Optional[Client]) -> str:
    client_name = client.full_name if client else ""
    dog_name = session.dogName or (client.dogName if client else None)
    title = client_name or session.sessionType.value
    if dog_name:
        title += f" w/ {dog_name}"
    return f"{title} - {session.sessionType.value}"


def format_event_description(session: TrainingSession, client: Optional[Client]) -> str:
    dog_name = session.dogName or (client.dogName if client else None)
    lines = [f"Session Type: {session.sessionType.value}"]
    if dog_name:
        lines.append(f"Dog: {dog_name}")
    if session.notes:
        lines.append(f"Notes: {session.notes}")
    lines.append(f"Quote: £{session.quote:g}")
    if client and client.email:
        lines.append(f"Client Email: {client.email}")
    return "\n".join(lines)


def build_event(session: TrainingSession, client: Optional[Client]) -> dict:
    """Calendar event body. Start and end are local wall-clock times in the configured zone."""
    start = datetime.strptime(f"{session.bookingDate} {session.bookingTime}", "%Y-%m-%d %H:%M")
    end = start + SESSION_DURATION
    event = {
        "sessionId": session.id,
        "summary": format_event_summary(session, client),
        "description": format_event_description(session, client),
        "start": {"dateTime": start.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": CALENDAR_TIMEZONE},
        "end": {"dateTime": end.strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": CALENDAR_TIMEZONE},
    }
    if client and client.address:
        event["location"] = client.address
    return event


class CalendarGateway:
    """
    Calendar create/update/delete with bounded retry.

    Only transport failures (timeouts, connection errors) are retried. An error
    response from the provider is final. Create and update failures are logged
    and swallowed; delete failures propagate so the caller can decide whether
    to continue.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = CALENDAR_API_URL,
        timeout: float = CALENDAR_TIMEOUT_SECONDS,
        max_retries: int = CALENDAR_MAX_RETRIES,
        retry_delay: float = CALENDAR_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def _post(self, operation: str, path: str, body: dict) -> httpx.Response:
        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self.http.post(f"{self.base_url}{path}", json=body, timeout=self.timeout)
            except httpx.TransportError as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        f"🔄 Calendar {operation} attempt {attempt}/{attempts} failed ({e!r}), "
                        f"retrying in {self.retry_delay}s"
                    )
                    await self._sleep(self.retry_delay)
                continue
            return response

        raise TransportError(f"calendar {operation}", attempts, last_error)

    async def _call(self, operation: str, path: str, body: dict) -> dict:
        response = await self._post(operation, path, body)
        if response.status_code >= 400:
            raise ProviderError(f"calendar {operation}", response.status_code, response.text[:500])
        try:
            return response.json()
        except ValueError:
            return {}

    async def create_event(self, session: TrainingSession, client: Optional[Client]) -> Optional[str]:
        """Returns the new event id, or None when creation failed"""
        try:
            data = await self._call("create", "/create", build_event(session, client))
        except IntegrationError as e:
            logger.error(f"❌ Failed to create calendar event for session {session.id}: {e}")
            return None

        event_id = data.get("eventId")
        if not event_id:
            logger.error(f"❌ Calendar create for session {session.id} returned no event id")
            return None
        logger.info(f"✅ Calendar event created: {event_id}")
        return event_id

    async def update_event(self, event_id: str, session: TrainingSession, client: Optional[Client]) -> bool:
        try:
            await self._call("update", "/update", {**build_event(session, client), "eventId": event_id})
        except IntegrationError as e:
            logger.error(f"❌ Failed to update calendar event {event_id}: {e}")
            return False
        logger.info(f"✅ Calendar event updated: {event_id}")
        return True

    async def delete_event(self, event_id: str) -> None:
        """Raises IntegrationError on failure. An event the provider no longer has counts as deleted."""
        try:
            await self._call("delete", "/delete", {"eventId": event_id})
        except ProviderError as e:
            if e.status_code in (404, 410):
                logger.info(f"ℹ️ Calendar event {event_id} already gone")
                return
            raise
        logger.info(f"✅ Calendar event deleted: {event_id}")
