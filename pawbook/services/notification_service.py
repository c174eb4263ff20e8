"""
Outbound notification webhooks
Booking-terms notices and session-created notices, each validated before sending
and guarded by the duplicate-call suppressor
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import quote as url_quote

import httpx
import pydantic
from pydantic import BaseModel, Field, field_validator

from ..config import (
    BOOKING_TERMS_URL,
    BOOKING_TERMS_WEBHOOK_URL,
    SESSION_WEBHOOK_URL,
    WEBHOOK_TIMEOUT_SECONDS,
)
from ..errors import ValidationError
from ..schemas import Client, SessionType, TrainingSession
from ..shared.validators import validate_booking_time, validate_email, validate_iso_date
from .webhook_suppressor import BOOKING_TERMS, SESSION_CREATED, WebhookSuppressor

logger = logging.getLogger(__name__)


class SessionNotice(BaseModel):
    """Fields every session notification carries"""

    sessionId: str = Field(min_length=1)
    clientId: Optional[str] = None
    clientFirstName: str = ""
    clientEmail: str
    dogName: str = ""
    sessionType: SessionType
    bookingDate: str
    bookingTime: str
    notes: str = ""
    quote: float = Field(ge=0)
    eventId: Optional[str] = None
    hasSignedBookingTerms: bool = False
    hasFilledQuestionnaire: bool = False

    @field_validator("sessionId")
    @classmethod
    def check_session_id(cls, v):
        if not v.strip():
            raise ValueError("sessionId must not be blank")
        return v

    @field_validator("clientEmail")
    @classmethod
    def check_email(cls, v):
        if not v:
            raise ValueError("clientEmail is required")
        return validate_email(v)

    @field_validator("bookingDate")
    @classmethod
    def check_date(cls, v):
        return validate_iso_date(v)

    @field_validator("bookingTime")
    @classmethod
    def check_time(cls, v):
        return validate_booking_time(v)


class BookingTermsNotice(SessionNotice):
    bookingTermsUrl: str
    updatedAt: str


class SessionCreatedNotice(SessionNotice):
    clientName: str = ""
    isMember: bool = False
    # The receiver owns first creation of the calendar event
    createCalendarEvent: bool = True
    contentItems: List[str]
    createdAt: str

    @field_validator("contentItems")
    @classmethod
    def check_content(cls, v):
        items = [item.strip() for item in v if item and item.strip()]
        if not items:
            raise ValueError("at least one content item is required")
        return items


def validate_payload(kind: str, model: type[BaseModel], data: dict) -> BaseModel:
    """Raises ValidationError listing every failing field"""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        reasons = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError(kind, reasons)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def session_content_items(session: TrainingSession, dog_name: str) -> list[str]:
    items = [f"{session.sessionType.value} session" + (f" for {dog_name}" if dog_name else "")]
    items.append(f"{session.bookingDate} at {session.bookingTime}")
    if session.quote:
        items.append(f"Quote: £{session.quote:g}")
    if session.notes:
        items.append(session.notes)
    return items


class NotificationService:
    def __init__(
        self,
        http: httpx.AsyncClient,
        suppressor: WebhookSuppressor,
        booking_terms_webhook_url: Optional[str] = BOOKING_TERMS_WEBHOOK_URL,
        session_webhook_url: Optional[str] = SESSION_WEBHOOK_URL,
        booking_terms_url: str = BOOKING_TERMS_URL,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
    ):
        self.http = http
        self.suppressor = suppressor
        self.booking_terms_webhook_url = booking_terms_webhook_url
        self.session_webhook_url = session_webhook_url
        self.booking_terms_url = booking_terms_url
        self.timeout = timeout

    def _base_payload(self, session: TrainingSession, client: Optional[Client], flags: dict) -> dict:
        return {
            "sessionId": session.id,
            "clientId": session.clientId,
            "clientFirstName": client.firstName if client else "",
            "clientEmail": (client.email if client else None) or session.email or "",
            "dogName": session.dogName or (client.dogName if client else None) or "",
            "sessionType": session.sessionType,
            "bookingDate": session.bookingDate,
            "bookingTime": session.bookingTime,
            "notes": session.notes or "",
            "quote": session.quote,
            "eventId": session.eventId,
            "hasSignedBookingTerms": flags.get("hasSignedBookingTerms", False),
            "hasFilledQuestionnaire": flags.get("hasFilledQuestionnaire", False),
        }

    async def notify_booking_terms(
        self,
        session: TrainingSession,
        client: Optional[Client],
        has_signed_booking_terms: bool = False,
        has_filled_questionnaire: bool = False,
    ) -> bool:
        data = self._base_payload(
            session,
            client,
            {"hasSignedBookingTerms": has_signed_booking_terms, "hasFilledQuestionnaire": has_filled_questionnaire},
        )
        email = (data["clientEmail"] or "").strip().lower()
        data["bookingTermsUrl"] = f"{self.booking_terms_url}?email={url_quote(email)}&update=true"
        data["updatedAt"] = _now_iso()
        return await self._send(BOOKING_TERMS, session.id, self.booking_terms_webhook_url, BookingTermsNotice, data)

    async def notify_session_created(
        self,
        session: TrainingSession,
        client: Optional[Client],
        has_signed_booking_terms: bool = False,
        has_filled_questionnaire: bool = False,
    ) -> bool:
        data = self._base_payload(
            session,
            client,
            {"hasSignedBookingTerms": has_signed_booking_terms, "hasFilledQuestionnaire": has_filled_questionnaire},
        )
        data.update(
            {
                "clientName": client.full_name if client else "",
                "isMember": bool(client and client.membership),
                "createCalendarEvent": True,
                "contentItems": session_content_items(session, data["dogName"]),
                "createdAt": _now_iso(),
            }
        )
        return await self._send(SESSION_CREATED, session.id, self.session_webhook_url, SessionCreatedNotice, data)

    async def _send(self, kind: str, entity_id: str, url: Optional[str], model: type[BaseModel], data: dict) -> bool:
        """Validate, claim the suppression key, then POST. Never raises."""
        if not url:
            logger.info(f"ℹ️ {kind} webhook not configured, skipping notice for {entity_id}")
            return False

        try:
            payload = validate_payload(kind, model, data)
        except ValidationError as e:
            logger.warning(f"⚠️ Dropped {kind} webhook for {entity_id}: {'; '.join(e.reasons)}")
            return False

        if not self.suppressor.should_send(entity_id, kind):
            return False

        try:
            logger.info(f"📤 Sending {kind} webhook for {entity_id}")
            response = await self.http.post(url, json=payload.model_dump(mode="json"), timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"❌ {kind} webhook for {entity_id} failed: {e!r}")
            return False

        if response.status_code >= 400:
            logger.error(f"❌ {kind} webhook for {entity_id} rejected: {response.status_code} {response.text[:200]}")
            return False

        logger.info(f"✅ {kind} webhook sent for {entity_id}")
        return True
