"""
Session calendar callback
The calendar webhook receiver reports the event id back here once it has created the event
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import WEBHOOK_CALLBACK_API_KEY
from ..context import PracticeContext
from ..database import get_db
from ..domain.sessions.repository import SessionRepository
from ..errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])


class EventIdCallback(BaseModel):
    sessionId: Optional[str] = None
    eventId: Optional[str] = None
    googleMeetLink: Optional[str] = None


def get_context(request: Request) -> PracticeContext:
    return request.app.state.context


def verify_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    if not WEBHOOK_CALLBACK_API_KEY:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, WEBHOOK_CALLBACK_API_KEY):
        logger.warning("⚠️ Rejected event id callback with a missing or wrong API key")
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.post("/session/event-id", dependencies=[Depends(verify_api_key)])
async def store_session_event_id(
    payload: EventIdCallback, context: PracticeContext = Depends(get_context)
):
    """Store the calendar event id (and Meet link) on a session without firing any integration"""
    if not payload.sessionId or not payload.eventId:
        raise HTTPException(status_code=400, detail="Missing sessionId or eventId")

    try:
        session = await context.sessions.apply_calendar_event_id(
            payload.sessionId, payload.eventId, payload.googleMeetLink
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "sessionId": session.id, "eventId": session.eventId}


@router.get("/session/event-id")
async def get_session_event_id(
    session_id: Optional[str] = Query(default=None, alias="sessionId"), db: Session = Depends(get_db)
):
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId parameter")

    session = SessionRepository.get_by_id(db, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return {"sessionId": session.id, "eventId": session.eventId, "hasEventId": bool(session.eventId)}


@router.get("/health")
async def health():
    return {"status": "healthy"}
