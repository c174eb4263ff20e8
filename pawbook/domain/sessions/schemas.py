"""Session domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...schemas import CLIENTLESS_SESSION_TYPES, SessionType
from ...shared.validators import validate_booking_time, validate_iso_date


class SessionCreate(BaseModel):
    """Schema for booking a new session"""

    clientId: Optional[str] = None
    dogName: Optional[str] = None
    sessionType: SessionType
    bookingDate: str
    bookingTime: str
    notes: Optional[str] = None
    quote: float = Field(default=0, ge=0)
    email: Optional[str] = None
    sessionPaid: bool = False
    questionnaireBypass: bool = False

    @field_validator("bookingDate")
    @classmethod
    def check_date(cls, v):
        return validate_iso_date(v)

    @field_validator("bookingTime")
    @classmethod
    def check_time(cls, v):
        return validate_booking_time(v)

    @model_validator(mode="after")
    def check_client(self):
        if not self.clientId and self.sessionType not in CLIENTLESS_SESSION_TYPES:
            raise ValueError(f"{self.sessionType.value} sessions need a client")
        return self


class SessionUpdate(BaseModel):
    """Partial update. Only keys the caller actually passed are written."""

    clientId: Optional[str] = None
    dogName: Optional[str] = None
    sessionType: Optional[SessionType] = None
    bookingDate: Optional[str] = None
    bookingTime: Optional[str] = None
    notes: Optional[str] = None
    quote: Optional[float] = Field(default=None, ge=0)
    email: Optional[str] = None
    sessionPaid: Optional[bool] = None
    paymentConfirmedAt: Optional[str] = None
    sessionPlanSent: Optional[bool] = None
    questionnaireBypass: Optional[bool] = None
    eventId: Optional[str] = None
    googleMeetLink: Optional[str] = None

    # Omitted keys are left alone; an explicit None would null a required column
    @field_validator("sessionType", "quote")
    @classmethod
    def check_not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v

    @field_validator("bookingDate")
    @classmethod
    def check_date(cls, v):
        if v is None:
            raise ValueError("bookingDate cannot be cleared")
        return validate_iso_date(v)

    @field_validator("bookingTime")
    @classmethod
    def check_time(cls, v):
        if v is None:
            raise ValueError("bookingTime cannot be cleared")
        return validate_booking_time(v)
