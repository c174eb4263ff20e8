"""Translation between wire rows and in-memory entities.

Rows are flat snake_case dicts as stored in the relational tables. This module is
the only place that knows the column names; repositories and the change feed
subscriber both go through it.
"""

from typing import Any, Optional

from sqlalchemy import inspect

from .schemas import (
    BehaviouralBrief,
    BehaviourQuestionnaire,
    BookingTerms,
    Client,
    EmailAlias,
    MembershipPayment,
    TrainingSession,
)
from .shared.validators import normalize_booking_time

CLIENT_FIELDS = {
    "id": "id",
    "firstName": "first_name",
    "lastName": "last_name",
    "dogName": "dog_name",
    "otherDogs": "other_dogs",
    "phone": "phone",
    "email": "email",
    "address": "address",
    "active": "active",
    "membership": "membership",
    "avatar": "avatar",
    "behaviouralBriefId": "behavioural_brief_id",
    "behaviourQuestionnaireId": "behaviour_questionnaire_id",
    "bookingTermsSigned": "booking_terms_signed",
    "bookingTermsSignedDate": "booking_terms_signed_date",
}

SESSION_FIELDS = {
    "id": "id",
    "clientId": "client_id",
    "dogName": "dog_name",
    "sessionType": "session_type",
    "bookingDate": "booking_date",
    "bookingTime": "booking_time",
    "notes": "notes",
    "quote": "quote",
    "email": "email",
    "sessionPaid": "session_paid",
    "paymentConfirmedAt": "payment_confirmed_at",
    "sessionPlanSent": "session_plan_sent",
    "questionnaireBypass": "questionnaire_bypass",
    "eventId": "event_id",
    "googleMeetLink": "google_meet_link",
}

ALIAS_FIELDS = {
    "id": "id",
    "clientId": "client_id",
    "email": "email",
    "isPrimary": "is_primary",
    "createdAt": "created_at",
}

MEMBERSHIP_FIELDS = {
    "id": "id",
    "email": "email",
    "date": "date",
    "amount": "amount",
}

BRIEF_FIELDS = {
    "id": "id",
    "clientId": "client_id",
    "ownerFirstName": "owner_first_name",
    "ownerLastName": "owner_last_name",
    "email": "email",
    "contactNumber": "contact_number",
    "postcode": "postcode",
    "dogName": "dog_name",
    "sex": "sex",
    "breed": "breed",
    "lifeWithDog": "life_with_dog",
    "bestOutcome": "best_outcome",
    "sessionType": "session_type",
    "submittedAt": "submitted_at",
}

QUESTIONNAIRE_FIELDS = {
    "id": "id",
    "clientId": "client_id",
    "ownerFirstName": "owner_first_name",
    "ownerLastName": "owner_last_name",
    "email": "email",
    "contactNumber": "contact_number",
    "dogName": "dog_name",
    "age": "age",
    "breed": "breed",
    "mainHelp": "main_help",
    "medicalHistory": "medical_history",
    "anythingElse": "anything_else",
    "submittedAt": "submitted_at",
}

BOOKING_TERMS_FIELDS = {
    "id": "id",
    "email": "email",
    "submitted": "submitted",
}


def model_to_row(instance) -> dict:
    """Flatten an ORM instance into a wire row (column name -> value)"""
    return {attr.key: attr.value for attr in inspect(instance).attrs}


def changes_to_row(fields: dict[str, str], changes: dict[str, Any]) -> dict:
    """Translate a partial camelCase update into column names, ignoring unknown keys"""
    row = {}
    for key, value in changes.items():
        column = fields.get(key)
        if column is None or column == "id":
            continue
        if hasattr(value, "value"):  # enums travel as their string value
            value = value.value
        row[column] = value
    return row


def _pick(row: dict, fields: dict[str, str]) -> dict:
    return {attr: row.get(column) for attr, column in fields.items() if row.get(column) is not None}


def _stringify(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def row_to_client(row: dict) -> Client:
    data = _pick(row, CLIENT_FIELDS)
    data["otherDogs"] = [dog for dog in (row.get("other_dogs") or []) if dog]
    return Client(**data)


def row_to_session(row: dict) -> TrainingSession:
    data = _pick(row, SESSION_FIELDS)
    data["bookingTime"] = normalize_booking_time(row.get("booking_time")) or ""
    data["bookingDate"] = _stringify(row.get("booking_date")) or ""
    return TrainingSession(**data)


def row_to_alias(row: dict) -> EmailAlias:
    data = _pick(row, ALIAS_FIELDS)
    data["createdAt"] = _stringify(row.get("created_at"))
    return EmailAlias(**data)


def row_to_membership(row: dict) -> MembershipPayment:
    return MembershipPayment(**_pick(row, MEMBERSHIP_FIELDS))


def row_to_brief(row: dict) -> BehaviouralBrief:
    return BehaviouralBrief(**_pick(row, BRIEF_FIELDS))


def row_to_questionnaire(row: dict) -> BehaviourQuestionnaire:
    return BehaviourQuestionnaire(**_pick(row, QUESTIONNAIRE_FIELDS))


def row_to_booking_terms(row: dict) -> BookingTerms:
    return BookingTerms(**_pick(row, BOOKING_TERMS_FIELDS))
