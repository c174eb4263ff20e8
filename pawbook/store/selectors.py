"""Read-side helpers over EntityState"""

from typing import Optional

from ..schemas import Client, MembershipPayment, TrainingSession
from ..shared.validators import normalize_email
from .reducer import EntityState


def get_client(state: EntityState, client_id: Optional[str]) -> Optional[Client]:
    if not client_id:
        return None
    return next((client for client in state.clients if client.id == client_id), None)


def get_session(state: EntityState, session_id: str) -> Optional[TrainingSession]:
    return next((session for session in state.sessions if session.id == session_id), None)


def client_emails(state: EntityState, client_id: Optional[str]) -> list[str]:
    """Primary email followed by alias emails, lower-cased and de-duplicated"""
    client = get_client(state, client_id)
    if client is None:
        return []

    emails = []
    candidates = [client.email] + [alias.email for alias in state.email_aliases.get(client.id, ())]
    for email in candidates:
        email = normalize_email(email)
        if email and email not in emails:
            emails.append(email)
    return emails


def payments_for_client(state: EntityState, client_id: str) -> list[MembershipPayment]:
    emails = set(client_emails(state, client_id))
    return [payment for payment in state.memberships if normalize_email(payment.email) in emails]


def has_signed_booking_terms(state: EntityState, client_id: Optional[str]) -> bool:
    emails = set(client_emails(state, client_id))
    if not emails:
        return False
    return any(normalize_email(terms.email) in emails for terms in state.booking_terms)


def has_filled_questionnaire(state: EntityState, client_id: Optional[str]) -> bool:
    if not client_id:
        return False
    return any(q.clientId == client_id for q in state.behaviour_questionnaires)
