"""Intake form repositories - behavioural briefs, questionnaires and booking terms"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...gateway import (
    BOOKING_TERMS_FIELDS,
    BRIEF_FIELDS,
    QUESTIONNAIRE_FIELDS,
    row_to_booking_terms,
    row_to_brief,
    row_to_questionnaire,
)
from ...models import BehaviouralBriefModel, BehaviourQuestionnaireModel, BookingTermsModel
from ...shared.repository import CrudRepository
from ...shared.validators import normalize_email


class _ClientOwnedFormRepository(CrudRepository):
    @classmethod
    def get_by_client_id(cls, db: Session, client_id: str) -> list:
        instances = db.query(cls.model).filter(cls.model.client_id == client_id).all()
        return [cls._translate(instance) for instance in instances]

    @classmethod
    def find_by_email(cls, db: Session, email: str) -> list:
        email = normalize_email(email)
        if not email:
            return []
        instances = db.query(cls.model).filter(func.lower(cls.model.email) == email).all()
        return [cls._translate(instance) for instance in instances]

    @classmethod
    def reassign_client(cls, db: Session, from_client_id: str, to_client_id: str) -> int:
        """Move every form owned by one client to another. Flushes, never commits."""
        instances = db.query(cls.model).filter(cls.model.client_id == from_client_id).all()
        for instance in instances:
            instance.client_id = to_client_id
        db.flush()
        return len(instances)


class BehaviouralBriefRepository(_ClientOwnedFormRepository):
    model = BehaviouralBriefModel
    fields = BRIEF_FIELDS
    to_entity = staticmethod(row_to_brief)


class BehaviourQuestionnaireRepository(_ClientOwnedFormRepository):
    model = BehaviourQuestionnaireModel
    fields = QUESTIONNAIRE_FIELDS
    to_entity = staticmethod(row_to_questionnaire)


class BookingTermsRepository(CrudRepository):
    """Booking terms are keyed by email only; they have no client reference"""

    model = BookingTermsModel
    fields = BOOKING_TERMS_FIELDS
    to_entity = staticmethod(row_to_booking_terms)

    @staticmethod
    def find_by_emails(db: Session, emails: list[str]) -> list:
        emails = [normalize_email(email) for email in emails if email]
        if not emails:
            return []
        instances = db.query(BookingTermsModel).filter(func.lower(BookingTermsModel.email).in_(emails)).all()
        return [BookingTermsRepository._translate(instance) for instance in instances]

    @staticmethod
    def reassign_email(db: Session, from_emails: list[str], to_email: str) -> int:
        emails = [normalize_email(email) for email in from_emails if email]
        if not emails:
            return 0
        instances = db.query(BookingTermsModel).filter(func.lower(BookingTermsModel.email).in_(emails)).all()
        moved = 0
        for instance in instances:
            if normalize_email(instance.email) != normalize_email(to_email):
                instance.email = to_email
                moved += 1
        db.flush()
        return moved
