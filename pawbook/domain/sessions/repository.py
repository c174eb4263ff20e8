"""Session repository - Database operations for bookable sessions"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...gateway import SESSION_FIELDS, row_to_session
from ...models import SessionModel
from ...schemas import TrainingSession
from ...shared.repository import CrudRepository
from ...shared.validators import normalize_email


class SessionRepository(CrudRepository):
    """Repository for session database operations"""

    model = SessionModel
    fields = SESSION_FIELDS
    to_entity = staticmethod(row_to_session)

    @staticmethod
    def get_by_client_id(db: Session, client_id: str) -> list[TrainingSession]:
        instances = (
            db.query(SessionModel)
            .filter(SessionModel.client_id == client_id)
            .order_by(SessionModel.booking_date, SessionModel.booking_time)
            .all()
        )
        return [SessionRepository._translate(instance) for instance in instances]

    @staticmethod
    def find_by_email(db: Session, email: str) -> list[TrainingSession]:
        email = normalize_email(email)
        if not email:
            return []
        instances = db.query(SessionModel).filter(func.lower(SessionModel.email) == email).all()
        return [SessionRepository._translate(instance) for instance in instances]

    @staticmethod
    def reassign_client(db: Session, from_client_id: str, to_client_id: str) -> int:
        """Point every session of one client at another. Flushes, never commits."""
        instances = db.query(SessionModel).filter(SessionModel.client_id == from_client_id).all()
        for instance in instances:
            instance.client_id = to_client_id
        db.flush()
        return len(instances)
