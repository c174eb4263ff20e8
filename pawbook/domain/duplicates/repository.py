"""Dismissed duplicate repository"""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ...models import DismissedDuplicateModel


class DismissedDuplicateRepository:
    @staticmethod
    def get_all_ids(db: Session) -> list[str]:
        rows = db.query(DismissedDuplicateModel.duplicate_id).order_by(DismissedDuplicateModel.dismissed_at.desc()).all()
        return [row.duplicate_id for row in rows]

    @staticmethod
    def is_dismissed(db: Session, duplicate_id: str) -> bool:
        return (
            db.query(DismissedDuplicateModel.id)
            .filter(DismissedDuplicateModel.duplicate_id == duplicate_id)
            .first()
            is not None
        )

    @staticmethod
    def dismiss(db: Session, duplicate_id: str) -> bool:
        """Record a dismissal. Returns False if it was already recorded."""
        if DismissedDuplicateRepository.is_dismissed(db, duplicate_id):
            return False
        db.add(
            DismissedDuplicateModel(
                duplicate_id=duplicate_id, dismissed_at=datetime.now(timezone.utc).isoformat()
            )
        )
        db.commit()
        return True

    @staticmethod
    def restore(db: Session, duplicate_id: str) -> bool:
        deleted = (
            db.query(DismissedDuplicateModel)
            .filter(DismissedDuplicateModel.duplicate_id == duplicate_id)
            .delete()
        )
        db.commit()
        return deleted > 0
