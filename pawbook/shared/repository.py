"""Shared CRUD plumbing for the per-entity repositories.

Every method takes the SQLAlchemy session explicitly and returns in-memory
entities. Write methods accept ``commit=False`` so several writes can share one
transaction; in that case the caller commits (or rolls back).
"""

from typing import Any, Callable, ClassVar, Optional

from sqlalchemy.orm import Session

from ..gateway import changes_to_row, model_to_row
from ..models import generate_id


class CrudRepository:
    model: ClassVar[type]
    fields: ClassVar[dict[str, str]]
    to_entity: ClassVar[Callable[[dict], Any]]

    @classmethod
    def _translate(cls, instance):
        return cls.to_entity(model_to_row(instance))

    @classmethod
    def _get_model(cls, db: Session, entity_id: str):
        return db.query(cls.model).filter(cls.model.id == entity_id).first()

    @classmethod
    def _finish(cls, db: Session, instance, commit: bool):
        if commit:
            db.commit()
            db.refresh(instance)
        else:
            db.flush()
        return cls._translate(instance)

    @classmethod
    def get_all(cls, db: Session) -> list:
        return [cls._translate(instance) for instance in db.query(cls.model).all()]

    @classmethod
    def get_by_id(cls, db: Session, entity_id: str) -> Optional[Any]:
        instance = cls._get_model(db, entity_id)
        return cls._translate(instance) if instance else None

    @classmethod
    def create(cls, db: Session, data: dict, commit: bool = True):
        """Insert from camelCase fields; a missing id is generated"""
        row = changes_to_row(cls.fields, data)
        instance = cls.model(id=data.get("id") or generate_id(), **row)
        db.add(instance)
        return cls._finish(db, instance, commit)

    @classmethod
    def update(cls, db: Session, entity_id: str, changes: dict, commit: bool = True) -> Optional[Any]:
        """Apply camelCase changes; returns the canonical record or None when absent"""
        instance = cls._get_model(db, entity_id)
        if instance is None:
            return None
        for column, value in changes_to_row(cls.fields, changes).items():
            setattr(instance, column, value)
        return cls._finish(db, instance, commit)

    @classmethod
    def delete(cls, db: Session, entity_id: str, commit: bool = True) -> bool:
        instance = cls._get_model(db, entity_id)
        if instance is None:
            return False
        db.delete(instance)
        if commit:
            db.commit()
        else:
            db.flush()
        return True
