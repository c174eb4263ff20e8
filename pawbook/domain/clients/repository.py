"""Client repository - Database operations for clients"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...gateway import CLIENT_FIELDS, row_to_client
from ...models import ClientModel
from ...schemas import Client
from ...shared.repository import CrudRepository
from ...shared.validators import normalize_email


class ClientRepository(CrudRepository):
    """Repository for client database operations"""

    model = ClientModel
    fields = CLIENT_FIELDS
    to_entity = staticmethod(row_to_client)

    @staticmethod
    def find_by_email(db: Session, email: str) -> list[Client]:
        """Clients whose primary email matches, case-insensitively"""
        email = normalize_email(email)
        if not email:
            return []
        instances = db.query(ClientModel).filter(func.lower(ClientModel.email) == email).all()
        return [ClientRepository._translate(instance) for instance in instances]
