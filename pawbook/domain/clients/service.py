"""Client service - Business logic for client operations"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import ClientNotFound
from ...schemas import Client
from ...store.actions import Action, ActionType
from ...store.entity_store import EntityStore
from ..memberships.repository import MembershipRepository
from ..memberships.service import EmailAliasService, MembershipPolicy, MonthlyMembershipPolicy
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session, store: Optional[EntityStore] = None, policy: Optional[MembershipPolicy] = None):
        self.db = db
        self.store = store
        self.policy = policy or MonthlyMembershipPolicy()
        self.repo = ClientRepository()

    def _dispatch(self, action: Action):
        if self.store is not None:
            self.store.dispatch(action)

    def get_client(self, client_id: str) -> Client:
        client = self.repo.get_by_id(self.db, client_id)
        if client is None:
            raise ClientNotFound(client_id)
        return client

    def create_client(self, data: ClientCreate) -> Client:
        logger.info(f"📥 Creating client {data.firstName} {data.lastName}")
        client = self.repo.create(self.db, data.model_dump(exclude_none=True))
        if client.email:
            EmailAliasService(self.db).add_alias(client.id, client.email, is_primary=True)
        self._dispatch(Action(ActionType.ADD_CLIENT, client))
        return client

    def update_client(self, client_id: str, data: ClientUpdate) -> Client:
        changes = data.model_dump(exclude_unset=True)
        client = self.repo.update(self.db, client_id, changes)
        if client is None:
            raise ClientNotFound(client_id)
        if "email" in changes and client.email:
            EmailAliasService(self.db).update_primary_email(client.id, client.email)
        self._dispatch(Action(ActionType.UPDATE_CLIENT, client))
        return client

    def delete_client(self, client_id: str) -> None:
        if not self.repo.delete(self.db, client_id):
            raise ClientNotFound(client_id)
        logger.info(f"🗑️ Deleted client {client_id}")
        self._dispatch(Action(ActionType.DELETE_CLIENT, client_id))

    def refresh_membership(self, client_id: str, today: Optional[date] = None) -> Client:
        """Re-evaluate the membership flag from payment history; writes only on change"""
        client = self.get_client(client_id)
        payments = MembershipRepository.get_by_client_id(self.db, client_id)
        status = self.policy.evaluate(client, payments, today or date.today())

        if client.membership == status.is_active:
            return client

        logger.info(
            f"🔄 Membership for {client.full_name} {client.membership} → {status.is_active} "
            f"(last payment {status.last_payment_date})"
        )
        return self.update_client(client_id, ClientUpdate(membership=status.is_active))
