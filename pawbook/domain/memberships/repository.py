"""Membership and email alias repositories"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...gateway import ALIAS_FIELDS, MEMBERSHIP_FIELDS, row_to_alias, row_to_membership
from ...models import ClientEmailAliasModel, ClientModel, MembershipPaymentModel
from ...schemas import EmailAlias, MembershipPayment
from ...shared.repository import CrudRepository
from ...shared.validators import normalize_email


class EmailAliasRepository(CrudRepository):
    model = ClientEmailAliasModel
    fields = ALIAS_FIELDS
    to_entity = staticmethod(row_to_alias)

    @staticmethod
    def get_by_client_id(db: Session, client_id: str) -> list[EmailAlias]:
        """Primary alias first, then oldest first"""
        instances = (
            db.query(ClientEmailAliasModel)
            .filter(ClientEmailAliasModel.client_id == client_id)
            .order_by(ClientEmailAliasModel.is_primary.desc(), ClientEmailAliasModel.created_at)
            .all()
        )
        return [EmailAliasRepository._translate(instance) for instance in instances]

    @staticmethod
    def find_by_email(db: Session, email: str) -> list[EmailAlias]:
        instances = (
            db.query(ClientEmailAliasModel)
            .filter(ClientEmailAliasModel.email == normalize_email(email))
            .all()
        )
        return [EmailAliasRepository._translate(instance) for instance in instances]

    @staticmethod
    def find_for_client(db: Session, client_id: str, email: str) -> Optional[ClientEmailAliasModel]:
        return (
            db.query(ClientEmailAliasModel)
            .filter(
                ClientEmailAliasModel.client_id == client_id,
                ClientEmailAliasModel.email == normalize_email(email),
            )
            .first()
        )

    @staticmethod
    def delete_for_client(db: Session, client_id: str) -> int:
        """Remove every alias row of a client. Flushes, never commits."""
        instances = db.query(ClientEmailAliasModel).filter(ClientEmailAliasModel.client_id == client_id).all()
        for instance in instances:
            db.delete(instance)
        db.flush()
        return len(instances)

    @staticmethod
    def set_primary_flags(db: Session, client_id: str, primary_email: str) -> None:
        """Mark exactly one alias of the client as primary. Flushes, never commits."""
        primary_email = normalize_email(primary_email)
        instances = db.query(ClientEmailAliasModel).filter(ClientEmailAliasModel.client_id == client_id).all()
        for instance in instances:
            should_be_primary = instance.email == primary_email
            if instance.is_primary != should_be_primary:
                instance.is_primary = should_be_primary
        db.flush()


class MembershipRepository(CrudRepository):
    model = MembershipPaymentModel
    fields = MEMBERSHIP_FIELDS
    to_entity = staticmethod(row_to_membership)

    @staticmethod
    def find_by_emails(db: Session, emails: list[str]) -> list[MembershipPayment]:
        emails = [normalize_email(email) for email in emails if email]
        if not emails:
            return []
        instances = (
            db.query(MembershipPaymentModel)
            .filter(func.lower(MembershipPaymentModel.email).in_(emails))
            .order_by(MembershipPaymentModel.date.desc())
            .all()
        )
        return [MembershipRepository._translate(instance) for instance in instances]

    @staticmethod
    def find_by_email(db: Session, email: str) -> list[MembershipPayment]:
        return MembershipRepository.find_by_emails(db, [email])

    @staticmethod
    def get_by_client_id(db: Session, client_id: str) -> list[MembershipPayment]:
        """Payments made under the client's primary email or any of its aliases"""
        return MembershipRepository.find_by_emails(db, client_email_addresses(db, client_id))

    @staticmethod
    def reassign_email(db: Session, from_emails: list[str], to_email: str) -> int:
        """Re-key payments onto ``to_email``. Flushes, never commits."""
        emails = [normalize_email(email) for email in from_emails if email]
        target = normalize_email(to_email)
        if not emails or not target:
            return 0
        instances = (
            db.query(MembershipPaymentModel)
            .filter(func.lower(MembershipPaymentModel.email).in_(emails))
            .all()
        )
        moved = 0
        for instance in instances:
            if normalize_email(instance.email) != target:
                instance.email = to_email
                moved += 1
        db.flush()
        return moved


def client_email_addresses(db: Session, client_id: str) -> list[str]:
    """Primary email plus alias emails for a client, lower-cased and de-duplicated"""
    emails = []
    client = db.query(ClientModel).filter(ClientModel.id == client_id).first()
    candidates = [client.email] if client else []
    candidates += [
        alias.email
        for alias in db.query(ClientEmailAliasModel).filter(ClientEmailAliasModel.client_id == client_id).all()
    ]
    for email in candidates:
        email = normalize_email(email)
        if email and email not in emails:
            emails.append(email)
    return emails
