"""Email alias and membership status business logic"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from ...schemas import Client, EmailAlias, MembershipPayment
from ...shared.validators import normalize_email
from .repository import EmailAliasRepository

logger = logging.getLogger(__name__)


class EmailAliasService:
    """Binds secondary email addresses to one client identity"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EmailAliasRepository()

    def add_alias(self, client_id: str, email: str, is_primary: bool = False, commit: bool = True) -> EmailAlias:
        """Add an alias; adding an existing (client, email) pair returns the stored alias"""
        email = normalize_email(email)
        existing = self.repo.find_for_client(self.db, client_id, email)
        if existing is not None:
            if is_primary and not existing.is_primary:
                self.repo.set_primary_flags(self.db, client_id, email)
                if commit:
                    self.db.commit()
            return self.repo.get_by_id(self.db, existing.id)

        alias = self.repo.create(
            self.db, {"clientId": client_id, "email": email, "isPrimary": is_primary}, commit=commit
        )
        logger.info(f"✅ Added email alias {email} for client {client_id}")
        return alias

    def get_aliases_by_client_id(self, client_id: str) -> list[EmailAlias]:
        return self.repo.get_by_client_id(self.db, client_id)

    def get_all_aliases_by_client(self) -> dict[str, list[EmailAlias]]:
        grouped: dict[str, list[EmailAlias]] = {}
        for alias in self.repo.get_all(self.db):
            grouped.setdefault(alias.clientId, []).append(alias)
        for aliases in grouped.values():
            aliases.sort(key=lambda alias: not alias.isPrimary)
        return grouped

    def find_client_by_email(self, email: str) -> Optional[str]:
        """Client id owning this alias, or None"""
        matches = self.repo.find_by_email(self.db, email)
        if not matches:
            return None
        if len({alias.clientId for alias in matches}) > 1:
            logger.warning(f"⚠️ Email {normalize_email(email)} is aliased to more than one client")
        return matches[0].clientId

    def update_primary_email(self, client_id: str, new_primary_email: str) -> None:
        new_primary_email = normalize_email(new_primary_email)
        if self.repo.find_for_client(self.db, client_id, new_primary_email) is None:
            self.repo.create(
                self.db,
                {"clientId": client_id, "email": new_primary_email, "isPrimary": True},
                commit=False,
            )
        self.repo.set_primary_flags(self.db, client_id, new_primary_email)
        self.db.commit()
        logger.info(f"✅ Primary email for client {client_id} set to {new_primary_email}")

    def remove_alias(self, alias_id: str) -> bool:
        return self.repo.delete(self.db, alias_id)

    def setup_aliases_after_merge(
        self, primary_client_id: str, primary_email: Optional[str], duplicate_emails: list[str], commit: bool = True
    ) -> int:
        """
        Bind the duplicate's addresses to the primary client.

        Existing aliases are kept, so running this twice changes nothing.
        Returns the number of aliases created.
        """
        created = 0
        primary_email = normalize_email(primary_email)
        if primary_email and self.repo.find_for_client(self.db, primary_client_id, primary_email) is None:
            self.repo.create(
                self.db,
                {"clientId": primary_client_id, "email": primary_email, "isPrimary": True},
                commit=False,
            )
            created += 1

        for email in duplicate_emails:
            email = normalize_email(email)
            if not email or email == primary_email:
                continue
            if self.repo.find_for_client(self.db, primary_client_id, email) is None:
                self.repo.create(
                    self.db,
                    {"clientId": primary_client_id, "email": email, "isPrimary": False},
                    commit=False,
                )
                created += 1

        if primary_email:
            self.repo.set_primary_flags(self.db, primary_client_id, primary_email)
        if commit:
            self.db.commit()
        return created


@dataclass(frozen=True)
class MembershipStatus:
    is_active: bool
    last_payment_date: Optional[str] = None
    expiration_date: Optional[str] = None
    days_until_expiration: Optional[int] = None

    @property
    def is_expired(self) -> bool:
        return not self.is_active


class MembershipPolicy(Protocol):
    def evaluate(self, client: Client, payments: list[MembershipPayment], today: date) -> MembershipStatus: ...


def add_one_month(day: date) -> date:
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class MonthlyMembershipPolicy:
    """A membership lasts one calendar month from the most recent payment"""

    def evaluate(self, client: Client, payments: list[MembershipPayment], today: date) -> MembershipStatus:
        dated = []
        for payment in payments:
            try:
                dated.append(date.fromisoformat(payment.date))
            except ValueError:
                logger.warning(f"⚠️ Ignoring payment {payment.id} with bad date {payment.date!r}")
        if not dated:
            return MembershipStatus(is_active=False)

        last_payment = max(dated)
        expires = add_one_month(last_payment)
        return MembershipStatus(
            is_active=today <= expires,
            last_payment_date=last_payment.isoformat(),
            expiration_date=expires.isoformat(),
            days_until_expiration=(expires - today).days,
        )

