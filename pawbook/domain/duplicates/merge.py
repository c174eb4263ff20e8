"""
Client merge service
Folds a duplicate client into its primary record in one database transaction
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session, sessionmaker

from ...errors import ClientNotFound
from ...schemas import Client
from ...store.actions import Action, ActionType
from ...store.entity_store import EntityStore
from ...shared.validators import normalize_email
from ..clients.repository import ClientRepository
from ..forms.repository import (
    BehaviouralBriefRepository,
    BehaviourQuestionnaireRepository,
    BookingTermsRepository,
)
from ..memberships.repository import EmailAliasRepository, MembershipRepository, client_email_addresses
from ..memberships.service import EmailAliasService
from ..sessions.repository import SessionRepository
from .schemas import FormsToTransfer, MergeConflict, MergePreview, MergeResult
from .service import pair_id

logger = logging.getLogger(__name__)

MERGE_FIELDS = ("firstName", "lastName", "email", "phone", "address", "dogName", "otherDogs")
FORM_REFERENCE_FIELDS = ("behaviouralBriefId", "behaviourQuestionnaireId")
FLAG_FIELDS = ("active", "membership")


def _has_value(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def choose_better_value(primary_value: Any, duplicate_value: Any) -> Any:
    """Prefer the longer string or the longer list; ties keep the primary's value"""
    if isinstance(primary_value, (str, list)) and isinstance(duplicate_value, type(primary_value)):
        return duplicate_value if len(duplicate_value) > len(primary_value) else primary_value
    return primary_value


def merge_client_fields(primary: Client, duplicate: Client) -> tuple[dict, list[MergeConflict]]:
    """Per-field merge. Returns (fields to write onto the primary, conflicts)."""
    merged: dict[str, Any] = {}
    conflicts: list[MergeConflict] = []

    for field in MERGE_FIELDS:
        primary_value = getattr(primary, field)
        duplicate_value = getattr(duplicate, field)
        if _has_value(primary_value) and _has_value(duplicate_value):
            if primary_value != duplicate_value:
                suggested = choose_better_value(primary_value, duplicate_value)
                conflicts.append(
                    MergeConflict(
                        field=field,
                        primaryValue=primary_value,
                        duplicateValue=duplicate_value,
                        suggestedValue=suggested,
                    )
                )
                merged[field] = suggested
        elif _has_value(duplicate_value):
            merged[field] = duplicate_value

    for field in FORM_REFERENCE_FIELDS:
        if not getattr(primary, field) and getattr(duplicate, field):
            merged[field] = getattr(duplicate, field)

    for field in FLAG_FIELDS:
        merged[field] = getattr(primary, field) or getattr(duplicate, field)

    return merged, conflicts


class ClientMergeService:
    def __init__(self, session_factory: sessionmaker, store: Optional[EntityStore] = None):
        self.session_factory = session_factory
        self.store = store

    @staticmethod
    def _load_pair(db: Session, primary_id: str, duplicate_id: str) -> tuple[Client, Client]:
        primary = ClientRepository.get_by_id(db, primary_id)
        if primary is None:
            raise ClientNotFound(primary_id)
        duplicate = ClientRepository.get_by_id(db, duplicate_id)
        if duplicate is None:
            raise ClientNotFound(duplicate_id)
        return primary, duplicate

    @staticmethod
    def _duplicate_emails(db: Session, duplicate: Client, primary_email: str) -> list[str]:
        return [email for email in client_email_addresses(db, duplicate.id) if email != primary_email]

    def _build_preview(self, db: Session, primary: Client, duplicate: Client) -> MergePreview:
        merged, conflicts = merge_client_fields(primary, duplicate)
        duplicate_emails = client_email_addresses(db, duplicate.id)
        return MergePreview(
            primaryClient=primary,
            duplicateClient=duplicate,
            mergedFields=merged,
            conflicts=conflicts,
            sessionsToTransfer=SessionRepository.get_by_client_id(db, duplicate.id),
            formsToTransfer=FormsToTransfer(
                behaviouralBriefs=BehaviouralBriefRepository.get_by_client_id(db, duplicate.id),
                behaviourQuestionnaires=BehaviourQuestionnaireRepository.get_by_client_id(db, duplicate.id),
                bookingTerms=BookingTermsRepository.find_by_emails(db, duplicate_emails),
            ),
            membershipsToTransfer=MembershipRepository.find_by_emails(db, duplicate_emails),
        )

    def generate_preview(self, primary_id: str, duplicate_id: str) -> MergePreview:
        if primary_id == duplicate_id:
            raise ValueError(f"Cannot merge client {primary_id} into itself")
        with self.session_factory() as db:
            primary, duplicate = self._load_pair(db, primary_id, duplicate_id)
            return self._build_preview(db, primary, duplicate)

    def merge(self, primary_id: str, duplicate_id: str, choices: Optional[dict] = None) -> MergeResult:
        """
        Run the merge steps in order inside one transaction:

            1. write the resolved fields onto the primary
            2. move the duplicate's sessions
            3. move its intake forms and re-key its booking terms
            4. re-key its membership payments onto the primary's email
            5. register its email addresses as aliases of the primary
            6. delete the duplicate

        Any failure rolls the whole transaction back. Every step is safe to
        repeat, so retrying a failed merge converges.
        """
        if primary_id == duplicate_id:
            logger.warning(f"⚠️ Refusing to merge client {primary_id} into itself")
            return MergeResult(success=False, error="Cannot merge a client into itself")

        with self.session_factory() as db:
            primary = ClientRepository.get_by_id(db, primary_id)
            if primary is not None and ClientRepository.get_by_id(db, duplicate_id) is None:
                logger.info(f"ℹ️ Client {duplicate_id} already merged into {primary_id}")
                return MergeResult(success=True, mergedClient=primary)

            try:
                primary, duplicate = self._load_pair(db, primary_id, duplicate_id)
                preview = self._build_preview(db, primary, duplicate)

                resolved = {**preview.mergedFields}
                for field, value in (choices or {}).items():
                    if field in MERGE_FIELDS + FORM_REFERENCE_FIELDS + FLAG_FIELDS:
                        resolved[field] = value

                # Addresses the primary answered to before its email may change
                previous_primary_emails = client_email_addresses(db, primary_id)

                logger.info(f"🔀 Merging client {duplicate_id} into {primary_id}")
                merged_client = ClientRepository.update(db, primary_id, resolved, commit=False)

                transferred_sessions = SessionRepository.reassign_client(db, duplicate_id, primary_id)

                transferred_forms = BehaviouralBriefRepository.reassign_client(db, duplicate_id, primary_id)
                transferred_forms += BehaviourQuestionnaireRepository.reassign_client(db, duplicate_id, primary_id)

                primary_email = normalize_email(merged_client.email)
                duplicate_emails = self._duplicate_emails(db, duplicate, primary_email)
                former_emails = [email for email in previous_primary_emails if email != primary_email]
                transferred_memberships = 0
                if primary_email:
                    transferred_forms += BookingTermsRepository.reassign_email(db, duplicate_emails, primary_email)
                    transferred_memberships = MembershipRepository.reassign_email(
                        db, duplicate_emails, primary_email
                    )

                aliases_created = EmailAliasService(db).setup_aliases_after_merge(
                    primary_id, primary_email, former_emails + duplicate_emails, commit=False
                )
                EmailAliasRepository.delete_for_client(db, duplicate_id)

                ClientRepository.delete(db, duplicate_id, commit=False)
                db.commit()
            except Exception as e:
                db.rollback()
                logger.error(f"❌ Merge of {duplicate_id} into {primary_id} failed and was rolled back: {e}")
                return MergeResult(success=False, mergedClient=primary, error=str(e))

            merged_client = ClientRepository.get_by_id(db, primary_id)
            logger.info(
                f"✅ Merge complete: {transferred_sessions} sessions, {transferred_forms} forms, "
                f"{transferred_memberships} memberships, {aliases_created} aliases"
            )
            self._reflect(db, merged_client, duplicate_id)

        return MergeResult(
            success=True,
            mergedClient=merged_client,
            transferredSessions=transferred_sessions,
            transferredForms=transferred_forms,
            transferredMemberships=transferred_memberships,
            aliasesCreated=aliases_created,
        )

    def _reflect(self, db: Session, merged_client: Client, duplicate_id: str) -> None:
        """Re-read everything the merge touched into the store"""
        if self.store is None:
            return
        dispatch = self.store.dispatch
        dispatch(Action(ActionType.UPDATE_CLIENT, merged_client))
        dispatch(Action(ActionType.DELETE_CLIENT, duplicate_id))
        for session in SessionRepository.get_by_client_id(db, merged_client.id):
            dispatch(Action(ActionType.UPDATE_SESSION, session))
        dispatch(Action(ActionType.SET_BEHAVIOURAL_BRIEFS, BehaviouralBriefRepository.get_all(db)))
        dispatch(Action(ActionType.SET_BEHAVIOUR_QUESTIONNAIRES, BehaviourQuestionnaireRepository.get_all(db)))
        dispatch(Action(ActionType.SET_BOOKING_TERMS, BookingTermsRepository.get_all(db)))
        dispatch(Action(ActionType.SET_MEMBERSHIPS, MembershipRepository.get_all(db)))
        dispatch(
            Action(
                ActionType.SET_CLIENT_EMAIL_ALIASES,
                (merged_client.id, EmailAliasRepository.get_by_client_id(db, merged_client.id)),
            )
        )
        dispatch(Action(ActionType.REMOVE_POTENTIAL_DUPLICATE, pair_id(merged_client.id, duplicate_id)))
