"""Intake form business logic - submission and owner resolution"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...schemas import BehaviouralBrief, BehaviourQuestionnaire, Client
from ...shared.validators import normalize_email
from ..clients.repository import ClientRepository
from ..memberships.repository import EmailAliasRepository
from .repository import BehaviouralBriefRepository, BehaviourQuestionnaireRepository

logger = logging.getLogger(__name__)


def dog_name_matches(form_dog: Optional[str], client: Client) -> bool:
    """Exact match, or the form names the dog with a suffix ("Hetty Spaghetti" for "Hetty")"""
    form_dog = (form_dog or "").strip().lower()
    if not form_dog:
        return False
    for dog in client.all_dogs:
        dog = dog.strip().lower()
        if form_dog == dog or form_dog.startswith(dog + " "):
            return True
    return False


def resolve_form_owner(
    db: Session, client_id: Optional[str], email: Optional[str], dog_name: Optional[str]
) -> Optional[str]:
    """
    Find the client a submitted form belongs to.

    Resolution order:
        1. an explicit client id that exists
        2. a client reachable by email (primary or alias) whose dogs include the form's dog
        3. the only client reachable by email, when there is exactly one
    """
    if client_id and ClientRepository.get_by_id(db, client_id) is not None:
        return client_id

    email = normalize_email(email)
    if not email:
        return None

    candidates: dict[str, Client] = {client.id: client for client in ClientRepository.find_by_email(db, email)}
    for alias in EmailAliasRepository.find_by_email(db, email):
        if alias.clientId not in candidates:
            client = ClientRepository.get_by_id(db, alias.clientId)
            if client is not None:
                candidates[client.id] = client

    for candidate in candidates.values():
        if dog_name_matches(dog_name, candidate):
            return candidate.id

    if len(candidates) == 1:
        return next(iter(candidates))

    if candidates:
        logger.warning(f"⚠️ {len(candidates)} clients share {email} and none owns dog {dog_name!r}")
    return None


class FormService:
    def __init__(self, db: Session):
        self.db = db

    def _link_client(self, client_id: Optional[str], field: str, form_id: str) -> None:
        if not client_id:
            return
        client = ClientRepository.get_by_id(self.db, client_id)
        if client is not None and not getattr(client, field):
            ClientRepository.update(self.db, client_id, {field: form_id}, commit=False)

    def submit_behavioural_brief(self, data: dict) -> BehaviouralBrief:
        owner = resolve_form_owner(self.db, data.get("clientId"), data.get("email"), data.get("dogName"))
        data = {**data, "clientId": owner, "submittedAt": data.get("submittedAt") or _now_iso()}
        brief = BehaviouralBriefRepository.create(self.db, data, commit=False)
        self._link_client(owner, "behaviouralBriefId", brief.id)
        self.db.commit()
        logger.info(f"✅ Behavioural brief {brief.id} stored (client {owner or 'unresolved'})")
        return brief

    def submit_behaviour_questionnaire(self, data: dict) -> BehaviourQuestionnaire:
        owner = resolve_form_owner(self.db, data.get("clientId"), data.get("email"), data.get("dogName"))
        data = {**data, "clientId": owner, "submittedAt": data.get("submittedAt") or _now_iso()}
        questionnaire = BehaviourQuestionnaireRepository.create(self.db, data, commit=False)
        self._link_client(owner, "behaviourQuestionnaireId", questionnaire.id)
        self.db.commit()
        logger.info(f"✅ Behaviour questionnaire {questionnaire.id} stored (client {owner or 'unresolved'})")
        return questionnaire


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
