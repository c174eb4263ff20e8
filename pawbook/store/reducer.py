"""Pure reduction over the entity state.

``apply`` never mutates its input and never raises for a well-typed action: an
UPDATE or DELETE for an unknown id leaves the state as it was.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

from ..schemas import (
    BehaviouralBrief,
    BehaviourQuestionnaire,
    BookingTerms,
    Client,
    EmailAlias,
    MembershipPayment,
    PotentialDuplicate,
    TrainingSession,
)
from .actions import Action, ActionType


@dataclass(frozen=True)
class EntityState:
    clients: tuple[Client, ...] = ()
    sessions: tuple[TrainingSession, ...] = ()
    behavioural_briefs: tuple[BehaviouralBrief, ...] = ()
    behaviour_questionnaires: tuple[BehaviourQuestionnaire, ...] = ()
    booking_terms: tuple[BookingTerms, ...] = ()
    memberships: tuple[MembershipPayment, ...] = ()
    # client id -> aliases for that client
    email_aliases: Mapping[str, tuple[EmailAlias, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    potential_duplicates: tuple[PotentialDuplicate, ...] = ()

    selected_client_id: Optional[str] = None
    selected_session_id: Optional[str] = None
    selected_behavioural_brief_id: Optional[str] = None
    selected_behaviour_questionnaire_id: Optional[str] = None


# collection attribute, selection attribute cleared on delete (if any)
_COLLECTIONS = {
    "CLIENT": ("clients", "selected_client_id"),
    "SESSION": ("sessions", "selected_session_id"),
    "BEHAVIOURAL_BRIEF": ("behavioural_briefs", "selected_behavioural_brief_id"),
    "BEHAVIOUR_QUESTIONNAIRE": ("behaviour_questionnaires", "selected_behaviour_questionnaire_id"),
    "BOOKING_TERMS": ("booking_terms", None),
    "MEMBERSHIP": ("memberships", None),
}

_SET_TARGETS = {
    ActionType.SET_CLIENTS: "clients",
    ActionType.SET_SESSIONS: "sessions",
    ActionType.SET_BEHAVIOURAL_BRIEFS: "behavioural_briefs",
    ActionType.SET_BEHAVIOUR_QUESTIONNAIRES: "behaviour_questionnaires",
    ActionType.SET_BOOKING_TERMS: "booking_terms",
    ActionType.SET_MEMBERSHIPS: "memberships",
    ActionType.SET_POTENTIAL_DUPLICATES: "potential_duplicates",
}

_SELECT_TARGETS = {
    ActionType.SET_SELECTED_CLIENT: "selected_client_id",
    ActionType.SET_SELECTED_SESSION: "selected_session_id",
    ActionType.SET_SELECTED_BEHAVIOURAL_BRIEF: "selected_behavioural_brief_id",
    ActionType.SET_SELECTED_BEHAVIOUR_QUESTIONNAIRE: "selected_behaviour_questionnaire_id",
}


def _upsert(items: tuple, entity) -> tuple:
    if any(item.id == entity.id for item in items):
        return _replace_by_id(items, entity)
    return items + (entity,)


def _replace_by_id(items: tuple, entity) -> tuple:
    return tuple(entity if item.id == entity.id else item for item in items)


def _remove_by_id(items: tuple, entity_id: str) -> tuple:
    return tuple(item for item in items if item.id != entity_id)


def _apply_crud(state: EntityState, verb: str, entity_key: str, payload) -> EntityState:
    attr, selection = _COLLECTIONS[entity_key]
    items = getattr(state, attr)

    if verb == "ADD":
        return replace(state, **{attr: _upsert(items, payload)})
    if verb == "UPDATE":
        return replace(state, **{attr: _replace_by_id(items, payload)})

    # DELETE
    changes = {attr: _remove_by_id(items, payload)}
    if selection and getattr(state, selection) == payload:
        changes[selection] = None
    if entity_key == "CLIENT":
        aliases = dict(state.email_aliases)
        aliases.pop(payload, None)
        changes["email_aliases"] = MappingProxyType(aliases)
    return replace(state, **changes)


def apply(state: EntityState, action: Action) -> EntityState:
    """Return the state that results from applying ``action`` to ``state``"""
    action_type = action.type

    if action_type in _SET_TARGETS:
        return replace(state, **{_SET_TARGETS[action_type]: tuple(action.payload or ())})

    if action_type in _SELECT_TARGETS:
        return replace(state, **{_SELECT_TARGETS[action_type]: action.payload})

    if action_type == ActionType.SET_CLIENT_EMAIL_ALIASES:
        client_id, aliases = action.payload
        updated = dict(state.email_aliases)
        updated[client_id] = tuple(aliases)
        return replace(state, email_aliases=MappingProxyType(updated))

    if action_type == ActionType.REMOVE_POTENTIAL_DUPLICATE:
        return replace(
            state, potential_duplicates=_remove_by_id(state.potential_duplicates, action.payload)
        )

    verb, _, entity_key = action_type.value.partition("_")
    if verb in ("ADD", "UPDATE", "DELETE") and entity_key in _COLLECTIONS:
        return _apply_crud(state, verb, entity_key, action.payload)

    raise ValueError(f"Unhandled action type: {action_type}")
