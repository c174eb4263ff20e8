from dataclasses import dataclass
from enum import Enum
from typing import Any


class ActionType(str, Enum):
    SET_CLIENTS = "SET_CLIENTS"
    ADD_CLIENT = "ADD_CLIENT"
    UPDATE_CLIENT = "UPDATE_CLIENT"
    DELETE_CLIENT = "DELETE_CLIENT"

    SET_SESSIONS = "SET_SESSIONS"
    ADD_SESSION = "ADD_SESSION"
    UPDATE_SESSION = "UPDATE_SESSION"
    DELETE_SESSION = "DELETE_SESSION"

    SET_BEHAVIOURAL_BRIEFS = "SET_BEHAVIOURAL_BRIEFS"
    ADD_BEHAVIOURAL_BRIEF = "ADD_BEHAVIOURAL_BRIEF"
    UPDATE_BEHAVIOURAL_BRIEF = "UPDATE_BEHAVIOURAL_BRIEF"
    DELETE_BEHAVIOURAL_BRIEF = "DELETE_BEHAVIOURAL_BRIEF"

    SET_BEHAVIOUR_QUESTIONNAIRES = "SET_BEHAVIOUR_QUESTIONNAIRES"
    ADD_BEHAVIOUR_QUESTIONNAIRE = "ADD_BEHAVIOUR_QUESTIONNAIRE"
    UPDATE_BEHAVIOUR_QUESTIONNAIRE = "UPDATE_BEHAVIOUR_QUESTIONNAIRE"
    DELETE_BEHAVIOUR_QUESTIONNAIRE = "DELETE_BEHAVIOUR_QUESTIONNAIRE"

    SET_BOOKING_TERMS = "SET_BOOKING_TERMS"
    ADD_BOOKING_TERMS = "ADD_BOOKING_TERMS"
    UPDATE_BOOKING_TERMS = "UPDATE_BOOKING_TERMS"
    DELETE_BOOKING_TERMS = "DELETE_BOOKING_TERMS"

    SET_MEMBERSHIPS = "SET_MEMBERSHIPS"
    ADD_MEMBERSHIP = "ADD_MEMBERSHIP"
    UPDATE_MEMBERSHIP = "UPDATE_MEMBERSHIP"
    DELETE_MEMBERSHIP = "DELETE_MEMBERSHIP"

    SET_CLIENT_EMAIL_ALIASES = "SET_CLIENT_EMAIL_ALIASES"

    SET_POTENTIAL_DUPLICATES = "SET_POTENTIAL_DUPLICATES"
    REMOVE_POTENTIAL_DUPLICATE = "REMOVE_POTENTIAL_DUPLICATE"

    SET_SELECTED_CLIENT = "SET_SELECTED_CLIENT"
    SET_SELECTED_SESSION = "SET_SELECTED_SESSION"
    SET_SELECTED_BEHAVIOURAL_BRIEF = "SET_SELECTED_BEHAVIOURAL_BRIEF"
    SET_SELECTED_BEHAVIOUR_QUESTIONNAIRE = "SET_SELECTED_BEHAVIOUR_QUESTIONNAIRE"


@dataclass(frozen=True)
class Action:
    """A typed store mutation.

    Payload shape by variant:
        SET_*       sequence of entities
        ADD_*       one entity
        UPDATE_*    one entity (replaces the record with the same id)
        DELETE_*    entity id
        SET_CLIENT_EMAIL_ALIASES    (client_id, sequence of EmailAlias)
        REMOVE_POTENTIAL_DUPLICATE  duplicate pair id
        SET_SELECTED_*              entity id or None
    """

    type: ActionType
    payload: Any = None
