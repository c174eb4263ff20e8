"""In-memory entity shapes held by the entity store.

Field names are camelCase. Wire rows never reach these models directly; see
``pawbook.gateway`` for the translation in both directions.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class SessionType(str, Enum):
    IN_PERSON = "In-Person"
    ONLINE = "Online"
    TRAINING = "Training"
    ONLINE_CATCHUP = "Online Catchup"
    GROUP = "Group"
    RMR_LIVE = "RMR Live"
    PHONE_CALL = "Phone Call"
    COACHING = "Coaching"


# Session types that are not tied to a single client
CLIENTLESS_SESSION_TYPES = {SessionType.GROUP, SessionType.RMR_LIVE}


class Client(BaseModel):
    id: str
    firstName: str = ""
    lastName: str = ""
    dogName: Optional[str] = None
    otherDogs: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    active: bool = True
    membership: bool = False
    avatar: Optional[str] = None
    behaviouralBriefId: Optional[str] = None
    behaviourQuestionnaireId: Optional[str] = None
    bookingTermsSigned: Optional[bool] = None
    bookingTermsSignedDate: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.firstName} {self.lastName}".strip()

    @property
    def all_dogs(self) -> List[str]:
        dogs = [self.dogName] if self.dogName else []
        return dogs + [dog for dog in self.otherDogs if dog]


class TrainingSession(BaseModel):
    """A bookable session. Date and time are kept apart, never combined into a timestamp."""

    id: str
    clientId: Optional[str] = None
    dogName: Optional[str] = None
    sessionType: SessionType
    bookingDate: str  # YYYY-MM-DD
    bookingTime: str  # HH:mm
    notes: Optional[str] = None
    quote: float = 0
    email: Optional[str] = None
    sessionPaid: bool = False
    paymentConfirmedAt: Optional[str] = None
    sessionPlanSent: bool = False
    questionnaireBypass: bool = False
    eventId: Optional[str] = None
    googleMeetLink: Optional[str] = None


class EmailAlias(BaseModel):
    id: str
    clientId: str
    email: str
    isPrimary: bool = False
    createdAt: Optional[str] = None


class MembershipPayment(BaseModel):
    id: str
    email: str
    date: str  # YYYY-MM-DD
    amount: float = 0


class BehaviouralBrief(BaseModel):
    id: str
    clientId: Optional[str] = None
    ownerFirstName: str = ""
    ownerLastName: str = ""
    email: Optional[str] = None
    contactNumber: Optional[str] = None
    postcode: Optional[str] = None
    dogName: Optional[str] = None
    sex: Optional[str] = None
    breed: Optional[str] = None
    lifeWithDog: Optional[str] = None
    bestOutcome: Optional[str] = None
    sessionType: Optional[str] = None
    submittedAt: Optional[str] = None


class BehaviourQuestionnaire(BaseModel):
    id: str
    clientId: Optional[str] = None
    ownerFirstName: str = ""
    ownerLastName: str = ""
    email: Optional[str] = None
    contactNumber: Optional[str] = None
    dogName: Optional[str] = None
    age: Optional[str] = None
    breed: Optional[str] = None
    mainHelp: Optional[str] = None
    medicalHistory: Optional[str] = None
    anythingElse: Optional[str] = None
    submittedAt: Optional[str] = None


class BookingTerms(BaseModel):
    id: str
    email: str
    submitted: Optional[str] = None


class PotentialDuplicate(BaseModel):
    """Derived pairing of two clients; never persisted"""

    id: str
    primaryClient: Client
    duplicateClient: Client
    matchReasons: List[str] = Field(default_factory=list)
    confidence: str  # high | medium | low
    dogName: str = ""
    suggestedAction: str  # merge | review
    createdAt: str
