"""Duplicate merge schemas"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ...schemas import (
    BehaviouralBrief,
    BehaviourQuestionnaire,
    BookingTerms,
    Client,
    MembershipPayment,
    TrainingSession,
)


class MergeConflict(BaseModel):
    """Both clients hold different values for a field; returned as data, never raised"""

    field: str
    primaryValue: Any
    duplicateValue: Any
    suggestedValue: Any


class FormsToTransfer(BaseModel):
    behaviouralBriefs: list[BehaviouralBrief] = Field(default_factory=list)
    behaviourQuestionnaires: list[BehaviourQuestionnaire] = Field(default_factory=list)
    bookingTerms: list[BookingTerms] = Field(default_factory=list)


class MergePreview(BaseModel):
    primaryClient: Client
    duplicateClient: Client
    # Field values to write onto the primary, with conflicts resolved to their suggestion
    mergedFields: dict[str, Any] = Field(default_factory=dict)
    conflicts: list[MergeConflict] = Field(default_factory=list)
    sessionsToTransfer: list[TrainingSession] = Field(default_factory=list)
    formsToTransfer: FormsToTransfer = Field(default_factory=FormsToTransfer)
    membershipsToTransfer: list[MembershipPayment] = Field(default_factory=list)


class MergeResult(BaseModel):
    success: bool
    mergedClient: Optional[Client] = None
    transferredSessions: int = 0
    transferredForms: int = 0
    transferredMemberships: int = 0
    aliasesCreated: int = 0
    error: Optional[str] = None
