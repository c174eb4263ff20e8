"""Client domain schemas - Pydantic models for validation"""

from typing import List, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    firstName: str
    lastName: str = ""
    dogName: Optional[str] = None
    otherDogs: Optional[List[str]] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    active: bool = True
    membership: bool = False

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else None


class ClientUpdate(BaseModel):
    """Schema for updating an existing client. Only fields that were set are written."""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dogName: Optional[str] = None
    otherDogs: Optional[List[str]] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    active: Optional[bool] = None
    membership: Optional[bool] = None
    behaviouralBriefId: Optional[str] = None
    behaviourQuestionnaireId: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else v
