import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class ClientModel(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    dog_name = Column(String(255), nullable=True)  # Primary dog
    other_dogs = Column(JSON, nullable=True)  # Ordered list of additional dog names
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    address = Column(Text, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    membership = Column(Boolean, default=False, nullable=False)
    avatar = Column(String(500), nullable=True)
    behavioural_brief_id = Column(String(36), nullable=True)
    behaviour_questionnaire_id = Column(String(36), nullable=True)
    booking_terms_signed = Column(Boolean, nullable=True)
    booking_terms_signed_date = Column(String(32), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class SessionModel(Base):
    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    # Group and live sessions may have no owning client
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True, index=True)
    dog_name = Column(String(255), nullable=True)
    session_type = Column(String(50), nullable=False)
    booking_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    booking_time = Column(String(8), nullable=False)  # HH:mm (legacy rows HH:mm:ss)
    notes = Column(Text, nullable=True)
    quote = Column(Float, nullable=False, default=0)
    email = Column(String(255), nullable=True)
    session_paid = Column(Boolean, default=False, nullable=False)
    payment_confirmed_at = Column(String(40), nullable=True)
    session_plan_sent = Column(Boolean, default=False, nullable=False)
    questionnaire_bypass = Column(Boolean, default=False, nullable=False)
    event_id = Column(String(255), nullable=True)  # External calendar correlation id
    google_meet_link = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class ClientEmailAliasModel(Base):
    __tablename__ = "client_email_aliases"
    __table_args__ = (UniqueConstraint("client_id", "email", name="uq_client_email_alias"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)  # Stored lower-cased
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class MembershipPaymentModel(Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=generate_id)
    # Matched to clients through email aliases, not by client id
    email = Column(String(255), nullable=False, index=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    amount = Column(Float, nullable=False, default=0)


class BehaviouralBriefModel(Base):
    __tablename__ = "behavioural_briefs"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True, index=True)
    owner_first_name = Column(String(255), nullable=True)
    owner_last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    contact_number = Column(String(50), nullable=True)
    postcode = Column(String(20), nullable=True)
    dog_name = Column(String(255), nullable=True)
    sex = Column(String(10), nullable=True)
    breed = Column(String(255), nullable=True)
    life_with_dog = Column(Text, nullable=True)
    best_outcome = Column(Text, nullable=True)
    session_type = Column(String(100), nullable=True)
    submitted_at = Column(String(40), nullable=True)


class BehaviourQuestionnaireModel(Base):
    __tablename__ = "behaviour_questionnaires"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True, index=True)
    owner_first_name = Column(String(255), nullable=True)
    owner_last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    contact_number = Column(String(50), nullable=True)
    dog_name = Column(String(255), nullable=True)
    age = Column(String(50), nullable=True)
    breed = Column(String(255), nullable=True)
    main_help = Column(Text, nullable=True)
    medical_history = Column(Text, nullable=True)
    anything_else = Column(Text, nullable=True)
    submitted_at = Column(String(40), nullable=True)


class BookingTermsModel(Base):
    __tablename__ = "booking_terms"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), nullable=False, index=True)
    submitted = Column(String(40), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class DismissedDuplicateModel(Base):
    __tablename__ = "dismissed_duplicates"

    id = Column(String(36), primary_key=True, default=generate_id)
    duplicate_id = Column(String(80), nullable=False, unique=True)
    dismissed_at = Column(String(40), nullable=False)
