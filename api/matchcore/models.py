import uuid

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB

from .database import Base

JsonList = JSON().with_variant(JSONB(), "postgresql")


def _uuid_str() -> str:
    return str(uuid.uuid4())


class UserAccount(Base):
    __tablename__ = "user_account"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    first_name = Column(String, nullable=True)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    custom_id = Column(String, nullable=True, unique=True)
    gender = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_user_account_gender", "gender"),
        Index("idx_user_account_created_at", "created_at"),
    )


class UserBlock(Base):
    __tablename__ = "user_block"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    blocker_id = Column(String(36), nullable=False)
    blocked_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_user_block_pair"),
        Index("idx_user_block_blocked_id", "blocked_id"),
    )


class UserPersonal(Base):
    __tablename__ = "user_personal"

    user_id = Column(String(36), primary_key=True)
    height = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)
    religion = Column(String, nullable=True)
    sub_caste = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    marital_status = Column(String, nullable=True)


class UserFamily(Base):
    __tablename__ = "user_family"

    user_id = Column(String(36), primary_key=True)
    family_type = Column(String, nullable=True)


class UserHealth(Base):
    __tablename__ = "user_health"

    user_id = Column(String(36), primary_key=True)
    diet = Column(String, nullable=True)
    is_alcoholic = Column(Boolean, nullable=True)
    is_tobacco_user = Column(Boolean, nullable=True)
    # Raw historical encoding ("true", "yes", "1", "false", ...); see normalize.disclosure_state.
    hiv_status = Column(String(16), nullable=True)
    other_conditions = Column(JsonList, nullable=True)


class UserEducation(Base):
    __tablename__ = "user_education"

    user_id = Column(String(36), primary_key=True)
    highest_level = Column(String, nullable=True)
    field_of_study = Column(String, nullable=True)


class UserProfession(Base):
    __tablename__ = "user_profession"

    user_id = Column(String(36), primary_key=True)
    occupation = Column(String, nullable=True)
    organization = Column(String, nullable=True)
    income_band = Column(String, nullable=True)


class UserExpectations(Base):
    __tablename__ = "user_expectations"

    user_id = Column(String(36), primary_key=True)
    age_from = Column(Integer, nullable=True)
    age_to = Column(Integer, nullable=True)
    marital_status = Column(JsonList, nullable=True)
    alcohol = Column(String, nullable=True)
    education_levels = Column(JsonList, nullable=True)
    community = Column(JsonList, nullable=True)
    countries = Column(JsonList, nullable=True)
    states = Column(JsonList, nullable=True)
    professions = Column(JsonList, nullable=True)
    diet = Column(JsonList, nullable=True)


class UserProfile(Base):
    __tablename__ = "user_profile"

    user_id = Column(String(36), primary_key=True)
    closer_photo_url = Column(String, nullable=True)
    favorite_ids = Column(JsonList, nullable=True)
    compare_ids = Column(JsonList, nullable=True)
    compare_version = Column(Integer, nullable=False, default=0)


class ConnectionRequest(Base):
    __tablename__ = "connection_request"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    sender_id = Column(String(36), nullable=False)
    receiver_id = Column(String(36), nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_connection_request_sender", "sender_id", "status"),
        Index("idx_connection_request_receiver", "receiver_id"),
    )
