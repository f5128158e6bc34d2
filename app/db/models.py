from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base

from app.utils.time import now_utc


Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class AuthUser(Base):
    """Account held by the auth gateway (email + salted password hash)."""

    __tablename__ = "auth_users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    user_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)


class AuthSessionRow(Base):
    __tablename__ = "auth_sessions"

    token = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("auth_users.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False)  # admin | healthworker
    full_name = Column(String, nullable=False)
    username = Column(String, nullable=True)
    awc_center = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)


class HealthWorker(Base):
    __tablename__ = "healthworkers"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, unique=True, index=True, nullable=True)
    full_name = Column(String, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    awc_center = Column(String, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)


class Child(Base):
    __tablename__ = "children"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    date_of_birth = Column(String, nullable=False)  # ISO date
    gender = Column(String, nullable=False)
    guardian_name = Column(String, nullable=False)
    city = Column(String, nullable=False)
    district = Column(String, nullable=False)
    awc_center = Column(String, index=True, nullable=False)
    healthworker_id = Column(String, ForeignKey("healthworkers.id"), nullable=True)
    current_status = Column(String, default="normal", nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)


class HealthRecord(Base):
    __tablename__ = "health_records"

    id = Column(String, primary_key=True, default=_uuid)
    child_id = Column(String, ForeignKey("children.id"), index=True, nullable=False)
    recorded_by = Column(String, ForeignKey("healthworkers.id"), nullable=True)
    recorded_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    # measurements
    height = Column(Float, nullable=False)
    weight = Column(Float, nullable=False)
    edema = Column(Boolean, default=False, nullable=False)
    poverty_index = Column(Integer, nullable=False)
    sanitation_index = Column(Integer, nullable=False)
    meals_per_day = Column(Integer, nullable=False)

    # predictor output
    predicted_status = Column(String, nullable=False)
    sam_probability = Column(Float, nullable=False)
    mam_probability = Column(Float, nullable=False)
    normal_probability = Column(Float, nullable=False)
    model_version = Column(String, nullable=True)
