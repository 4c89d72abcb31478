# app/infrastructure/models.py
"""
SQLAlchemy ORM models for profiles, weekly match groups and their chat.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.infrastructure.db.session import Base


def now():
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    email = Column(String(255), nullable=True)
    specialty = Column(String(120), nullable=True)
    city = Column(String(120), nullable=True)
    gender = Column(String(50), nullable=True)
    gender_preference = Column(String(50), default="no-preference")
    interests = Column(JSON(none_as_null=True), nullable=True)
    availability_slots = Column(JSON(none_as_null=True), nullable=True)

    is_verified = Column(Boolean, default=False)
    is_paid = Column(Boolean, default=False)
    onboarding_completed = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=now)

    # Relationships
    memberships = relationship("MatchMember", back_populates="profile")


class MatchGroup(Base):
    __tablename__ = "matches"

    id = Column(String(64), primary_key=True)
    group_name = Column(String(200), nullable=False)
    status = Column(String(50), default="active")
    match_week = Column(Date, nullable=False, index=True)
    average_score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now)

    # Relationships
    members = relationship("MatchMember", back_populates="match")
    messages = relationship("ChatMessage", back_populates="match")


class MatchMember(Base):
    __tablename__ = "match_members"

    id = Column(Integer, primary_key=True)
    match_id = Column(String(64), ForeignKey("matches.id"), index=True, nullable=False)
    user_id = Column(String(64), ForeignKey("profiles.id"), index=True, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=now)

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_match_member"),
    )

    # Relationships
    match = relationship("MatchGroup", back_populates="members")
    profile = relationship("Profile", back_populates="memberships")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True)
    match_id = Column(String(64), ForeignKey("matches.id"), index=True, nullable=False)
    # NULL for system messages
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=True)
    message_type = Column(String(50), default="user")
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now)

    # Relationships
    match = relationship("MatchGroup", back_populates="messages")


class MatchingLog(Base):
    __tablename__ = "matching_logs"

    id = Column(Integer, primary_key=True)
    week = Column(Date, nullable=False, index=True)
    status = Column(String(50), nullable=False)
    eligible_users = Column(Integer, default=0)
    groups_attempted = Column(Integer, default=0)
    groups_created = Column(Integer, default=0)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now)


class MatchingRunLock(Base):
    """At most one row per lock name; holding the row means holding the run."""
    __tablename__ = "matching_run_locks"

    name = Column(String(64), primary_key=True)
    owner = Column(String(64), nullable=False)
    acquired_at = Column(DateTime(timezone=True), default=now)
    expires_at = Column(DateTime(timezone=True), nullable=False)
