"""ORM models for users, courses, progress and friendships."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from homelearn.db.base import Base, BigIntId, JSONList


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    user_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    profile_pic: Mapped[str | None] = mapped_column(Text, nullable=True)
    biography: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    courses: Mapped[list[Course]] = relationship("Course", back_populates="creator")
    enrollments: Mapped[list[Enrollment]] = relationship("Enrollment", back_populates="user")


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class Course(Base):
    """A multi-level course. Owned by its creator."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    created_by: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    creator: Mapped[User | None] = relationship("User", back_populates="courses")
    levels: Mapped[list[CourseLevel]] = relationship(
        "CourseLevel", back_populates="course", order_by="CourseLevel.level_order"
    )


class CourseLevel(Base):
    """An ordered stage within a course. Immutable once created."""

    __tablename__ = "course_levels"
    __table_args__ = (UniqueConstraint("course_id", "level_order", name="uq_course_level_order"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level_order: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    topics: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    objectives: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    tools: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    resources: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    content: Mapped[dict[str, Any]] = mapped_column(JSONList, nullable=False, default=dict)

    course: Mapped[Course] = relationship("Course", back_populates="levels")


class Enrollment(Base):
    """A user's subscription to a course. UNIQUE(user_id, course_id)."""

    __tablename__ = "user_enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_enrollment"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="enrollments")


class Progress(Base):
    """Level completion. UNIQUE(user_id, level_id) prevents duplicates."""

    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("user_id", "level_id", name="uq_user_level_progress"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    level_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("course_levels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------


class Friendship(Base):
    """Friendship between two users, keyed by (requester, addressee).

    ``user_low_id`` / ``user_high_id`` hold the same two ids sorted, so the
    unordered pair is unique at the database level.
    """

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friendship_pair"),
        UniqueConstraint("user_low_id", "user_high_id", name="uq_friendship_unordered_pair"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    requester_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    addressee_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_low_id: Mapped[int] = mapped_column(BigIntId, nullable=False)
    user_high_id: Mapped[int] = mapped_column(BigIntId, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    requester: Mapped[User] = relationship("User", foreign_keys=[requester_id])
    addressee: Mapped[User] = relationship("User", foreign_keys=[addressee_id])
