"""Initial schema: users, courses, levels, enrollments, progress, friendships.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# BIGINT keys on PostgreSQL, INTEGER on SQLite so that rowids autoincrement
_id = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("user_code", sa.String(16), nullable=False),
        sa.Column("is_admin", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("profile_pic", sa.Text(), nullable=True),
        sa.Column("biography", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("user_code", name="uq_users_user_code"),
    )

    op.create_table(
        "courses",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("created_by", _id, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "course_levels",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("course_id", _id, sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("level_order", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("topics", _json, nullable=False),
        sa.Column("objectives", _json, nullable=False),
        sa.Column("tools", _json, nullable=False),
        sa.Column("resources", _json, nullable=False),
        sa.Column("content", _json, nullable=False),
        sa.UniqueConstraint("course_id", "level_order", name="uq_course_level_order"),
    )
    op.create_index("ix_course_levels_course_id", "course_levels", ["course_id"])

    op.create_table(
        "user_enrollments",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("user_id", _id, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", _id, sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "course_id", name="uq_user_enrollment"),
    )
    op.create_index("ix_user_enrollments_course_id", "user_enrollments", ["course_id"])

    op.create_table(
        "user_progress",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("user_id", _id, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("level_id", _id, sa.ForeignKey("course_levels.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "level_id", name="uq_user_level_progress"),
    )
    op.create_index("ix_user_progress_level_id", "user_progress", ["level_id"])

    op.create_table(
        "friendships",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("requester_id", _id, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("addressee_id", _id, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("requester_id", "addressee_id", name="uq_friendship_pair"),
        sa.CheckConstraint("status IN ('pending', 'accepted')", name="ck_friendships_status"),
        sa.CheckConstraint("requester_id != addressee_id", name="ck_friendships_not_self"),
    )
    op.create_index("ix_friendships_requester_id", "friendships", ["requester_id"])
    op.create_index("ix_friendships_addressee_id", "friendships", ["addressee_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("friendships")
    op.drop_table("user_progress")
    op.drop_table("user_enrollments")
    op.drop_table("course_levels")
    op.drop_table("courses")
    op.drop_table("users")
