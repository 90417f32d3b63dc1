"""Unique friendship per unordered pair of users.

Revision ID: 002_friendship_unordered_pair
Revises: 001_initial_schema
Create Date: 2026-10-20
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002_friendship_unordered_pair"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_id = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Add sorted pair columns, backfill them, then make the pair unique."""
    with op.batch_alter_table("friendships") as batch:
        batch.add_column(sa.Column("user_low_id", _id, nullable=True))
        batch.add_column(sa.Column("user_high_id", _id, nullable=True))

    op.execute(
        "UPDATE friendships SET "
        "user_low_id = CASE WHEN requester_id < addressee_id THEN requester_id ELSE addressee_id END, "
        "user_high_id = CASE WHEN requester_id < addressee_id THEN addressee_id ELSE requester_id END"
    )

    with op.batch_alter_table("friendships") as batch:
        batch.alter_column("user_low_id", existing_type=_id, nullable=False)
        batch.alter_column("user_high_id", existing_type=_id, nullable=False)
        batch.create_unique_constraint("uq_friendship_unordered_pair", ["user_low_id", "user_high_id"])


def downgrade() -> None:
    """Drop the sorted pair columns."""
    with op.batch_alter_table("friendships") as batch:
        batch.drop_constraint("uq_friendship_unordered_pair", type_="unique")
        batch.drop_column("user_high_id")
        batch.drop_column("user_low_id")
