"""Admin queries."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.db.models import Enrollment, Progress, User


@dataclass(frozen=True)
class UserStats:
    user: User
    enrolled_courses: int
    completed_levels: int


async def list_users_with_stats(db: AsyncSession) -> list[UserStats]:
    """Every user, newest first, with enrollment and completion counts."""
    enrolled = (
        select(Enrollment.user_id, func.count(Enrollment.id).label("n"))
        .group_by(Enrollment.user_id)
        .subquery()
    )
    completed = (
        select(Progress.user_id, func.count(Progress.id).label("n"))
        .group_by(Progress.user_id)
        .subquery()
    )
    result = await db.execute(
        select(User, func.coalesce(enrolled.c.n, 0), func.coalesce(completed.c.n, 0))
        .outerjoin(enrolled, enrolled.c.user_id == User.id)
        .outerjoin(completed, completed.c.user_id == User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    return [
        UserStats(user=user, enrolled_courses=n_enrolled, completed_levels=n_completed)
        for user, n_enrolled, n_completed in result.all()
    ]
