"""Level completion tracking with idempotent writes and a completion event."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.db.models import CourseLevel, Progress, User
from homelearn.ws.manager import course_channel
from homelearn.ws.notifier import Notifier

logger = structlog.get_logger()

LEVEL_COMPLETED_EVENT = "level-completed"


@dataclass(frozen=True)
class CourseProgress:
    completed_levels: int
    total_levels: int
    percent: int


def progress_percent(completed: int, total: int) -> int:
    """Completion percentage rounded half up; 0 for a course without levels."""
    if total == 0:
        return 0
    return (200 * completed + total) // (2 * total)


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT construct that supports ON CONFLICT."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


class ProgressTracker:
    """Records level completions for one request's session."""

    def __init__(self, db: AsyncSession, notifier: Notifier) -> None:
        self.db = db
        self.notifier = notifier

    async def complete_level(self, user: User, course_id: int, level_id: int) -> bool:
        """Mark a level complete. Returns True if this call wrote the row.

        Safe to call repeatedly or concurrently: the (user, level) unique
        constraint absorbs duplicates.

        Raises:
            LookupError: If the level does not exist in the given course.
        """
        level = await self.db.get(CourseLevel, level_id)
        if level is None or level.course_id != course_id:
            msg = "Level not found"
            raise LookupError(msg)

        insert = _insert_for(self.db)
        stmt = (
            insert(Progress)
            .values(user_id=user.id, level_id=level_id)
            .on_conflict_do_nothing(index_elements=["user_id", "level_id"])
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        newly_completed = result.rowcount == 1

        logger.info(
            "level_completed",
            user_id=user.id,
            course_id=course_id,
            level_id=level_id,
            newly_completed=newly_completed,
        )

        # Notifier implementations swallow their own failures
        await self.notifier.publish(
            course_channel(course_id),
            LEVEL_COMPLETED_EVENT,
            {"userId": user.id, "levelId": level_id, "username": user.username},
        )
        return newly_completed

    async def completed_level_ids(self, user_id: int, course_id: int) -> set[int]:
        result = await self.db.execute(
            select(Progress.level_id)
            .join(CourseLevel, CourseLevel.id == Progress.level_id)
            .where(Progress.user_id == user_id, CourseLevel.course_id == course_id)
        )
        return set(result.scalars().all())

    async def course_progress(self, user_id: int, course_id: int) -> CourseProgress:
        total = await self.db.scalar(
            select(func.count(CourseLevel.id)).where(CourseLevel.course_id == course_id)
        ) or 0
        completed = await self.db.scalar(
            select(func.count(Progress.id))
            .join(CourseLevel, CourseLevel.id == Progress.level_id)
            .where(Progress.user_id == user_id, CourseLevel.course_id == course_id)
        ) or 0
        return CourseProgress(
            completed_levels=completed,
            total_levels=total,
            percent=progress_percent(completed, total),
        )
