"""Course catalogue, enrollment and lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homelearn.courses.ingestion import ParsedCourse
from homelearn.courses.progress import progress_percent
from homelearn.db.models import Course, CourseLevel, Enrollment, Progress, User

logger = structlog.get_logger()


@dataclass(frozen=True)
class CourseSummary:
    course: Course
    level_count: int
    created_by_username: str | None


@dataclass(frozen=True)
class EnrolledCourse:
    course: Course
    enrolled_at: datetime
    total_levels: int
    completed_levels: int
    created_by_username: str | None

    @property
    def progress(self) -> int:
        return progress_percent(self.completed_levels, self.total_levels)


async def create_course(db: AsyncSession, creator: User, parsed: ParsedCourse) -> Course:
    """Insert a course and all of its levels.

    Only flushes; the caller commits once, so a failure on any level leaves
    no course row behind.
    """
    course = Course(title=parsed.title, description=parsed.description, created_by=creator.id)
    db.add(course)
    await db.flush()

    for level in parsed.levels:
        db.add(CourseLevel(
            course_id=course.id,
            level_order=level.order,
            title=level.title,
            topics=list(level.topics),
            objectives=list(level.objectives),
            tools=list(level.tools),
            resources=list(level.resources),
            content=level.content,
        ))
    await db.flush()

    logger.info(
        "course_created",
        course_id=course.id,
        user_id=creator.id,
        title=course.title,
        levels=len(parsed.levels),
    )
    return course


def _level_counts():
    return (
        select(CourseLevel.course_id, func.count(CourseLevel.id).label("level_count"))
        .group_by(CourseLevel.course_id)
        .subquery()
    )


async def list_courses(db: AsyncSession, search: str | None = None) -> list[CourseSummary]:
    """All courses, newest first, optionally filtered by title/description."""
    counts = _level_counts()
    stmt = (
        select(Course, func.coalesce(counts.c.level_count, 0), User.username)
        .outerjoin(counts, counts.c.course_id == Course.id)
        .outerjoin(User, User.id == Course.created_by)
        .order_by(Course.created_at.desc(), Course.id.desc())
    )
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))

    result = await db.execute(stmt)
    return [
        CourseSummary(course=course, level_count=count, created_by_username=username)
        for course, count, username in result.all()
    ]


async def list_enrolled_courses(db: AsyncSession, user_id: int) -> list[EnrolledCourse]:
    """Courses the user is enrolled in, most recent enrollment first."""
    counts = _level_counts()
    completed = (
        select(CourseLevel.course_id, func.count(Progress.id).label("completed"))
        .join(Progress, Progress.level_id == CourseLevel.id)
        .where(Progress.user_id == user_id)
        .group_by(CourseLevel.course_id)
        .subquery()
    )
    stmt = (
        select(
            Course,
            Enrollment.enrolled_at,
            func.coalesce(counts.c.level_count, 0),
            func.coalesce(completed.c.completed, 0),
            User.username,
        )
        .join(Enrollment, Enrollment.course_id == Course.id)
        .outerjoin(counts, counts.c.course_id == Course.id)
        .outerjoin(completed, completed.c.course_id == Course.id)
        .outerjoin(User, User.id == Course.created_by)
        .where(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
    )
    result = await db.execute(stmt)
    return [
        EnrolledCourse(
            course=course,
            enrolled_at=enrolled_at,
            total_levels=total,
            completed_levels=done,
            created_by_username=username,
        )
        for course, enrolled_at, total, done, username in result.all()
    ]


async def get_course(db: AsyncSession, course_id: int) -> Course | None:
    """Course with its creator and ordered levels loaded."""
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id)
        .options(selectinload(Course.levels), selectinload(Course.creator))
    )
    return result.scalar_one_or_none()


async def is_enrolled(db: AsyncSession, user_id: int, course_id: int) -> bool:
    result = await db.execute(
        select(Enrollment.id).where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
    )
    return result.scalar_one_or_none() is not None


async def enroll(db: AsyncSession, user: User, course_id: int) -> Enrollment:
    """
    Enroll a user in a course.

    Raises:
        LookupError: If the course does not exist.
        ValueError: If the user is already enrolled.
    """
    if await db.get(Course, course_id) is None:
        msg = "Course not found"
        raise LookupError(msg)
    if await is_enrolled(db, user.id, course_id):
        msg = "Already enrolled in this course"
        raise ValueError(msg)

    enrollment = Enrollment(user_id=user.id, course_id=course_id)
    db.add(enrollment)
    await db.flush()
    logger.info("course_enrolled", user_id=user.id, course_id=course_id)
    return enrollment


async def unenroll(db: AsyncSession, user: User, course_id: int) -> bool:
    """Remove an enrollment. Returns False if there was none."""
    result = await db.execute(
        delete(Enrollment).where(Enrollment.user_id == user.id, Enrollment.course_id == course_id)
    )
    removed = result.rowcount > 0
    if removed:
        logger.info("course_unenrolled", user_id=user.id, course_id=course_id)
    return removed


async def delete_course(db: AsyncSession, actor: User, course_id: int) -> None:
    """
    Delete a course together with its levels, enrollments and progress.

    Rows are removed explicitly so the cascade does not depend on the
    database enforcing foreign keys. The caller commits.

    Raises:
        LookupError: If the course does not exist.
        PermissionError: If the actor is neither the creator nor an admin.
    """
    course = await db.get(Course, course_id)
    if course is None:
        msg = "Course not found"
        raise LookupError(msg)
    if course.created_by != actor.id and not actor.is_admin:
        msg = "You can only delete courses you created"
        raise PermissionError(msg)

    level_ids = select(CourseLevel.id).where(CourseLevel.course_id == course_id).scalar_subquery()
    await db.execute(delete(Progress).where(Progress.level_id.in_(level_ids)))
    await db.execute(delete(Enrollment).where(Enrollment.course_id == course_id))
    await db.execute(delete(CourseLevel).where(CourseLevel.course_id == course_id))
    await db.execute(delete(Course).where(Course.id == course_id))

    logger.info("course_deleted", course_id=course_id, user_id=actor.id, title=course.title)
