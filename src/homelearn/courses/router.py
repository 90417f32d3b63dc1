"""Course router: catalogue, ingestion, enrollment and level completion."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.auth.dependencies import get_current_user
from homelearn.config import get_settings
from homelearn.courses.ingestion import ParsedCourse, parse_course_bytes, parse_course_document
from homelearn.courses.progress import ProgressTracker
from homelearn.courses.schemas import (
    CourseCreatedResponse,
    CourseDetailResponse,
    CourseListItem,
    LevelCompleteResponse,
    LevelResponse,
    MessageResponse,
    MyCourseItem,
)
from homelearn.courses.service import (
    create_course,
    delete_course,
    enroll,
    get_course,
    is_enrolled,
    list_courses,
    list_enrolled_courses,
    unenroll,
)
from homelearn.database import get_session
from homelearn.db.models import User
from homelearn.dependencies import get_notifier
from homelearn.ws.notifier import Notifier

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Courses"])


async def _persist(db: AsyncSession, user: User, parsed: ParsedCourse) -> CourseCreatedResponse:
    course = await create_course(db, user, parsed)
    await db.commit()
    return CourseCreatedResponse(course_id=course.id, title=course.title, levels_count=len(parsed.levels))


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@router.get("/courses", response_model=list[CourseListItem])
async def get_courses(
    search: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[CourseListItem]:
    """All courses with level counts and creator names."""
    summaries = await list_courses(db, search)
    return [
        CourseListItem(
            id=s.course.id,
            title=s.course.title,
            description=s.course.description,
            created_by=s.course.created_by,
            created_by_username=s.created_by_username,
            created_at=s.course.created_at,
            level_count=s.level_count,
        )
        for s in summaries
    ]


@router.get("/my-courses", response_model=list[MyCourseItem])
async def get_my_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[MyCourseItem]:
    """Courses the caller is enrolled in, with progress."""
    enrolled = await list_enrolled_courses(db, user.id)
    return [
        MyCourseItem(
            id=e.course.id,
            title=e.course.title,
            description=e.course.description,
            created_by=e.course.created_by,
            created_by_username=e.created_by_username,
            created_at=e.course.created_at,
            enrolled_at=e.enrolled_at,
            total_levels=e.total_levels,
            completed_levels=e.completed_levels,
            progress=e.progress,
        )
        for e in enrolled
    ]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post("/courses", response_model=CourseCreatedResponse, status_code=201)
async def create_course_from_json(
    doc: Any = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CourseCreatedResponse:
    """Create a course from a JSON document in either accepted shape."""
    try:
        parsed = parse_course_document(doc)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return await _persist(db, user, parsed)


@router.post("/courses/upload", response_model=CourseCreatedResponse)
async def upload_course(
    course_file: UploadFile | None = File(None, alias="courseFile"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CourseCreatedResponse:
    """Create a course from an uploaded JSON file."""
    if course_file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    limit = get_settings().max_upload_bytes
    try:
        raw = await course_file.read(limit + 1)
        if len(raw) > limit:
            raise HTTPException(status_code=400, detail="File too large")
        parsed = parse_course_bytes(raw)
    except ValueError as e:
        logger.info("course_upload_rejected", user_id=user.id, filename=course_file.filename, reason=str(e))
        raise HTTPException(status_code=400, detail=str(e)) from e
    finally:
        await course_file.close()

    return await _persist(db, user, parsed)


# ---------------------------------------------------------------------------
# Detail & enrollment
# ---------------------------------------------------------------------------


@router.get("/course/{course_id}", response_model=CourseDetailResponse)
async def get_course_detail(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> CourseDetailResponse:
    """Course with ordered levels, each flagged with the caller's completion."""
    course = await get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")

    tracker = ProgressTracker(db, notifier)
    done = await tracker.completed_level_ids(user.id, course_id)
    progress = await tracker.course_progress(user.id, course_id)

    return CourseDetailResponse(
        id=course.id,
        title=course.title,
        description=course.description,
        created_by=course.created_by,
        created_by_username=course.creator.username if course.creator else None,
        created_at=course.created_at,
        levels=[
            LevelResponse(
                id=level.id,
                level_order=level.level_order,
                title=level.title,
                topics=level.topics or [],
                objectives=level.objectives or [],
                tools=level.tools or [],
                resources=level.resources or [],
                completed=level.id in done,
            )
            for level in course.levels
        ],
        is_enrolled=await is_enrolled(db, user.id, course_id),
        progress=progress.percent,
        completed_levels=progress.completed_levels,
        total_levels=progress.total_levels,
    )


@router.post("/courses/{course_id}/enroll", response_model=MessageResponse)
async def enroll_in_course(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    try:
        await enroll(db, user, course_id)
        await db.commit()
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        # a concurrent enroll for the same user and course committed first
        await db.rollback()
        raise HTTPException(status_code=400, detail="Already enrolled in this course") from e
    return MessageResponse(message="Successfully enrolled in course")


@router.delete("/courses/{course_id}/unsubscribe", response_model=MessageResponse)
async def unsubscribe_from_course(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await unenroll(db, user, course_id)
    await db.commit()
    return MessageResponse(message="Successfully unsubscribed from course")


@router.delete("/courses/{course_id}", response_model=MessageResponse)
async def remove_course(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Delete a course and everything hanging off it. Creator or admin only."""
    try:
        await delete_course(db, user, course_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    await db.commit()
    return MessageResponse(message="Course deleted successfully")


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@router.post("/course/{course_id}/level/{level_id}/complete", response_model=LevelCompleteResponse)
async def complete_level(
    course_id: int,
    level_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> LevelCompleteResponse:
    """Mark a level complete. Repeating the call is harmless."""
    tracker = ProgressTracker(db, notifier)
    try:
        newly_completed = await tracker.complete_level(user, course_id, level_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    progress = await tracker.course_progress(user.id, course_id)
    return LevelCompleteResponse(newly_completed=newly_completed, progress=progress.percent)
