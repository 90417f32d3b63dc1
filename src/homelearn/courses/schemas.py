"""Course Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CourseListItem(BaseModel):
    """Course in the catalogue listing."""

    id: int
    title: str
    description: str
    created_by: int | None = None
    created_by_username: str | None = None
    created_at: datetime
    level_count: int


class MyCourseItem(BaseModel):
    """Enrolled course with the caller's progress."""

    id: int
    title: str
    description: str
    created_by: int | None = None
    created_by_username: str | None = None
    created_at: datetime
    enrolled_at: datetime
    total_levels: int
    completed_levels: int
    progress: int


class CourseCreatedResponse(BaseModel):
    message: str = "Course created successfully"
    course_id: int
    title: str
    levels_count: int


class LevelResponse(BaseModel):
    id: int
    level_order: int
    title: str
    topics: list[str]
    objectives: list[str]
    tools: list[str]
    resources: list[str]
    completed: bool


class CourseDetailResponse(BaseModel):
    """Course with ordered levels annotated for the caller."""

    id: int
    title: str
    description: str
    created_by: int | None = None
    created_by_username: str | None = None
    created_at: datetime
    levels: list[LevelResponse]
    is_enrolled: bool
    progress: int
    completed_levels: int
    total_levels: int


class MessageResponse(BaseModel):
    message: str


class LevelCompleteResponse(BaseModel):
    message: str = "Level completed"
    newly_completed: bool
    progress: int
