"""Admin router: /api/admin/* (admin flag required)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.admin.log_buffer import log_buffer
from homelearn.admin.service import list_users_with_stats
from homelearn.auth.dependencies import require_admin
from homelearn.database import get_session
from homelearn.db.models import User

router = APIRouter(prefix="/api/admin", tags=["Admin"])


class AdminUserResponse(BaseModel):
    id: int
    username: str
    email: str
    user_code: str
    is_admin: bool
    profile_pic: str | None = None
    created_at: datetime
    enrolled_courses: int
    completed_levels: int


class LogEntryResponse(BaseModel):
    timestamp: str | None = None
    level: str
    message: str
    context: dict[str, Any] = {}


@router.get("/users", response_model=list[AdminUserResponse])
async def get_users(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AdminUserResponse]:
    """All users with enrollment and completion counts."""
    return [
        AdminUserResponse(
            id=s.user.id,
            username=s.user.username,
            email=s.user.email,
            user_code=s.user.user_code,
            is_admin=s.user.is_admin,
            profile_pic=s.user.profile_pic,
            created_at=s.user.created_at,
            enrolled_courses=s.enrolled_courses,
            completed_levels=s.completed_levels,
        )
        for s in await list_users_with_stats(db)
    ]


@router.get("/logs", response_model=list[LogEntryResponse])
async def get_logs(
    limit: int = Query(100, ge=1, le=1000),
    _admin: User = Depends(require_admin),
) -> list[LogEntryResponse]:
    """Most recent log entries, newest first."""
    return [LogEntryResponse(**entry) for entry in log_buffer.recent(limit)]
