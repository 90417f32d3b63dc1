"""Profile and user search router: /api/profile, /api/users/*."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.auth.dependencies import get_current_user
from homelearn.auth.router import user_response
from homelearn.auth.schemas import UserResponse
from homelearn.config import get_settings
from homelearn.database import get_session
from homelearn.db.models import User
from homelearn.users.avatars import AvatarError, discard_profile_picture, save_profile_picture
from homelearn.users.schemas import ProfileUpdateResponse, UserSearchResult
from homelearn.users.service import search_users, update_profile

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    user: User = Depends(get_current_user),
) -> UserResponse:
    """Get own profile."""
    return user_response(user)


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_my_profile(
    username: str | None = Form(None),
    biography: str | None = Form(None),
    profile_pic: UploadFile | None = File(None, alias="profilePic"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileUpdateResponse:
    """Update username/biography and optionally replace the profile picture."""
    pic_path: str | None = None
    if profile_pic is not None:
        try:
            if not (profile_pic.content_type or "").startswith("image/"):
                raise HTTPException(status_code=400, detail="Only image files are allowed")
            limit = get_settings().max_upload_bytes
            raw = await profile_pic.read(limit + 1)
            if len(raw) > limit:
                raise HTTPException(status_code=400, detail="File too large")
            pic_path = await save_profile_picture(user.id, raw)
        except AvatarError as e:
            logger.warning("profile_picture_failed", user_id=user.id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to update profile") from e
        finally:
            await profile_pic.close()

    try:
        await update_profile(db, user, username=username, biography=biography, profile_pic=pic_path)
        await db.commit()
    except ValueError as e:
        if pic_path is not None:
            await discard_profile_picture(pic_path)
        raise HTTPException(status_code=400, detail=str(e)) from e

    return ProfileUpdateResponse(
        username=user.username,
        biography=user.biography,
        profile_pic=user.profile_pic,
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.get("/users/search", response_model=list[UserSearchResult])
async def search(
    q: str = Query(""),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[UserSearchResult]:
    """Find other users by username or user code."""
    try:
        users = await search_users(db, user, q)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [
        UserSearchResult(id=u.id, username=u.username, user_code=u.user_code, profile_pic=u.profile_pic)
        for u in users
    ]
