"""User profile schemas."""

from __future__ import annotations

from pydantic import BaseModel


class ProfileUpdateResponse(BaseModel):
    message: str = "Profile updated successfully"
    username: str
    biography: str | None = None
    profile_pic: str | None = None


class UserSearchResult(BaseModel):
    """Public view of another user."""

    id: int
    username: str
    user_code: str
    profile_pic: str | None = None
