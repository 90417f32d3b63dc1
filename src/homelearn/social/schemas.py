"""Social Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class FriendRequestCreate(BaseModel):
    user_code: str = Field(..., min_length=1, max_length=32)


class FriendRequestRespond(BaseModel):
    action: str


class FriendResponse(BaseModel):
    """An accepted friend."""

    friendship_id: int
    id: int
    username: str
    user_code: str
    profile_pic: str | None = None
    since: datetime


class PendingRequestResponse(BaseModel):
    """A pending request, seen from the caller's side."""

    friendship_id: int
    id: int
    username: str
    user_code: str
    profile_pic: str | None = None
    direction: Literal["sent", "received"]
    created_at: datetime


class FriendsListResponse(BaseModel):
    friends: list[FriendResponse]
    pending_requests: list[PendingRequestResponse]


class FriendshipResponse(BaseModel):
    message: str
    friendship_id: int | None = None
    status: str | None = None
