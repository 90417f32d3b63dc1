"""Friendship API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.auth.dependencies import get_current_user
from homelearn.database import get_session
from homelearn.db.models import User
from homelearn.social.friendship_service import REQUEST_EXISTS_MESSAGE, list_friendships, respond, send_request
from homelearn.social.schemas import (
    FriendRequestCreate,
    FriendRequestRespond,
    FriendResponse,
    FriendsListResponse,
    FriendshipResponse,
    PendingRequestResponse,
)

router = APIRouter(prefix="/api/friends", tags=["Social"])


@router.get("", response_model=FriendsListResponse)
async def get_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendsListResponse:
    view = await list_friendships(db, user)
    return FriendsListResponse(
        friends=[
            FriendResponse(
                friendship_id=f.id,
                id=other.id,
                username=other.username,
                user_code=other.user_code,
                profile_pic=other.profile_pic,
                since=f.updated_at or f.created_at,
            )
            for f, other in view.friends
        ],
        pending_requests=[
            PendingRequestResponse(
                friendship_id=p.friendship.id,
                id=p.other.id,
                username=p.other.username,
                user_code=p.other.user_code,
                profile_pic=p.other.profile_pic,
                direction=p.direction,
                created_at=p.friendship.created_at,
            )
            for p in view.pending_requests
        ],
    )


@router.post("/request", response_model=FriendshipResponse, status_code=201)
async def send_friend_request(
    body: FriendRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendshipResponse:
    try:
        friendship = await send_request(db, user, body.user_code)
        await db.commit()
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        # a concurrent request for the same pair of users was inserted first
        await db.rollback()
        raise HTTPException(status_code=400, detail=REQUEST_EXISTS_MESSAGE) from e
    return FriendshipResponse(
        message="Friend request sent",
        friendship_id=friendship.id,
        status=friendship.status,
    )


@router.put("/{friendship_id}", response_model=FriendshipResponse)
async def respond_to_friend_request(
    friendship_id: int,
    body: FriendRequestRespond,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendshipResponse:
    try:
        friendship = await respond(db, user, friendship_id, body.action)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    if friendship is None:
        return FriendshipResponse(message="Friend request rejected", friendship_id=friendship_id)
    return FriendshipResponse(
        message="Friend request accepted",
        friendship_id=friendship.id,
        status=friendship.status,
    )
