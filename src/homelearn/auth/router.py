"""Authentication router: /api/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.auth.jwt import access_token_ttl, create_access_token
from homelearn.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from homelearn.auth.service import authenticate_user, register_user
from homelearn.database import get_session
from homelearn.db.models import User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def user_response(user: User) -> UserResponse:
    """Build a UserResponse from a User model."""
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        user_code=user.user_code,
        is_admin=user.is_admin,
        profile_pic=user.profile_pic,
        biography=user.biography,
        created_at=user.created_at,
    )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> RegisterResponse:
    """Create an account. Does not log the user in."""
    try:
        user = await register_user(db, body.username, body.email, body.password)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        # lost a race against a concurrent registration with the same email/username
        await db.rollback()
        raise HTTPException(status_code=400, detail="User already exists") from e

    return RegisterResponse(message="User registered successfully", user=user_response(user))


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange email + password for a bearer token."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    return TokenResponse(
        access_token=create_access_token(user.id),
        expires_in=int(access_token_ttl().total_seconds()),
        user=user_response(user),
    )
