"""
Authentication business logic.

Handles user lookup, registration and credential checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select

from homelearn.auth.password import hash_password, validate_password_strength, verify_password
from homelearn.auth.user_codes import generate_unique_user_code, normalize_user_code
from homelearn.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_code(db: AsyncSession, user_code: str) -> User | None:
    """Fetch a user by their shareable code (case-insensitive)."""
    result = await db.execute(select(User).where(User.user_code == normalize_user_code(user_code)))
    return result.scalar_one_or_none()


async def user_exists(db: AsyncSession, email: str, username: str) -> bool:
    """True if the email or the username is already registered."""
    result = await db.execute(
        select(User.id).where(
            or_(
                func.lower(User.email) == email.strip().lower(),
                User.username == username.strip(),
            )
        )
    )
    return result.first() is not None


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    *,
    is_admin: bool = False,
) -> User:
    """
    Register a new user with username, email and password.

    Validation happens before anything is written.

    Raises:
        PasswordStrengthError: If the password is too short or too long.
        ValueError: If any field is blank or the email/username is taken.
    """
    username = username.strip()
    email = email.strip().lower()
    if not username or not email or not password:
        msg = "All fields are required"
        raise ValueError(msg)

    validate_password_strength(password)

    if await user_exists(db, email, username):
        msg = "User already exists"
        raise ValueError(msg)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        user_code=await generate_unique_user_code(db),
        is_admin=is_admin,
    )
    db.add(user)
    await db.flush()
    logger.info("user_registered", user_id=user.id, username=username, is_admin=is_admin)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Raises:
        ValueError: If credentials are invalid. The message never reveals
            whether the email exists.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("login_failed", email=email)
        msg = "Invalid credentials"
        raise ValueError(msg)

    logger.info("login_succeeded", user_id=user.id, is_admin=user.is_admin)
    return user
