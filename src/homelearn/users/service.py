"""User profile business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from homelearn.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 20


async def update_profile(
    db: AsyncSession,
    user: User,
    username: str | None = None,
    biography: str | None = None,
    profile_pic: str | None = None,
) -> User:
    """
    Update profile fields. A blank username keeps the current one.

    Raises:
        ValueError: If the username is already taken by someone else.
    """
    if username is not None and username.strip() and username.strip() != user.username:
        new_username = username.strip()
        result = await db.execute(
            select(User.id)
            .where(User.username == new_username)
            .where(User.id != user.id)
        )
        if result.scalar_one_or_none() is not None:
            msg = "Username already taken"
            raise ValueError(msg)
        user.username = new_username

    if biography is not None:
        user.biography = biography
    if profile_pic is not None:
        user.profile_pic = profile_pic

    await db.flush()
    logger.info("profile_updated", user_id=user.id, avatar_changed=profile_pic is not None)
    return user


async def search_users(db: AsyncSession, searcher: User, query: str) -> list[User]:
    """
    Users whose username or user code contains ``query``, excluding the searcher.

    Raises:
        ValueError: If the query is shorter than two characters.
    """
    query = query.strip()
    if len(query) < MIN_SEARCH_LENGTH:
        msg = f"Search query must be at least {MIN_SEARCH_LENGTH} characters"
        raise ValueError(msg)

    pattern = f"%{query}%"
    result = await db.execute(
        select(User)
        .where(User.id != searcher.id)
        .where(User.username.ilike(pattern) | User.user_code.ilike(pattern))
        .order_by(User.username)
        .limit(SEARCH_LIMIT)
    )
    return list(result.scalars().all())
