"""Bootstrap administrator account, created at startup from settings."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.auth.service import get_user_by_email, register_user
from homelearn.config import Settings
from homelearn.db.models import User

logger = structlog.get_logger()


async def ensure_bootstrap_admin(db: AsyncSession, settings: Settings) -> User | None:
    """Make sure the configured admin exists. Idempotent.

    An existing account with the configured email is promoted in place; its
    password is left unchanged. Returns None when no admin is configured.
    """
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not email or not password:
        return None

    user = await get_user_by_email(db, email)
    if user is not None:
        if not user.is_admin:
            user.is_admin = True
            await db.commit()
            logger.info("bootstrap_admin_promoted", user_id=user.id)
        return user

    user = await register_user(db, settings.bootstrap_admin_username, email, password, is_admin=True)
    await db.commit()
    logger.info("bootstrap_admin_created", user_id=user.id)
    return user
