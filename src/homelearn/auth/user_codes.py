"""Shareable user codes used to address friend requests.

Codes look like ``USER7K2QXA``: a fixed prefix plus six A-Z0-9 characters
from a cryptographic random source. Lookups are case-insensitive.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from homelearn.db.models import User

USER_CODE_PREFIX = "USER"
USER_CODE_CHARSET = string.ascii_uppercase + string.digits
USER_CODE_SUFFIX_LENGTH = 6


def generate_user_code() -> str:
    """Generate a random user code."""
    suffix = "".join(secrets.choice(USER_CODE_CHARSET) for _ in range(USER_CODE_SUFFIX_LENGTH))
    return f"{USER_CODE_PREFIX}{suffix}"


def normalize_user_code(code: str) -> str:
    """Normalize a user code for lookup."""
    return code.strip().upper()


async def generate_unique_user_code(db: AsyncSession) -> str:
    """Generate a user code that doesn't already exist in the database."""
    for _ in range(10):
        code = generate_user_code()
        existing = await db.execute(select(User.id).where(User.user_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    raise RuntimeError("Failed to generate unique user code after 10 attempts")
