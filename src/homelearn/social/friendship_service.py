"""Friendship business logic.

Rules:
- One row per unordered pair of users; both orderings are checked
- Requests start as pending; only the addressee may accept or reject
- Accept keeps the row as accepted, reject deletes it
- Users are addressed by their shareable user code
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homelearn.auth.service import get_user_by_code
from homelearn.db.models import Friendship, User

logger = structlog.get_logger()

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
VALID_ACTIONS = ("accept", "reject")
REQUEST_EXISTS_MESSAGE = "A friend request already exists between you and this user"


class FriendshipExistsError(ValueError):
    """A request or friendship already links the two users."""


@dataclass(frozen=True)
class PendingRequest:
    friendship: Friendship
    other: User
    direction: str  # "sent" | "received"


@dataclass(frozen=True)
class FriendshipView:
    friends: list[tuple[Friendship, User]] = field(default_factory=list)
    pending_requests: list[PendingRequest] = field(default_factory=list)


async def get_friendship_between(db: AsyncSession, user_a: int, user_b: int) -> Friendship | None:
    """Row linking two users, whichever of them sent the request."""
    result = await db.execute(
        select(Friendship).where(
            or_(
                and_(Friendship.requester_id == user_a, Friendship.addressee_id == user_b),
                and_(Friendship.requester_id == user_b, Friendship.addressee_id == user_a),
            )
        )
    )
    return result.scalars().first()


async def send_request(db: AsyncSession, requester: User, user_code: str) -> Friendship:
    """
    Send a friend request to the user owning ``user_code``.

    Raises:
        LookupError: If no user has that code.
        ValueError: If the code is the requester's own.
        FriendshipExistsError: If a row already exists in either direction.
        IntegrityError: If a concurrent request for the same pair won the insert.
    """
    target = await get_user_by_code(db, user_code)
    if target is None:
        msg = "User not found"
        raise LookupError(msg)
    if target.id == requester.id:
        msg = "You cannot send a friend request to yourself"
        raise ValueError(msg)

    existing = await get_friendship_between(db, requester.id, target.id)
    if existing is not None:
        if existing.status == STATUS_ACCEPTED:
            msg = "You are already friends with this user"
        else:
            msg = REQUEST_EXISTS_MESSAGE
        raise FriendshipExistsError(msg)

    low, high = sorted((requester.id, target.id))
    friendship = Friendship(
        requester_id=requester.id,
        addressee_id=target.id,
        user_low_id=low,
        user_high_id=high,
        status=STATUS_PENDING,
    )
    db.add(friendship)
    await db.flush()

    logger.info("friend_request_sent", friendship_id=friendship.id, requester_id=requester.id, addressee_id=target.id)
    return friendship


async def respond(db: AsyncSession, addressee: User, friendship_id: int, action: str) -> Friendship | None:
    """
    Accept or reject a pending request addressed to ``addressee``.

    Returns the accepted row, or None when the request was rejected (deleted).

    Raises:
        ValueError: If the action is not accept/reject.
        LookupError: If there is no pending request with that id for this user.
    """
    if action not in VALID_ACTIONS:
        msg = "Invalid action. Use 'accept' or 'reject'"
        raise ValueError(msg)

    result = await db.execute(
        select(Friendship).where(
            Friendship.id == friendship_id,
            Friendship.addressee_id == addressee.id,
            Friendship.status == STATUS_PENDING,
        )
    )
    friendship = result.scalar_one_or_none()
    if friendship is None:
        msg = "Friend request not found"
        raise LookupError(msg)

    if action == "reject":
        await db.delete(friendship)
        await db.flush()
        logger.info("friend_request_rejected", friendship_id=friendship_id, addressee_id=addressee.id)
        return None

    friendship.status = STATUS_ACCEPTED
    friendship.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("friend_request_accepted", friendship_id=friendship_id, addressee_id=addressee.id)
    return friendship


async def list_friendships(db: AsyncSession, user: User) -> FriendshipView:
    """Accepted friends and pending requests (sent and received) for a user."""
    result = await db.execute(
        select(Friendship)
        .where(or_(Friendship.requester_id == user.id, Friendship.addressee_id == user.id))
        .options(selectinload(Friendship.requester), selectinload(Friendship.addressee))
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )

    view = FriendshipView()
    for friendship in result.scalars().all():
        sent = friendship.requester_id == user.id
        other = friendship.addressee if sent else friendship.requester
        if friendship.status == STATUS_ACCEPTED:
            view.friends.append((friendship, other))
        else:
            view.pending_requests.append(
                PendingRequest(friendship=friendship, other=other, direction="sent" if sent else "received")
            )
    return view
