"""Account store: user rows and their stored coin balance.

All functions take the caller's session and never commit; they take part
in whatever transaction the Ledger Engine (or auth flow) has open.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from coinledger.db.models import User
from coinledger.errors import DuplicateUsername, NotFound

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def find_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID, or None."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_by_id(db: AsyncSession, user_id: int) -> User:
    """Fetch a user by ID. Raises NotFound."""
    user = await find_by_id(db, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


async def get_by_username(db: AsyncSession, username: str) -> User:
    """Fetch a user by exact username. Raises NotFound."""
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound(f"User '{username}' not found")
    return user


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_account(db: AsyncSession, username: str, email: str) -> User:
    """
    Insert a new account with a zero balance.

    The unique index on username decides duplicates, so two concurrent
    signups for the same name cannot both succeed.

    Raises:
        DuplicateUsername: If the username is taken.
    """
    user = User(
        username=username,
        email=email,
        coins=0,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateUsername(f"Username '{username}' already exists") from exc
    logger.info("account_created", user_id=user.id, username=username)
    return user


async def adjust_balance(db: AsyncSession, user_id: int, delta: int) -> int:
    """Atomically add ``delta`` to the stored balance and return the new value."""
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(coins=User.coins + delta)
        .returning(User.coins)
        .execution_options(synchronize_session=False)
    )
    coins = result.scalar_one_or_none()
    if coins is None:
        raise NotFound(f"User {user_id} not found")
    return coins


async def touch_last_login(db: AsyncSession, user: User) -> None:
    user.last_login = datetime.now(timezone.utc)
    await db.flush()
