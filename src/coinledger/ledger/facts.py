"""Reward ledger: append-only referral, task and click facts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from coinledger.db.models import CoinClick, Referral, TaskCompletion, User
from coinledger.errors import DuplicateReferral, DuplicateTask

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def record_referral(db: AsyncSession, referrer_id: int, referred_id: int) -> Referral:
    """Insert the referral fact. Raises DuplicateReferral if referred_id already has one."""
    referral = Referral(
        referrer_id=referrer_id,
        referred_id=referred_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(referral)
    try:
        await db.flush()
    except IntegrityError as exc:
        msg = f"User {referred_id} already has a referral"
        raise DuplicateReferral(msg) from exc
    return referral


async def has_completed_task(db: AsyncSession, user_id: int, task_type: str) -> bool:
    """Advisory check only; the unique constraint is the real guard."""
    result = await db.execute(
        select(TaskCompletion.id).where(
            TaskCompletion.user_id == user_id,
            TaskCompletion.task_type == task_type,
        )
    )
    return result.first() is not None


async def record_task_completion(db: AsyncSession, user_id: int, task_type: str, amount: int) -> TaskCompletion:
    """Insert the task fact. Raises DuplicateTask on a (user_id, task_type) collision."""
    task = TaskCompletion(
        user_id=user_id,
        task_type=task_type,
        coins_earned=amount,
        completed_at=datetime.now(timezone.utc),
    )
    db.add(task)
    try:
        await db.flush()
    except IntegrityError as exc:
        msg = f"Task '{task_type}' already recorded for user {user_id}"
        raise DuplicateTask(msg) from exc
    return task


async def record_coin_click(db: AsyncSession, user_id: int, amount: int) -> CoinClick:
    click = CoinClick(
        user_id=user_id,
        coins_earned=amount,
        clicked_at=datetime.now(timezone.utc),
    )
    db.add(click)
    await db.flush()
    return click


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


async def list_referrals(db: AsyncSession, referrer_id: int) -> list[tuple[Referral, str]]:
    """Referrals issued by a user, oldest first, with the referred username."""
    result = await db.execute(
        select(Referral, User.username)
        .join(User, User.id == Referral.referred_id)
        .where(Referral.referrer_id == referrer_id)
        .order_by(Referral.created_at.asc(), Referral.id.asc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_tasks(db: AsyncSession, user_id: int) -> list[TaskCompletion]:
    result = await db.execute(
        select(TaskCompletion)
        .where(TaskCompletion.user_id == user_id)
        .order_by(TaskCompletion.completed_at.asc(), TaskCompletion.id.asc())
    )
    return list(result.scalars().all())


async def count_clicks(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(CoinClick.id)).where(CoinClick.user_id == user_id))
    return result.scalar_one()


async def fact_total(db: AsyncSession, user_id: int, referral_bonus: int) -> int:
    """Sum of every credit the fact tables account for."""
    clicks = await db.execute(
        select(func.coalesce(func.sum(CoinClick.coins_earned), 0)).where(CoinClick.user_id == user_id)
    )
    tasks = await db.execute(
        select(func.coalesce(func.sum(TaskCompletion.coins_earned), 0)).where(TaskCompletion.user_id == user_id)
    )
    referrals = await db.execute(select(func.count(Referral.id)).where(Referral.referrer_id == user_id))
    return int(clicks.scalar_one()) + int(tasks.scalar_one()) + referral_bonus * int(referrals.scalar_one())
