"""Ledger engine: the single writer of coin balances.

Every grant records its fact row and moves the balance inside one
transaction. One-time rewards are guarded by the fact tables' unique
constraints; the existence check before the insert only rejects early.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import structlog

from coinledger.accounts.service import adjust_balance, find_by_id, get_by_id
from coinledger.database import Database
from coinledger.errors import (
    DuplicateReferral,
    DuplicateTask,
    NotFound,
    ReferralAlreadyRecorded,
    TaskAlreadyCompleted,
    ValidationFailure,
)
from coinledger.ledger.facts import (
    count_clicks,
    fact_total,
    has_completed_task,
    list_referrals,
    list_tasks,
    record_coin_click,
    record_referral,
    record_task_completion,
)

logger = structlog.get_logger()

DEFAULT_REFERRAL_BONUS = 500
DEFAULT_CLICK_TASK_TYPE = "click_coin"
# Per-grant ceiling; keeps every balance far inside the BIGINT column.
MAX_AMOUNT = 2**31 - 1


@dataclass(frozen=True)
class ReferralEntry:
    referred_id: int
    referred_username: str
    created_at: datetime


@dataclass(frozen=True)
class TaskEntry:
    task_type: str
    coins_earned: int
    completed_at: datetime


@dataclass(frozen=True)
class LedgerStats:
    """Read-side projection of a user's reward history."""

    referrals: list[ReferralEntry] = field(default_factory=list)
    tasks: list[TaskEntry] = field(default_factory=list)
    click_count: int = 0


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationFailure("amount must be an integer")
    if amount < 0:
        raise ValidationFailure("amount must not be negative")
    if amount > MAX_AMOUNT:
        raise ValidationFailure(f"amount must not exceed {MAX_AMOUNT}")


class LedgerEngine:
    """Grants coin rewards atomically and enforces per-kind idempotency."""

    def __init__(
        self,
        database: Database,
        *,
        referral_bonus: int = DEFAULT_REFERRAL_BONUS,
        click_task_type: str = DEFAULT_CLICK_TASK_TYPE,
    ) -> None:
        self.database = database
        self.referral_bonus = referral_bonus
        self.click_task_type = click_task_type

    # -----------------------------------------------------------------------
    # Grants
    # -----------------------------------------------------------------------

    async def grant_signup_referral(self, referrer_id: int, referred_user_id: int) -> int:
        """Record the referral and credit the referrer. Returns the referrer's new balance.

        Raises:
            NotFound: If either user does not exist.
            ValidationFailure: If a user tries to refer themselves.
            ReferralAlreadyRecorded: If the referred user already has a referral.
        """
        if referrer_id == referred_user_id:
            raise ValidationFailure("A user cannot refer themselves")

        async with self.database.transaction() as db:
            if await find_by_id(db, referrer_id) is None:
                raise NotFound(f"Referrer {referrer_id} not found")
            await get_by_id(db, referred_user_id)
            try:
                await record_referral(db, referrer_id, referred_user_id)
            except DuplicateReferral as exc:
                raise ReferralAlreadyRecorded(str(exc)) from exc
            coins = await adjust_balance(db, referrer_id, self.referral_bonus)

        logger.info(
            "referral_bonus_granted",
            referrer_id=referrer_id,
            referred_id=referred_user_id,
            bonus=self.referral_bonus,
            new_balance=coins,
        )
        return coins

    async def grant_task_reward(self, user_id: int, task_type: str, amount: int) -> int:
        """Credit a one-time task. Returns the new balance.

        Raises:
            TaskAlreadyCompleted: If (user_id, task_type) was rewarded before,
                including when a concurrent request won the race.
        """
        _check_amount(amount)
        if not task_type:
            raise ValidationFailure("taskType is required")
        if task_type == self.click_task_type:
            raise ValidationFailure(f"'{task_type}' is reserved for click rewards")

        try:
            async with self.database.transaction() as db:
                if await has_completed_task(db, user_id, task_type):
                    raise TaskAlreadyCompleted(f"Task '{task_type}' already completed")
                # Balance first: it raises NotFound for an unknown user and
                # locks the user row; a duplicate fact rolls the credit back.
                coins = await adjust_balance(db, user_id, amount)
                await record_task_completion(db, user_id, task_type, amount)
        except DuplicateTask as exc:
            logger.info("task_reward_race_lost", user_id=user_id, task_type=task_type)
            raise TaskAlreadyCompleted(f"Task '{task_type}' already completed") from exc

        logger.info("task_reward_granted", user_id=user_id, task_type=task_type, amount=amount, new_balance=coins)
        return coins

    async def grant_click_reward(self, user_id: int, amount: int) -> int:
        """Credit a click. Unlimited; returns the new balance."""
        _check_amount(amount)
        async with self.database.transaction() as db:
            coins = await adjust_balance(db, user_id, amount)
            await record_coin_click(db, user_id, amount)

        logger.debug("click_reward_granted", user_id=user_id, amount=amount, new_balance=coins)
        return coins

    async def grant_legacy_coin(self, user_id: int) -> int:
        """Flat +1 with no fact row (the old single-coin endpoint)."""
        async with self.database.transaction() as db:
            coins = await adjust_balance(db, user_id, 1)
        logger.debug("legacy_coin_granted", user_id=user_id, new_balance=coins)
        return coins

    async def grant_reward(self, user_id: int, task_type: str, amount: int) -> int:
        """Route an add-coins request: the click sentinel is repeatable, anything else is one-time."""
        if task_type == self.click_task_type:
            return await self.grant_click_reward(user_id, amount)
        return await self.grant_task_reward(user_id, task_type, amount)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get_balance(self, user_id: int) -> int:
        async with self.database.session() as db:
            user = await get_by_id(db, user_id)
            return user.coins

    async def get_stats(self, user_id: int) -> LedgerStats:
        async with self.database.session() as db:
            referrals = await list_referrals(db, user_id)
            tasks = await list_tasks(db, user_id)
            clicks = await count_clicks(db, user_id)

        return LedgerStats(
            referrals=[
                ReferralEntry(
                    referred_id=referral.referred_id,
                    referred_username=username,
                    created_at=referral.created_at,
                )
                for referral, username in referrals
            ],
            tasks=[
                TaskEntry(task_type=task.task_type, coins_earned=task.coins_earned, completed_at=task.completed_at)
                for task in tasks
            ],
            click_count=clicks,
        )

    async def ledger_total(self, user_id: int) -> int:
        """Balance implied by the fact tables alone (excludes legacy +1 credits)."""
        async with self.database.session() as db:
            return await fact_total(db, user_id, self.referral_bonus)
