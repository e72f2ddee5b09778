"""User router: profile, state, stats and referral link."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from coinledger.auth.dependencies import get_current_user
from coinledger.config import get_settings
from coinledger.db.models import User
from coinledger.dependencies import get_ledger
from coinledger.ledger.engine import LedgerEngine
from coinledger.users.schemas import (
    AccountResponse,
    ReferralLinkResponse,
    ReferralStatsEntry,
    TaskStatsEntry,
    UserStateResponse,
    UserStatsResponse,
)

router = APIRouter(tags=["Users"])


def _account_response(user: User) -> AccountResponse:
    """Build an AccountResponse from a User model."""
    return AccountResponse(user_id=user.id, username=user.username, email=user.email, coins=user.coins)


@router.get("/user", response_model=AccountResponse)
async def get_user(user: User = Depends(get_current_user)) -> AccountResponse:
    """Get own account."""
    return _account_response(user)


@router.get("/user/state", response_model=UserStateResponse)
async def get_user_state(user: User = Depends(get_current_user)) -> UserStateResponse:
    """Session probe for the frontend: same as /user plus isAuthenticated."""
    return UserStateResponse(
        user_id=user.id,
        username=user.username,
        email=user.email,
        coins=user.coins,
        is_authenticated=True,
    )


@router.get("/user/stats", response_model=UserStatsResponse)
async def get_user_stats(
    user: User = Depends(get_current_user),
    ledger: LedgerEngine = Depends(get_ledger),
) -> UserStatsResponse:
    """Referrals issued and tasks completed by the caller."""
    stats = await ledger.get_stats(user.id)
    return UserStatsResponse(
        referrals=[
            ReferralStatsEntry(
                referred_user_id=entry.referred_id,
                referred_username=entry.referred_username,
                created_at=entry.created_at,
            )
            for entry in stats.referrals
        ],
        tasks=[
            TaskStatsEntry(task_type=entry.task_type, coins_earned=entry.coins_earned, completed_at=entry.completed_at)
            for entry in stats.tasks
        ],
    )


@router.get("/referral-link", response_model=ReferralLinkResponse)
async def get_referral_link(user: User = Depends(get_current_user)) -> ReferralLinkResponse:
    settings = get_settings()
    base = settings.frontend_base_url.rstrip("/")
    return ReferralLinkResponse(referral_link=f"{base}/signup?ref={user.id}")
