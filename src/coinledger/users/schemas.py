"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from coinledger.auth.schemas import AccountResponse
from coinledger.schemas import CamelModel


class UserStateResponse(AccountResponse):
    is_authenticated: bool = True


class ReferralStatsEntry(CamelModel):
    referred_user_id: int
    referred_username: str
    created_at: datetime


class TaskStatsEntry(CamelModel):
    task_type: str
    coins_earned: int
    completed_at: datetime


class UserStatsResponse(CamelModel):
    referrals: list[ReferralStatsEntry]
    tasks: list[TaskStatsEntry]


class ReferralLinkResponse(CamelModel):
    referral_link: str


__all__ = [
    "AccountResponse",
    "ReferralLinkResponse",
    "ReferralStatsEntry",
    "TaskStatsEntry",
    "UserStateResponse",
    "UserStatsResponse",
]
