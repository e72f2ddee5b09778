"""Reward router: /add-coin and /add-coins."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from coinledger.auth.dependencies import get_current_user
from coinledger.db.models import User
from coinledger.dependencies import get_ledger
from coinledger.ledger.engine import LedgerEngine
from coinledger.ledger.schemas import AddCoinsRequest, CoinsResponse

router = APIRouter(tags=["Rewards"])


@router.post("/add-coin", response_model=CoinsResponse)
async def add_coin(
    user: User = Depends(get_current_user),
    ledger: LedgerEngine = Depends(get_ledger),
) -> CoinsResponse:
    """Legacy flat +1."""
    coins = await ledger.grant_legacy_coin(user.id)
    return CoinsResponse(message="Coin added successfully", coins=coins)


@router.post("/add-coins", response_model=CoinsResponse)
async def add_coins(
    body: AddCoinsRequest,
    user: User = Depends(get_current_user),
    ledger: LedgerEngine = Depends(get_ledger),
) -> CoinsResponse:
    """Grant a task or click reward. Repeating a one-time task answers 400 TaskAlreadyCompleted."""
    coins = await ledger.grant_reward(user.id, body.task_type, body.amount)
    if body.task_type == ledger.click_task_type:
        message = "Coins added successfully"
    else:
        message = "Task completed successfully"
    return CoinsResponse(message=message, coins=coins)
