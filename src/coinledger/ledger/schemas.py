"""Request/response schemas for reward endpoints."""

from __future__ import annotations

from pydantic import Field, StrictInt

from coinledger.ledger.engine import MAX_AMOUNT
from coinledger.schemas import CamelModel, MessageResponse


class AddCoinsRequest(CamelModel):
    """Reward request. ``taskType`` equal to the click sentinel is a repeatable click."""

    amount: StrictInt = Field(..., ge=0, le=MAX_AMOUNT)
    task_type: str = Field(..., min_length=1, max_length=128)


class CoinsResponse(MessageResponse):
    coins: int
