"""Authentication router: /signup, /signin, /signout."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status

from coinledger.auth.dependencies import get_token_claims
from coinledger.auth.jwt import TokenClaims, issue_token
from coinledger.auth.schemas import (
    SigninRequest,
    SigninResponse,
    SignoutResponse,
    SignupRequest,
    SignupResponse,
)
from coinledger.auth.service import sign_in, sign_out, sign_up
from coinledger.database import Database
from coinledger.dependencies import get_database, get_ledger
from coinledger.ledger.engine import LedgerEngine

logger = structlog.get_logger()

router = APIRouter(tags=["Authentication"])


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    database: Database = Depends(get_database),
    ledger: LedgerEngine = Depends(get_ledger),
) -> SignupResponse:
    """Create an account; a valid referral code pays the referrer a bonus."""
    user = await sign_up(
        database,
        ledger,
        username=body.username,
        email=str(body.email),
        referral_code=body.referral_code,
    )
    return SignupResponse(
        user_id=user.id,
        username=user.username,
        email=user.email,
        coins=user.coins,
        token=issue_token(user.id, user.username),
    )


@router.post("/signin", response_model=SigninResponse)
async def signin(
    body: SigninRequest,
    database: Database = Depends(get_database),
) -> SigninResponse:
    """Sign in by username and receive a fresh bearer token."""
    user = await sign_in(database, body.username)
    return SigninResponse(
        user_id=user.id,
        username=user.username,
        email=user.email,
        coins=user.coins,
        token=issue_token(user.id, user.username),
        is_logged_in=True,
    )


@router.post("/signout", response_model=SignoutResponse)
async def signout(
    claims: TokenClaims = Depends(get_token_claims),
    database: Database = Depends(get_database),
) -> SignoutResponse:
    """Revoke the bearer token used for this request."""
    await sign_out(database, claims)
    return SignoutResponse(message="Signed out successfully", is_logged_in=False)
