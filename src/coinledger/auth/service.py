"""
Authentication business logic.

Handles signup (with the optional referral bonus), signin and token
revocation on signout.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from coinledger.accounts.service import create_account, get_by_username, touch_last_login
from coinledger.db.base import MAX_BIGINT
from coinledger.db.models import RevokedToken, User
from coinledger.errors import CoinLedgerError, ValidationFailure

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from coinledger.auth.jwt import TokenClaims
    from coinledger.database import Database
    from coinledger.ledger.engine import LedgerEngine

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


def parse_referral_code(code: str | int) -> int:
    """A referral code is the referrer's user id."""
    try:
        referrer_id = int(str(code).strip())
    except ValueError:
        msg = f"Malformed referral code: {code!r}"
        raise ValidationFailure(msg) from None
    if referrer_id <= 0 or referrer_id > MAX_BIGINT:
        msg = f"Malformed referral code: {code!r}"
        raise ValidationFailure(msg)
    return referrer_id


async def sign_up(
    database: Database,
    ledger: LedgerEngine,
    username: str,
    email: str,
    referral_code: str | int | None = None,
) -> User:
    """
    Create an account, then try to pay the referral bonus.

    The account commits on its own; the referral runs in a separate
    transaction and any failure there is logged, never raised, so a bad
    referral code cannot undo or block the signup.

    Raises:
        DuplicateUsername: If the username is taken.
    """
    async with database.transaction() as db:
        user = await create_account(db, username, email)

    if referral_code is not None and str(referral_code).strip():
        try:
            referrer_id = parse_referral_code(referral_code)
            await ledger.grant_signup_referral(referrer_id, user.id)
        except CoinLedgerError as exc:
            logger.warning(
                "referral_bonus_skipped",
                referred_id=user.id,
                referral_code=str(referral_code),
                reason=exc.code,
                error=exc.message,
            )
        except (SQLAlchemyError, OverflowError) as exc:
            logger.error(
                "referral_bonus_failed",
                referred_id=user.id,
                referral_code=str(referral_code),
                error=str(exc),
                exc_info=exc,
            )

    return user


# ---------------------------------------------------------------------------
# Signin / signout
# ---------------------------------------------------------------------------


async def sign_in(database: Database, username: str) -> User:
    """Look up the user and stamp last_login. Raises NotFound."""
    async with database.transaction() as db:
        user = await get_by_username(db, username)
        await touch_last_login(db, user)
    logger.info("user_signed_in", user_id=user.id)
    return user


async def is_token_revoked(db: AsyncSession, jti: str) -> bool:
    result = await db.execute(select(RevokedToken.jti).where(RevokedToken.jti == jti))
    return result.first() is not None


async def sign_out(database: Database, claims: TokenClaims) -> None:
    """Revoke the presented token. Signing out twice is a no-op.

    The primary key on ``jti`` decides: a second (or concurrent) revocation
    of the same token collides and is treated as already done.
    """
    try:
        async with database.transaction() as db:
            db.add(
                RevokedToken(
                    jti=claims.jti,
                    user_id=claims.user_id,
                    revoked_at=datetime.now(timezone.utc),
                    expires_at=claims.expires_at,
                )
            )
            await db.flush()
            # Expired revocations no longer matter; prune them opportunistically.
            await db.execute(delete(RevokedToken).where(RevokedToken.expires_at < datetime.now(timezone.utc)))
    except IntegrityError:
        logger.info("token_already_revoked", user_id=claims.user_id)
        return
    logger.info("user_signed_out", user_id=claims.user_id)
