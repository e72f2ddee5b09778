"""FastAPI authentication dependencies."""

from __future__ import annotations

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coinledger.accounts.service import find_by_id
from coinledger.auth.jwt import TokenClaims, verify_token
from coinledger.auth.service import is_token_revoked
from coinledger.database import Database
from coinledger.db.models import User
from coinledger.dependencies import get_database
from coinledger.errors import InvalidToken

_bearer = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    database: Database = Depends(get_database),
) -> TokenClaims:
    """
    Verify the bearer token and reject revoked ones.

    Expired tokens raise ExpiredToken, which the error handlers turn into a
    401 flagged with ``isAuthenticated: false``.
    """
    if credentials is None:
        raise InvalidToken("Not authenticated")

    claims = verify_token(credentials.credentials)

    async with database.session() as db:
        if await is_token_revoked(db, claims.jti):
            raise InvalidToken("Token has been revoked")
    return claims


async def get_current_user(
    claims: TokenClaims = Depends(get_token_claims),
    database: Database = Depends(get_database),
) -> User:
    """Load the authenticated user. The read session is closed before the handler runs."""
    async with database.session() as db:
        user = await find_by_id(db, claims.user_id)
    if user is None:
        raise InvalidToken("User not found")
    return user
