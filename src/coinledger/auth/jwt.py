"""
Bearer token management.

Tokens carry the caller's ``userId`` and ``username`` plus a unique ``jti``
so signout can revoke a single token. HMAC (HS*) algorithms sign with the
configured secret; RSA/EC algorithms load PEM keys from disk.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from coinledger.config import get_settings
from coinledger.errors import ExpiredToken, InvalidToken

_private_key: str | None = None
_public_key: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    username: str
    jti: str
    expires_at: datetime


def _load_keys() -> tuple[str, str]:
    """Return (signing key, verification key), cached after the first call."""
    global _private_key, _public_key  # noqa: PLW0603
    if _private_key is None or _public_key is None:
        settings = get_settings()
        if settings.jwt_algorithm.startswith("HS"):
            _private_key = _public_key = settings.jwt_secret_key
        else:
            _private_key = Path(settings.jwt_private_key_path).read_text()
            _public_key = Path(settings.jwt_public_key_path).read_text()
    return _private_key, _public_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _private_key, _public_key  # noqa: PLW0603
    _private_key = None
    _public_key = None


def issue_token(user_id: int, username: str, expires_delta: timedelta | None = None) -> str:
    """
    Create an access token for an authenticated user.

    Args:
        user_id: The user's database ID.
        username: The user's unique username.
        expires_delta: Lifetime override; defaults to the configured 24 hours.

    Returns:
        Encoded JWT string.
    """
    private_key, _ = _load_keys()
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.jwt_token_expire_hours)
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "userId": user_id,
        "username": username,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + expires_delta,
        "iss": settings.jwt_issuer,
    }
    return jwt.encode(payload, private_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenClaims:
    """
    Verify and decode a bearer token.

    Raises:
        ExpiredToken: If the signature is valid but the token has expired.
        InvalidToken: For any other decoding or claim failure.
    """
    _, public_key = _load_keys()
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredToken() from None
    except jwt.InvalidTokenError as e:
        raise InvalidToken(str(e)) from e

    user_id = payload.get("userId")
    username = payload.get("username")
    if not isinstance(user_id, int) or not isinstance(username, str):
        raise InvalidToken("Token is missing user claims")

    return TokenClaims(
        user_id=user_id,
        username=username,
        jti=payload["jti"],
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
