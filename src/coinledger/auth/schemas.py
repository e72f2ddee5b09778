"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from pydantic import EmailStr, Field, StrictInt, StrictStr, field_validator

from coinledger.schemas import CamelModel, MessageResponse


class SignupRequest(CamelModel):
    """Signup request. The referral code is the referrer's user id."""

    username: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    referral_code: StrictInt | StrictStr | None = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "username must not be blank"
            raise ValueError(msg)
        return v


class SigninRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=64)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class AccountResponse(CamelModel):
    """Public view of an account."""

    user_id: int
    username: str
    email: str
    coins: int


class SignupResponse(AccountResponse):
    token: str


class SigninResponse(AccountResponse):
    token: str
    is_logged_in: bool = True


class SignoutResponse(MessageResponse):
    is_logged_in: bool = False
