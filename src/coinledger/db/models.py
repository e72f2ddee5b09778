"""ORM models for accounts, reward facts and revoked tokens.

The uniqueness constraints on ``referrals.referred_id`` and
``tasks (user_id, task_type)`` are what make one-time rewards one-time;
application-level existence checks are only an early rejection path.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coinledger.db.base import Base, BigIntPK


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    coins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    tasks: Mapped[list[TaskCompletion]] = relationship("TaskCompletion", back_populates="user")
    coin_clicks: Mapped[list[CoinClick]] = relationship("CoinClick", back_populates="user")


# ---------------------------------------------------------------------------
# Reward facts
# ---------------------------------------------------------------------------


class Referral(Base):
    """One row per referred user, linking them to their referrer."""

    __tablename__ = "referrals"
    __table_args__ = (UniqueConstraint("referred_id", name="uq_referrals_referred_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    referrer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    referred_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    referrer: Mapped[User] = relationship("User", foreign_keys=[referrer_id])
    referred: Mapped[User] = relationship("User", foreign_keys=[referred_id])


class TaskCompletion(Base):
    """One-time task reward."""

    __tablename__ = "tasks"
    __table_args__ = (UniqueConstraint("user_id", "task_type", name="uq_tasks_user_task"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_type: Mapped[str] = mapped_column(String(128), nullable=False)
    coins_earned: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user: Mapped[User] = relationship("User", back_populates="tasks")


class CoinClick(Base):
    """Repeatable click reward; no uniqueness."""

    __tablename__ = "coin_clicks"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    coins_earned: Mapped[int] = mapped_column(BigInteger, nullable=False)
    clicked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user: Mapped[User] = relationship("User", back_populates="coin_clicks")


# ---------------------------------------------------------------------------
# Auth: revoked bearer tokens
# ---------------------------------------------------------------------------


class RevokedToken(Base):
    """Bearer tokens invalidated by signout, kept until they would expire anyway."""

    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    revoked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
