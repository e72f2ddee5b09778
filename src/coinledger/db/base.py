"""Declarative base shared by all ORM models."""

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

# SQLite only auto-increments an INTEGER PRIMARY KEY.
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

# Largest value a BIGINT column (ids, balances) can hold.
MAX_BIGINT = 2**63 - 1


class Base(DeclarativeBase):
    pass
