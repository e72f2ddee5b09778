"""Shared FastAPI dependencies.

The store handle and ledger engine are built in the app lifespan and
live on ``app.state``.
"""

from fastapi import Request

from coinledger.database import Database
from coinledger.ledger.engine import LedgerEngine


def get_database(request: Request) -> Database:
    """Return the app's store handle."""
    return request.app.state.database


def get_ledger(request: Request) -> LedgerEngine:
    """Return the app's ledger engine."""
    return request.app.state.ledger
