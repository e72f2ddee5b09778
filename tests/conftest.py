"""Shared test fixtures.

Every test gets its own SQLite file so tests never share state; the app
and the engine go through the same ``Database`` handle code as production.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from coinledger.auth.jwt import reset_keys
from coinledger.config import get_settings
from coinledger.database import Database
from coinledger.db.models import User
from coinledger.ledger.engine import LedgerEngine
from coinledger.main import create_app


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'coinledger.db'}"


@pytest.fixture(autouse=True)
def test_settings(db_url: str, monkeypatch: pytest.MonkeyPatch):
    """Point settings at the per-test database and a fixed HMAC secret."""
    monkeypatch.setenv("COINLEDGER_DATABASE_URL", db_url)
    monkeypatch.setenv("COINLEDGER_AUTO_CREATE_SCHEMA", "true")
    monkeypatch.setenv("COINLEDGER_JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("COINLEDGER_JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
    monkeypatch.setenv("COINLEDGER_LOG_FORMAT", "console")
    monkeypatch.setenv("COINLEDGER_FRONTEND_BASE_URL", "https://coins.example.com")
    get_settings.cache_clear()
    reset_keys()
    yield get_settings()
    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def database(db_url: str) -> AsyncGenerator[Database, None]:
    """A store handle with the schema created."""
    db = Database(db_url, pool_size=10, store_timeout=10.0)
    await db.create_schema()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def ledger(database: Database) -> LedgerEngine:
    return LedgerEngine(database)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, with the lifespan running."""
    app = create_app()
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


async def make_user(database: Database, username: str, email: str | None = None) -> User:
    """Create an account directly through the account store."""
    from coinledger.accounts.service import create_account

    async with database.transaction() as db:
        return await create_account(db, username, email or f"{username}@example.com")


async def signup(client: AsyncClient, username: str, referral_code: str | int | None = None) -> dict:
    """Sign up via the API and return the response body."""
    body: dict[str, object] = {"username": username, "email": f"{username}@example.com"}
    if referral_code is not None:
        body["referralCode"] = referral_code
    response = await client.post("/signup", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
