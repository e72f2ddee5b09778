"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from coinledger.auth.router import router as auth_router
from coinledger.config import get_settings
from coinledger.database import Database
from coinledger.health.router import router as health_router
from coinledger.ledger.engine import LedgerEngine
from coinledger.ledger.router import router as ledger_router
from coinledger.middleware import setup_middleware
from coinledger.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the store handle and ledger engine on startup, dispose them on shutdown."""
    settings = get_settings()
    database = Database.from_settings(settings)
    if settings.auto_create_schema:
        await database.create_schema()

    app.state.database = database
    app.state.ledger = LedgerEngine(
        database,
        referral_bonus=settings.referral_bonus,
        click_task_type=settings.click_task_type,
    )
    logger.info("app_started", environment=settings.environment)

    yield

    logger.info("app_shutting_down")
    await database.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Coin Ledger API",
        description="Accounts, sign-in and coin rewards backed by a transactional ledger",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(ledger_router)

    return app


app = create_app()
