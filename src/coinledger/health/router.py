"""Root, health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from coinledger.config import get_settings
from coinledger.database import Database
from coinledger.dependencies import get_database
from coinledger.errors import TransientStoreFailure

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Hello world"


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(database: Database = Depends(get_database)) -> dict[str, object]:
    """Readiness probe: checks database connectivity."""
    checks: dict[str, object] = {}

    try:
        await database.ping()
        checks["database"] = "ok"
    except TransientStoreFailure as exc:
        checks["database"] = f"error: {exc.__cause__ or exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
