"""Global error handler: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coinledger.errors import CoinLedgerError, ExpiredToken, InvalidToken

logger = structlog.get_logger()


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(CoinLedgerError)
    async def domain_exception_handler(request: Request, exc: CoinLedgerError) -> JSONResponse:
        """Map domain errors to their status code and stable error code."""
        content: dict[str, object] = {"detail": exc.message, "code": exc.code}
        headers: dict[str, str] | None = None
        if isinstance(exc, ExpiredToken):
            content["isAuthenticated"] = False
        if isinstance(exc, InvalidToken):
            headers = {"WWW-Authenticate": "Bearer"}
        if exc.status_code >= 500:
            logger.warning("domain_error", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Missing or malformed request fields answer 400 ValidationFailure."""
        return JSONResponse(
            status_code=400,
            content={
                "detail": "Validation error",
                "code": "ValidationFailure",
                "errors": jsonable_errors(exc),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Pydantic error dicts minus the parts that are not JSON-serializable."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
