"""
Exception handlers.

Server-side failures (status >= 500, failing integrations and unhandled
exceptions) are written to the partner's domain log when the request is
authenticated, then answered as {"detail": ...}.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from backoffice.services.domain.log_service import record_log_detached
from shared.config.constants import LogLevel, LogSection
from shared.config.logging import get_logger
from shared.security.rate_limit import rate_limit_exceeded_handler
from shared.utils.exceptions import AppException

logger = get_logger(__name__)


def _record(request: Request, message: str, level: str, **details) -> None:
    partner_id = getattr(request.state, "partner_id", None)
    if partner_id is None:
        return
    record_log_detached(
        partner_id=partner_id,
        section=LogSection.SYSTEM,
        level=level,
        message=message,
        action=f"{request.method} {request.url.path}",
        user_id=getattr(request.state, "user_id", None),
        details={"request_id": getattr(request.state, "request_id", None), **details},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        _record(request, str(exc.detail), LogLevel.ERROR, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    _record(request, "Unexpected server error", LogLevel.CRITICAL, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
