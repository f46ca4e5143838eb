"""
Health checks.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backoffice import __version__
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db_context
from shared.infrastructure.events import redis_health
from shared.utils.schemas import HealthResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health_check() -> dict:
    """Basic liveness check."""
    return {"status": "ok", "service": "backoffice-api", "environment": settings.environment}


def database_health() -> bool:
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        return False


@router.get("/detailed", response_model=HealthResponse)
async def detailed_health_check():
    """
    Database and Redis connectivity. Redis is only checked when change
    events are enabled. Answers 503 when a dependency is down.
    """
    database = database_health()
    redis_ok = await redis_health() if settings.events_enabled else None
    healthy = database and redis_ok is not False
    body = HealthResponse(
        status="ok" if healthy else "degraded",
        database=database,
        redis=redis_ok,
        version=__version__,
    )
    if not healthy:
        return JSONResponse(content=body.model_dump(), status_code=503)
    return body
