"""
Application lifespan handler.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from backoffice.models import Base
from shared.config.logging import get_logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine
from shared.infrastructure.events import close_redis_pool

logger = get_logger("backoffice")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Server will not start with insecure configuration."
            )
        logger.warning("Running with insecure defaults (acceptable for development only)")

    logger.info("Starting back-office API", port=settings.api_port, env=settings.environment)

    if settings.create_tables_on_startup:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")

    yield

    logger.info("Shutting down back-office API")
    await close_redis_pool()
    logger.info("Redis connection pool closed")
