import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .get_db import Base
from .settings import settings
from .throttling import rate_limiter_manager

logger = logging.getLogger("startup")


def install_loop_exception_handler(loop: asyncio.AbstractEventLoop):
    def handler(loop, context):
        exc = context.get("exception")
        logger.critical(
            "Unhandled error in background task: %s",
            context.get("message"),
            exc_info=exc,
        )
        if settings.EXIT_ON_UNHANDLED_ERROR:
            logging.shutdown()
            os._exit(1)

    loop.set_exception_handler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    install_loop_exception_handler(asyncio.get_running_loop())

    engine = getattr(app.state, "engine", None)
    if engine is not None and settings.AUTO_CREATE_TABLES:
        try:
            # importing the models registers every table on Base.metadata
            from resi_app.models import models  # noqa: F401

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured.")
        except Exception:
            logger.exception("Failed to create database tables")

    if settings.CACHE_ENABLED:
        try:
            await app.state.cache.connect()
        except Exception:
            logger.exception("Redis cache connection failed, continuing without cache")

    try:
        await rate_limiter_manager.connect()
    except Exception:
        logger.exception("Rate limiter connection failed")

    logger.info("Application startup complete.")

    yield

    try:
        await app.state.cache.close()
    except Exception:
        logger.exception("Failed to close Redis cache")

    try:
        await rate_limiter_manager.close()
    except Exception:
        logger.exception("Failed to close rate limiter")

    if engine is not None:
        await engine.dispose()
    logger.info("Application shutdown complete.")
