"""FastAPI application factory for shortline.

Creates the application with:
- User, short and blob routers mapping operation results to HTTP
- Health probes
- Lifecycle management for database, cache and blob storage
- Correlation ids for request logging
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from shortline.api.errors import (
    ShortlineApiError,
    generic_exception_handler,
    shortline_api_exception_handler,
)
from shortline.api.middleware import CorrelationMiddleware
from shortline.api.routers import blobs, health, shorts, users
from shortline.cache import RedisCache, close_redis, get_redis
from shortline.config import settings
from shortline.observability import configure_logging
from shortline.persistence.db import close_db, get_session_factory, init_db
from shortline.security import get_token_service
from shortline.services import Services, build_services
from shortline.storage import close_blob_storage, get_blob_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize database connection pool and tables
    - Initialize Redis connection
    - Wire the stores

    On shutdown:
    - Close blob storage, Redis and database connections

    Applications created with pre-built services skip the wiring.
    """
    configure_logging(json_format=settings.log_json, level=settings.log_level)

    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        logger.info(f"Starting shortline ({settings.env})")
        await init_db()
        session_factory = get_session_factory()
        app.state.session_factory = session_factory
        app.state.services = build_services(
            session_factory,
            RedisCache(await get_redis()),
            get_blob_storage(),
            get_token_service(),
        )
        logger.info("shortline startup complete")

    yield

    if owns_services:
        logger.info("Shutting down shortline")
        await close_blob_storage()
        await close_redis()
        await close_db()
        logger.info("shortline shutdown complete")


def create_app(services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built stores (tests); built during startup otherwise
    """
    app = FastAPI(
        title="shortline",
        description="Short-video service consistency core",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(
        ShortlineApiError, cast(ExceptionHandler, shortline_api_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(shorts.router)
    app.include_router(blobs.router)

    return app
