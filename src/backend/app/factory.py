"""
Application factory for FastAPI.

This module provides the create_app() function that creates and configures
the FastAPI application instance.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from api.v1 import api_router
from app.routes import health_router, root_router
from core.config import settings
from core.exceptions import LawBotError, lawbot_error_handler
from core.instrumentator import instrumentator
from core.lifespan import lifespan
from core.rate_limit import limiter


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with middleware,
    exception handlers, routes and instrumentation.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.api.app_name,
        version=settings.api.app_version,
        description="Case management backend: officer administration, case assignment and notifications",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors rendered as {"success": false, "error": ..., "code": ...}
    app.add_exception_handler(LawBotError, lawbot_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    )

    app.include_router(root_router)
    app.include_router(health_router)
    app.include_router(api_router, prefix=settings.api.api_v1_prefix)

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics")

    return app
