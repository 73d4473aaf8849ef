"""
FastAPI Application Factory

Creates and configures the analytics API application.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from partshop_analytics.config import Settings, get_settings
from partshop_analytics.serving.api.middleware import REQUEST_ID_HEADER, RequestLoggingMiddleware
from partshop_analytics.serving.api.responses import DEGRADED_HEADER, register_exception_handlers
from partshop_analytics.serving.api.routes import analytics_router, health_router


def create_api_app(settings: Optional[Settings] = None, lifespan=None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings for this app instance (cached settings when omitted)
        lifespan: Optional lifespan context manager

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Parts Shop Financial Analytics API",
        description="Revenue, order, product and customer reporting for the storefront admin",
        version=settings.version,
        debug=settings.debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = None
    app.state.session_factory = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=[DEGRADED_HEADER, REQUEST_ID_HEADER],
    )

    # Exports can be large
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api", tags=["Health"])
    app.include_router(analytics_router, prefix="/api/analytics", tags=["Analytics"])

    return app
