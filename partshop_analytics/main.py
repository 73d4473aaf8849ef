"""
FastAPI Production Application

Main entry point for the Parts Shop Financial Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from partshop_analytics.config import get_settings
from partshop_analytics.config.logging import configure_logging
from partshop_analytics.database.connection import close_database, create_session_factory, init_database
from partshop_analytics.serving.api.main import create_api_app

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = app.state.settings
    configure_logging(settings=settings)

    logger.info("Starting Financial Analytics API", environment=settings.app_env)

    # Without a database the API still answers type=test and health checks
    try:
        engine = await init_database(settings)
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        logger.info("Database initialized")
    except Exception as e:
        logger.warning("Database init failed", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_database(app.state.engine)
    app.state.engine = None
    app.state.session_factory = None


app = create_api_app(get_settings(), lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
