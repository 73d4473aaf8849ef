"""
Health Check Endpoints

Liveness, readiness and metrics endpoints for the hosting platform.
"""

from typing import Dict

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from partshop_analytics.database.connection import check_database_health
from partshop_analytics.serving.api.dependencies import get_app_settings

router = APIRouter()


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Liveness check endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """
    Readiness check endpoint.

    Returns 200 once the database answers, 503 otherwise.
    """
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_not_initialized"}

    db_health = await check_database_health(session_factory)
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}


@router.get("/info")
async def api_info(request: Request) -> Dict[str, str]:
    """API information endpoint."""
    settings = get_app_settings(request)
    return {
        "name": "Parts Shop Financial Analytics API",
        "version": settings.version,
        "environment": settings.app_env,
    }


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus exposition of the process metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
