"""
Request Dependencies

Builds per-request collaborators from the application state so handlers
never reach for module-level clients. Tests override ``get_order_source``.
"""

from typing import Optional

from fastapi import Request

from partshop_analytics.analytics.sources import OrderSource, SqlOrderSource
from partshop_analytics.config import Settings, get_settings


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_order_source(request: Request) -> Optional[OrderSource]:
    """
    A fresh order source for this request, or None when the database was
    never initialized (the ``test`` report still works without one).
    """
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        return None

    settings = get_app_settings(request)
    return SqlOrderSource(
        session_factory,
        max_concurrency=settings.analytics.fetch_concurrency,
        id_chunk_size=settings.analytics.id_chunk_size,
    )
