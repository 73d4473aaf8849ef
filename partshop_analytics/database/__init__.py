"""
Database Module
"""
from .connection import (
    create_engine,
    create_session_factory,
    init_database,
    close_database,
    session_scope,
    check_database_health,
)
from .models import Base

__all__ = [
    "create_engine",
    "create_session_factory",
    "init_database",
    "close_database",
    "session_scope",
    "check_database_health",
    "Base",
]
