"""
Analytics Errors

Exception taxonomy for the financial analytics endpoint. Every failure leaves
the route as an ``AnalyticsError`` so a single handler renders the envelope.
"""

from typing import Any, Dict, Optional, Sequence


class AnalyticsError(Exception):
    """Base error carrying the HTTP status and user-facing message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        detail: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        report_type: Optional[str] = None,
    ):
        self.message = message or self.default_message
        # Raw upstream text; only shown to clients in development
        self.detail = detail
        self.extra = extra or {}
        self.report_type = report_type
        super().__init__(self.message)


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class ClientError(AnalyticsError):
    """The request itself is invalid."""
    status_code = 400
    default_message = "Invalid request"


class InvalidReportType(ClientError):
    default_message = "Invalid analytics type"

    def __init__(self, requested: str, available: Sequence[str]):
        super().__init__(
            extra={"availableTypes": list(available)},
            report_type=requested,
        )
        self.requested = requested


class InvalidDateRange(ClientError):
    default_message = "Invalid date range"


class InvalidExportFormat(ClientError):
    default_message = "Invalid export format"

    def __init__(self, requested: str, available: Sequence[str]):
        super().__init__(extra={"availableFormats": list(available)})
        self.requested = requested


# =============================================================================
# UPSTREAM (STORE) ERRORS
# =============================================================================

class StoreError(AnalyticsError):
    """The order store failed while answering a query."""


class UpstreamConfigError(StoreError):
    """Store is reachable but misconfigured for this service."""


class MissingRelationError(UpstreamConfigError):
    default_message = "Database table not found. Please check database setup."


class PermissionDeniedError(UpstreamConfigError):
    default_message = "Database permission error. Please check RLS policies."


class UpstreamTransientError(StoreError):
    default_message = "Database connection error. Please try again."


class StoreUnavailableError(UpstreamTransientError):
    """No database was initialized for this process."""


def classify_store_error(exc: BaseException) -> StoreError:
    """
    Map a driver or SQLAlchemy failure onto the store error taxonomy.

    Classification is by message text, since asyncpg, PostgREST and SQLite
    all phrase the same conditions differently but consistently.
    """
    if isinstance(exc, StoreError):
        return exc

    text = str(exc)
    lowered = text.lower()

    if ("relation" in lowered and "does not exist" in lowered) or "no such table" in lowered:
        return MissingRelationError(detail=text)
    if "permission denied" in lowered:
        return PermissionDeniedError(detail=text)
    if "connection" in lowered or isinstance(exc, (ConnectionError, TimeoutError)):
        return UpstreamTransientError(detail=text)
    return StoreError(detail=text)
