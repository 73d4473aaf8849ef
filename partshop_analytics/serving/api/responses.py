"""
Analytics Responder

Serializes report results and errors into the ``{success, data}`` envelope
the storefront dashboard consumes.
"""

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from partshop_analytics.analytics.errors import AnalyticsError, ClientError
from partshop_analytics.analytics.export import export_filename, render_export_csv
from partshop_analytics.analytics.request import ExportFormat, ReportRequest, to_iso, utcnow
from partshop_analytics.analytics.schemas import ExportReport
from partshop_analytics.analytics.service import ReportResult
from partshop_analytics.config import Settings, get_settings

logger = structlog.get_logger(__name__)

DEGRADED_HEADER = "X-Analytics-Degraded"
TEST_MESSAGE = "Analytics API is working!"


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def report_response(result: ReportResult, report_request: ReportRequest) -> Response:
    """Render a built report as JSON (or CSV for a csv export)."""
    if isinstance(result.report, ExportReport):
        if report_request.export_format == ExportFormat.CSV:
            return Response(
                content=render_export_csv(result.report),
                media_type="text/csv; charset=utf-8",
                headers={
                    "Content-Disposition": f'attachment; filename="{export_filename(result.report)}"',
                },
            )
        data: Any = [row.model_dump() for row in result.report.rows]
    else:
        data = result.report.model_dump(by_alias=True, mode="json")

    payload: Dict[str, Any] = {"success": True, "data": data}
    payload.update(result.extra)

    headers = {}
    if result.degraded is not None:
        logger.warning(
            "Serving degraded report",
            report_type=result.report_type.value,
            reason=result.degraded.reason,
            error=result.degraded.error,
        )
        headers[DEGRADED_HEADER] = result.report_type.value

    return JSONResponse(content=payload, headers=headers)


def test_response(report_request: ReportRequest, store_configured: bool) -> JSONResponse:
    """
    Liveness answer for ``type=test``; never touches the store.

    ``startDateStr``, ``endDateStr`` and ``supabaseConnected`` are the keys
    older dashboard builds read; they mirror the newer names.
    """
    return JSONResponse(content={
        "success": True,
        "message": TEST_MESSAGE,
        "timestamp": to_iso(utcnow()),
        "dateRange": {
            "startDate": report_request.start_iso,
            "endDate": report_request.end_iso,
            "startDateStr": report_request.start_iso,
            "endDateStr": report_request.end_iso,
        },
        "storeConfigured": store_configured,
        "supabaseConnected": store_configured,
    })


def error_payload(exc: AnalyticsError, settings: Settings) -> Dict[str, Any]:
    """Envelope for ``exc``; upstream detail is only exposed in development."""
    payload: Dict[str, Any] = {"success": False, "message": exc.message}
    payload.update(exc.extra)

    if not isinstance(exc, ClientError):
        if settings.is_development:
            payload["error"] = exc.detail or exc.message
        else:
            payload["error"] = "Internal server error"
        payload["type"] = exc.report_type or "unknown"

    return payload


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Financial analytics error",
            error_type=type(exc).__name__,
            message=exc.message,
            detail=exc.detail,
            report_type=exc.report_type,
        )
    else:
        logger.info("Rejected analytics request", error_type=type(exc).__name__, message=exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc, _settings(request)),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on ``app``."""
    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
