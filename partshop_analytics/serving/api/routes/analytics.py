"""
Financial Analytics Endpoint

Single GET endpoint selecting one of the financial reports by ``type``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
import structlog

from partshop_analytics.analytics.errors import AnalyticsError, ClientError, classify_store_error
from partshop_analytics.analytics.request import ReportType, parse_report_request
from partshop_analytics.analytics.service import REPORTS_SERVED, build_report
from partshop_analytics.analytics.sources import OrderSource
from partshop_analytics.config import Settings
from partshop_analytics.serving.api.dependencies import get_app_settings, get_order_source
from partshop_analytics.serving.api.responses import report_response, test_response

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/financial")
async def get_financial_analytics(
    report_type: str = Query("overview", alias="type", description="Report: overview, revenue, orders, products, customers, export, test"),
    period: Optional[str] = Query(None, description="Window in days ending now (default 30)"),
    start_date: Optional[str] = Query(None, alias="startDate", description="Inclusive start date, YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Inclusive end date, YYYY-MM-DD"),
    export_format: str = Query("json", alias="format", description="Export body format: json or csv"),
    source: Optional[OrderSource] = Depends(get_order_source),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Financial reporting for the admin dashboard.

    ``startDate``/``endDate`` override ``period`` when both are present.
    """
    params = {
        "type": report_type,
        "period": period,
        "startDate": start_date,
        "endDate": end_date,
        "format": export_format,
    }

    try:
        report_request = parse_report_request(
            params,
            default_period_days=settings.analytics.default_period_days,
            max_period_days=settings.analytics.max_period_days,
        )
    except ClientError:
        REPORTS_SERVED.labels(report_type="invalid", outcome="client_error").inc()
        raise

    logger.info(
        "Financial analytics requested",
        report_type=report_request.report_type.value,
        start=report_request.start_iso,
        end=report_request.end_iso,
        custom_range=report_request.custom_range,
    )

    if report_request.report_type == ReportType.TEST:
        return test_response(report_request, store_configured=source is not None)

    try:
        result = await build_report(report_request, source, settings.analytics)
    except AnalyticsError as e:
        e.report_type = report_request.report_type.value
        raise
    except Exception as e:
        logger.exception("Unexpected analytics failure", report_type=report_request.report_type.value)
        REPORTS_SERVED.labels(report_type=report_request.report_type.value, outcome="server_error").inc()
        error = classify_store_error(e)
        error.report_type = report_request.report_type.value
        raise error from e

    return report_response(result, report_request)


@router.options("/financial")
async def financial_analytics_options() -> Response:
    """Bare OPTIONS requests (no CORS preflight headers) are accepted."""
    return Response(status_code=200)
