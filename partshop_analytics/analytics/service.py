"""
Report Service

Runs one financial report: fetch through an ``OrderSource``, aggregate,
and hand a ``ReportResult`` to the responder.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import structlog
from prometheus_client import Counter, Histogram
from pydantic import BaseModel

from partshop_analytics.analytics.aggregators import (
    flatten_export,
    rank_customers,
    rank_products,
    summarize_orders,
    summarize_overview,
    summarize_revenue,
)
from partshop_analytics.analytics.errors import StoreError, StoreUnavailableError
from partshop_analytics.analytics.request import ReportRequest, ReportType
from partshop_analytics.analytics.schemas import ProductReport
from partshop_analytics.analytics.sources import OrderSource
from partshop_analytics.config.settings import AnalyticsSettings

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

REPORTS_SERVED = Counter(
    "partshop_analytics_reports_total",
    "Financial reports served",
    ["report_type", "outcome"],
)

REPORT_DURATION = Histogram(
    "partshop_analytics_report_seconds",
    "Time spent building financial reports",
    ["report_type"],
)

REPORTS_DEGRADED = Counter(
    "partshop_analytics_degraded_total",
    "Reports answered with an empty fallback after a store failure",
    ["report_type"],
)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class Degraded:
    """Marks a report answered with fallback data"""
    reason: str
    error: str


@dataclass
class ReportResult:
    """Outcome of one report build"""
    report_type: ReportType
    report: BaseModel
    extra: Dict[str, Any] = field(default_factory=dict)
    degraded: Optional[Degraded] = None

    @property
    def is_degraded(self) -> bool:
        return self.degraded is not None


# =============================================================================
# BUILDERS
# =============================================================================

async def _product_report(
    request: ReportRequest,
    source: OrderSource,
    settings: AnalyticsSettings,
) -> ReportResult:
    try:
        sales = await source.fetch_product_sales(request.start, request.end)
    except StoreError as e:
        # Dashboard keeps rendering; the failure surfaces in logs and metrics
        REPORTS_DEGRADED.labels(report_type=request.report_type.value).inc()
        return ReportResult(
            report_type=request.report_type,
            report=ProductReport(),
            degraded=Degraded(reason="product_sales_unavailable", error=e.detail or e.message),
        )
    return ReportResult(
        report_type=request.report_type,
        report=rank_products(sales, limit=settings.top_n),
    )


async def _build(
    request: ReportRequest,
    source: OrderSource,
    settings: AnalyticsSettings,
) -> ReportResult:
    report_type = request.report_type

    if report_type == ReportType.OVERVIEW:
        orders = await source.fetch_orders(request.start, request.end)
        report = summarize_overview(orders, request.start_iso, request.end_iso)
    elif report_type == ReportType.REVENUE:
        report = summarize_revenue(await source.fetch_orders(request.start, request.end))
    elif report_type == ReportType.ORDERS:
        report = summarize_orders(await source.fetch_orders(request.start, request.end))
    elif report_type == ReportType.PRODUCTS:
        return await _product_report(request, source, settings)
    elif report_type == ReportType.CUSTOMERS:
        customer_orders = await source.fetch_customer_orders(request.start, request.end)
        report = rank_customers(customer_orders, limit=settings.top_n)
    elif report_type == ReportType.EXPORT:
        bundle = await source.fetch_export(request.start, request.end, settings.export_max_orders)
        export = flatten_export(bundle, request.start_iso, request.end_iso)
        return ReportResult(
            report_type=report_type,
            report=export,
            extra={"summary": export.summary.model_dump(by_alias=True, exclude_none=True)},
        )
    else:
        raise ValueError(f"No builder for report type {report_type.value}")

    return ReportResult(report_type=report_type, report=report)


async def build_report(
    request: ReportRequest,
    source: Optional[OrderSource],
    settings: AnalyticsSettings,
) -> ReportResult:
    """
    Fetch and aggregate the report selected by ``request``.

    Raises:
        StoreUnavailableError: no database is configured for this process
        StoreError: the store failed (except for products, which degrade)
    """
    if source is None:
        raise StoreUnavailableError(detail="Database not initialized")

    label = request.report_type.value
    logger.info(
        "Building financial report",
        report_type=label,
        start=request.start_iso,
        end=request.end_iso,
    )

    started = time.perf_counter()
    try:
        result = await _build(request, source, settings)
    except StoreError:
        REPORTS_SERVED.labels(report_type=label, outcome="server_error").inc()
        raise
    finally:
        REPORT_DURATION.labels(report_type=label).observe(time.perf_counter() - started)

    outcome = "degraded" if result.is_degraded else "success"
    REPORTS_SERVED.labels(report_type=label, outcome=outcome).inc()
    logger.info(
        "Financial report built",
        report_type=label,
        outcome=outcome,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return result
