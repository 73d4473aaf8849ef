"""
Report Request Parsing

Resolves the analytics query string into a report type and a UTC time window.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Mapping, Optional

from partshop_analytics.analytics.errors import (
    InvalidDateRange,
    InvalidExportFormat,
    InvalidReportType,
)


class ReportType(str, Enum):
    """Analytics report selectors"""
    OVERVIEW = "overview"
    REVENUE = "revenue"
    ORDERS = "orders"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    EXPORT = "export"
    TEST = "test"


class ExportFormat(str, Enum):
    """Export body formats"""
    JSON = "json"
    CSV = "csv"


AVAILABLE_TYPES = [t.value for t in ReportType]
AVAILABLE_FORMATS = [f.value for f in ExportFormat]

END_OF_DAY = time(23, 59, 59, 999000)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render ``value`` like ``Date.prototype.toISOString`` (ms precision, Z suffix)."""
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class ReportRequest:
    """Fully resolved analytics request"""
    report_type: ReportType
    start: datetime
    end: datetime
    export_format: ExportFormat = ExportFormat.JSON
    custom_range: bool = False

    @property
    def start_iso(self) -> str:
        return to_iso(self.start)

    @property
    def end_iso(self) -> str:
        return to_iso(self.end)


def _param(params: Mapping[str, Optional[str]], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_calendar_date(name: str, raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise InvalidDateRange(f"{name} must be a date in YYYY-MM-DD format, got '{raw}'")


def _parse_period(raw: Optional[str], default: int, maximum: int) -> int:
    if raw is None:
        return default
    try:
        period = int(raw)
    except ValueError:
        raise InvalidDateRange(f"period must be a whole number of days, got '{raw}'")
    if period < 1 or period > maximum:
        raise InvalidDateRange(f"period must be between 1 and {maximum} days")
    return period


def parse_report_request(
    params: Mapping[str, Optional[str]],
    now: Optional[datetime] = None,
    default_period_days: int = 30,
    max_period_days: int = 3650,
) -> ReportRequest:
    """
    Resolve a query-string mapping into a ``ReportRequest``.

    ``startDate``/``endDate`` take precedence over ``period`` only when both
    are given. The end date is inclusive through 23:59:59.999 UTC.

    Raises:
        InvalidReportType: ``type`` is not a known report
        InvalidDateRange: malformed dates, reversed range or bad period
        InvalidExportFormat: ``format`` is neither json nor csv on an export
    """
    raw_type = _param(params, "type") or ReportType.OVERVIEW.value
    try:
        report_type = ReportType(raw_type)
    except ValueError:
        raise InvalidReportType(raw_type, AVAILABLE_TYPES)

    # format only shapes the export body; other reports ignore it
    export_format = ExportFormat.JSON
    if report_type == ReportType.EXPORT:
        raw_format = (_param(params, "format") or ExportFormat.JSON.value).lower()
        try:
            export_format = ExportFormat(raw_format)
        except ValueError:
            raise InvalidExportFormat(raw_format, AVAILABLE_FORMATS)

    raw_start = _param(params, "startDate")
    raw_end = _param(params, "endDate")

    if raw_start and raw_end:
        start_day = _parse_calendar_date("startDate", raw_start)
        end_day = _parse_calendar_date("endDate", raw_end)
        if start_day > end_day:
            raise InvalidDateRange("startDate must not be after endDate")
        return ReportRequest(
            report_type=report_type,
            start=datetime.combine(start_day, time.min, tzinfo=timezone.utc),
            end=datetime.combine(end_day, END_OF_DAY, tzinfo=timezone.utc),
            export_format=export_format,
            custom_range=True,
        )

    period = _parse_period(_param(params, "period"), default_period_days, max_period_days)
    end = as_utc(now) if now is not None else utcnow()
    return ReportRequest(
        report_type=report_type,
        start=end - timedelta(days=period),
        end=end,
        export_format=export_format,
    )
