"""
Financial Analytics Module
"""
from .request import ReportRequest, ReportType, ExportFormat, parse_report_request
from .sources import OrderSource, SqlOrderSource
from .service import ReportResult, Degraded, build_report

__all__ = [
    "ReportRequest",
    "ReportType",
    "ExportFormat",
    "parse_report_request",
    "OrderSource",
    "SqlOrderSource",
    "ReportResult",
    "Degraded",
    "build_report",
]
