"""
Export Rendering

Turns the flattened export report into a CSV download with a summary footer.
"""

import polars as pl

from partshop_analytics.analytics.schemas import ExportReport

EMPTY_EXPORT_BODY = "No data available for the selected period"

EXPORT_SCHEMA = {
    "order_id": pl.Utf8,
    "order_date": pl.Utf8,
    "order_time": pl.Utf8,
    "customer_email": pl.Utf8,
    "customer_name": pl.Utf8,
    "customer_phone": pl.Utf8,
    "order_total": pl.Float64,
    "order_status": pl.Utf8,
    "payment_method": pl.Utf8,
    "shipping_address": pl.Utf8,
    "product_name": pl.Utf8,
    "product_sku": pl.Utf8,
    "product_category": pl.Utf8,
    "item_quantity": pl.Int64,
    "item_price": pl.Float64,
    "item_total": pl.Float64,
    "updated_at": pl.Utf8,
}


def export_frame(report: ExportReport) -> pl.DataFrame:
    """Export rows as a DataFrame with a fixed column order."""
    return pl.DataFrame(
        [row.model_dump() for row in report.rows],
        schema=EXPORT_SCHEMA,
    )


def render_export_csv(report: ExportReport) -> str:
    """
    Render the export as CSV followed by a summary block.

    Returns the placeholder sentence when the window has no orders.
    """
    if not report.rows:
        return EMPTY_EXPORT_BODY

    body = export_frame(report).write_csv(float_precision=2)
    summary = report.summary
    footer = [
        "",
        "SUMMARY",
        f"Total Orders,{summary.total_orders}",
        f"Total Revenue,${summary.total_revenue:.2f}",
        f"Date Range,{summary.date_range.start_date} to {summary.date_range.end_date}",
    ]
    if summary.truncated:
        footer.append("Truncated,true")

    return body + "\n".join(footer) + "\n"


def export_filename(report: ExportReport) -> str:
    start = report.summary.date_range.start_date[:10]
    end = report.summary.date_range.end_date[:10]
    return f"financial_report_{start}_{end}.csv"
