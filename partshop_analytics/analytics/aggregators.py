"""
Financial Aggregations

Pure functions turning fetched rows into report models. No I/O; identical
input rows always produce identical reports.

Status partitions differ between reports on purpose: the overview splits
orders three ways (completed / open / neither), the monthly revenue report
splits them two ways (completed / everything else). Dashboards already read
both, so each report keeps its own rule.
"""

import math
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

import structlog

from partshop_analytics.analytics.request import as_utc, to_iso
from partshop_analytics.analytics.rows import (
    Amount,
    CustomerOrder,
    ExportBundle,
    OrderRow,
    ProductSale,
)
from partshop_analytics.analytics.schemas import (
    CustomerMetrics,
    CustomerReport,
    CustomerValue,
    DateRange,
    ExportReport,
    ExportRow,
    ExportSummary,
    FulfillmentMetrics,
    MonthlyRevenue,
    OrderCounts,
    OrderStatusReport,
    OverviewReport,
    ProductPerformance,
    ProductReport,
    RevenueGrowth,
    RevenueReport,
    RevenueTotals,
    StatusBucket,
    Trends,
)

logger = structlog.get_logger(__name__)

COMPLETED_STATUSES = frozenset({"delivered", "completed"})
OPEN_STATUSES = frozenset({"pending", "processing", "shipped"})

SECONDS_PER_DAY = 60 * 60 * 24


def to_amount(value: Amount) -> float:
    """Coerce a stored amount to float; null or garbage counts as 0."""
    if value is None:
        return 0.0
    try:
        amount = float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _day_key(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m-%d")


def _month_key(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m")


# =============================================================================
# OVERVIEW
# =============================================================================

def summarize_overview(orders: Iterable[OrderRow], start_iso: str, end_iso: str) -> OverviewReport:
    """
    Revenue totals, order counts and daily / payment-method trends.

    Cancelled (and any other unrecognised) orders add to the total but to
    neither the completed nor the pending bucket.
    """
    revenue = RevenueTotals()
    counts = OrderCounts()
    daily: Dict[str, float] = defaultdict(float)
    by_method: Dict[str, float] = defaultdict(float)

    for order in orders:
        amount = to_amount(order.total_amount)
        revenue.total += amount
        counts.total += 1

        if order.status in COMPLETED_STATUSES:
            revenue.completed += amount
            counts.completed += 1
        elif order.status in OPEN_STATUSES:
            revenue.pending += amount
            counts.pending += 1

        daily[_day_key(order.created_at)] += amount
        by_method[order.payment_method or "unknown"] += amount

    revenue.average_order_value = revenue.total / counts.total if counts.total > 0 else 0.0

    return OverviewReport(
        period=DateRange(start_date=start_iso, end_date=end_iso),
        revenue=revenue,
        orders=counts,
        trends=Trends(daily_revenue=dict(daily), revenue_by_payment_method=dict(by_method)),
    )


# =============================================================================
# REVENUE
# =============================================================================

def month_over_month_growth(previous: float, current: float) -> str:
    """Percentage change formatted to 2 decimals; "0.00" when previous is 0."""
    growth = (current - previous) / previous * 100 if previous > 0 else 0.0
    return f"{growth:.2f}"


def summarize_revenue(orders: Iterable[OrderRow]) -> RevenueReport:
    """Bucket revenue by ``YYYY-MM`` and compute month-over-month growth."""
    buckets: Dict[str, MonthlyRevenue] = {}

    for order in orders:
        month = _month_key(order.created_at)
        bucket = buckets.setdefault(month, MonthlyRevenue())
        amount = to_amount(order.total_amount)
        bucket.total += amount
        bucket.orders += 1

        if order.status in COMPLETED_STATUSES:
            bucket.completed += amount
        else:
            bucket.pending += amount

    # Zero-padded keys sort chronologically
    months = sorted(buckets)
    monthly = {month: buckets[month] for month in months}

    growth = [
        RevenueGrowth(
            month=months[i],
            growth=month_over_month_growth(monthly[months[i - 1]].total, monthly[months[i]].total),
        )
        for i in range(1, len(months))
    ]

    return RevenueReport(
        monthly_revenue=monthly,
        revenue_growth=growth,
        total_revenue=sum(bucket.total for bucket in monthly.values()),
    )


# =============================================================================
# ORDERS
# =============================================================================

def fulfillment_days(order: OrderRow) -> Optional[int]:
    """Whole days from creation to last update, rounded half up."""
    if order.updated_at is None:
        return None
    elapsed = as_utc(order.updated_at) - as_utc(order.created_at)
    return round_half_up(elapsed.total_seconds() / SECONDS_PER_DAY)


def summarize_orders(orders: Iterable[OrderRow]) -> OrderStatusReport:
    """Per-status counts and revenue plus average fulfillment time."""
    distribution: Dict[str, StatusBucket] = {}
    durations: List[int] = []

    for order in orders:
        bucket = distribution.setdefault(order.status or "unknown", StatusBucket())
        bucket.count += 1
        bucket.revenue += to_amount(order.total_amount)

        if order.status in COMPLETED_STATUSES:
            days = fulfillment_days(order)
            if days is not None:
                durations.append(days)

    average = sum(durations) / len(durations) if durations else 0.0

    return OrderStatusReport(
        status_distribution=distribution,
        fulfillment_metrics=FulfillmentMetrics(
            average_fulfillment_time=f"{average:.1f}",
            total_fulfilled_orders=len(durations),
        ),
    )


# =============================================================================
# PRODUCTS
# =============================================================================

def rank_products(sales: Iterable[ProductSale], limit: int = 10) -> ProductReport:
    """Accumulate item revenue per product and keep the top ``limit``."""
    performance: Dict[str, ProductPerformance] = {}
    skipped = 0

    for sale in sales:
        product_id = sale.product_id or (sale.product.id if sale.product else None)
        if not product_id or sale.product is None:
            skipped += 1
            continue

        entry = performance.get(product_id)
        if entry is None:
            entry = ProductPerformance(
                id=product_id,
                name=sale.product.name or "Unknown Product",
                category=sale.product.category or "Uncategorized",
            )
            performance[product_id] = entry

        quantity = sale.quantity or 0
        entry.total_quantity += quantity
        entry.total_revenue += quantity * to_amount(sale.price)
        entry.order_count += 1

    if skipped:
        logger.debug("Skipped order items without product data", skipped=skipped)

    ranked = sorted(performance.values(), key=lambda p: p.total_revenue, reverse=True)

    return ProductReport(
        top_products=ranked[:limit],
        total_products_sold=len(performance),
    )


# =============================================================================
# CUSTOMERS
# =============================================================================

def _full_name(first: Optional[str], last: Optional[str]) -> str:
    return f"{first or ''} {last or ''}".strip()


def rank_customers(orders: Iterable[CustomerOrder], limit: int = 10) -> CustomerReport:
    """Accumulate spend per customer; guest orders cannot be attributed."""
    customers: Dict[str, CustomerValue] = {}
    first_seen: Dict[str, datetime] = {}
    last_seen: Dict[str, datetime] = {}

    for row in orders:
        user_id = row.order.user_id
        if not user_id:
            continue

        created = as_utc(row.order.created_at)
        entry = customers.get(user_id)
        if entry is None:
            user = row.user
            entry = CustomerValue(
                id=user_id,
                email=user.email if user else None,
                name=_full_name(user.first_name, user.last_name) if user else "",
                first_order=to_iso(created),
                last_order=to_iso(created),
            )
            customers[user_id] = entry
            first_seen[user_id] = created
            last_seen[user_id] = created

        entry.order_count += 1
        entry.total_spent += to_amount(row.order.total_amount)

        # Rows are not guaranteed to arrive in created_at order
        if created > last_seen[user_id]:
            last_seen[user_id] = created
            entry.last_order = to_iso(created)
        if created < first_seen[user_id]:
            first_seen[user_id] = created
            entry.first_order = to_iso(created)

    ranked = sorted(customers.values(), key=lambda c: c.total_spent, reverse=True)

    total_customers = len(customers)
    total_revenue = sum(c.total_spent for c in customers.values())
    average = total_revenue / total_customers if total_customers > 0 else 0.0

    return CustomerReport(
        top_customers=ranked[:limit],
        metrics=CustomerMetrics(
            total_customers=total_customers,
            average_customer_value=f"{average:.2f}",
            total_revenue=f"{total_revenue:.2f}",
        ),
    )


# =============================================================================
# EXPORT
# =============================================================================

def flatten_export(bundle: ExportBundle, start_iso: str, end_iso: str) -> ExportReport:
    """
    One row per order item, with order, customer and product fields repeated.

    Orders without items still produce a single row so every order in the
    window shows up in the export.
    """
    rows: List[ExportRow] = []
    revenue = 0.0
    items_total = 0

    for order in bundle.orders:
        user = bundle.users.get(order.user_id) if order.user_id else None
        created = as_utc(order.created_at)
        order_total = to_amount(order.total_amount)
        revenue += order_total

        base = {
            "order_id": order.id,
            "order_date": created.strftime("%Y-%m-%d"),
            "order_time": created.strftime("%H:%M:%S"),
            "customer_email": (user.email if user else None) or "",
            "customer_name": (_full_name(user.first_name, user.last_name) if user else "") or "Unknown",
            "customer_phone": (user.phone if user else None) or "",
            "order_total": order_total,
            "order_status": order.status or "",
            "payment_method": order.payment_method or "",
            "shipping_address": order.shipping_address or "",
            "updated_at": as_utc(order.updated_at or order.created_at).strftime("%Y-%m-%d"),
        }

        items = bundle.items.get(order.id) or []
        if not items:
            rows.append(ExportRow(product_name="No items", **base))
            continue

        for item in items:
            product = bundle.products.get(item.product_id) if item.product_id else None
            quantity = item.quantity or 0
            price = to_amount(item.price)
            items_total += quantity
            rows.append(ExportRow(
                product_name=(product.name if product else None) or "Unknown Product",
                product_sku=(product.sku if product else None) or "",
                product_category=(product.category if product else None) or "",
                item_quantity=quantity,
                item_price=price,
                item_total=price * quantity,
                **base,
            ))

    order_count = len(bundle.orders)
    summary = ExportSummary(
        total_orders=order_count,
        total_items=items_total,
        total_revenue=revenue,
        average_order_value=revenue / order_count if order_count > 0 else 0.0,
        date_range=DateRange(start_date=start_iso, end_date=end_iso),
        exported_rows=len(rows),
        truncated=bundle.truncated,
        message=None if order_count else "No orders found for the specified date range",
    )

    return ExportReport(rows=rows, summary=summary)
