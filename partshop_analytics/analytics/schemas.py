"""
Report Models

Pydantic models for every analytics report. Field names are snake_case in
Python and serialize to the camelCase keys the admin dashboard reads.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateRange(CamelModel):
    start_date: str
    end_date: str


# =============================================================================
# OVERVIEW
# =============================================================================

class RevenueTotals(CamelModel):
    total: float = 0.0
    completed: float = 0.0
    pending: float = 0.0
    average_order_value: float = 0.0


class OrderCounts(CamelModel):
    total: int = 0
    completed: int = 0
    pending: int = 0


class Trends(CamelModel):
    daily_revenue: Dict[str, float] = Field(default_factory=dict)
    revenue_by_payment_method: Dict[str, float] = Field(default_factory=dict)


class OverviewReport(CamelModel):
    """Headline revenue and order counts for the window"""
    period: DateRange
    revenue: RevenueTotals
    orders: OrderCounts
    trends: Trends


# =============================================================================
# REVENUE
# =============================================================================

class MonthlyRevenue(CamelModel):
    total: float = 0.0
    completed: float = 0.0
    pending: float = 0.0
    orders: int = 0


class RevenueGrowth(CamelModel):
    month: str
    growth: str


class RevenueReport(CamelModel):
    """Revenue bucketed by calendar month with month-over-month growth"""
    monthly_revenue: Dict[str, MonthlyRevenue] = Field(default_factory=dict)
    revenue_growth: List[RevenueGrowth] = Field(default_factory=list)
    total_revenue: float = 0.0


# =============================================================================
# ORDERS
# =============================================================================

class StatusBucket(CamelModel):
    count: int = 0
    revenue: float = 0.0


class FulfillmentMetrics(CamelModel):
    average_fulfillment_time: str = "0.0"
    total_fulfilled_orders: int = 0


class OrderStatusReport(CamelModel):
    """Status distribution and fulfillment time"""
    status_distribution: Dict[str, StatusBucket] = Field(default_factory=dict)
    fulfillment_metrics: FulfillmentMetrics = Field(default_factory=FulfillmentMetrics)


# =============================================================================
# PRODUCTS
# =============================================================================

class ProductPerformance(CamelModel):
    id: str
    name: str
    category: str
    total_quantity: int = 0
    total_revenue: float = 0.0
    order_count: int = 0


class ProductReport(CamelModel):
    """Best selling products by revenue"""
    top_products: List[ProductPerformance] = Field(default_factory=list)
    total_products_sold: int = 0


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerValue(CamelModel):
    id: str
    email: Optional[str] = None
    name: str = ""
    order_count: int = 0
    total_spent: float = 0.0
    first_order: str
    last_order: str


class CustomerMetrics(CamelModel):
    total_customers: int = 0
    average_customer_value: str = "0.00"
    total_revenue: str = "0.00"


class CustomerReport(CamelModel):
    """Top customers by spend"""
    top_customers: List[CustomerValue] = Field(default_factory=list)
    metrics: CustomerMetrics = Field(default_factory=CustomerMetrics)


# =============================================================================
# EXPORT
# =============================================================================

class ExportRow(BaseModel):
    """One CSV-ready line; keys stay snake_case as spreadsheet headers"""
    order_id: str
    order_date: str
    order_time: str
    customer_email: str = ""
    customer_name: str = "Unknown"
    customer_phone: str = ""
    order_total: float = 0.0
    order_status: str = ""
    payment_method: str = ""
    shipping_address: str = ""
    product_name: str
    product_sku: str = ""
    product_category: str = ""
    item_quantity: int = 0
    item_price: float = 0.0
    item_total: float = 0.0
    updated_at: str


class ExportSummary(CamelModel):
    total_orders: int = 0
    total_items: int = 0
    total_revenue: float = 0.0
    average_order_value: float = 0.0
    date_range: DateRange
    exported_rows: int = 0
    truncated: bool = False
    message: Optional[str] = None


class ExportReport(CamelModel):
    """Flattened order lines plus summary totals"""
    rows: List[ExportRow] = Field(default_factory=list)
    summary: ExportSummary
