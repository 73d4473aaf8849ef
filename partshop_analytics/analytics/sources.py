"""
Order Sources

Fetch strategies feeding the aggregations. ``OrderSource`` is the seam the
report service depends on; ``SqlOrderSource`` reads the storefront tables
through SQLAlchemy.

Each query runs in its own session, so independent lookups can be awaited
together. An ``asyncio.Semaphore`` bounds how many run at once.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog
from sqlalchemy import Select, and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from partshop_analytics.analytics.errors import classify_store_error
from partshop_analytics.analytics.rows import (
    CustomerOrder,
    ExportBundle,
    LineItem,
    OrderRow,
    ProductRef,
    ProductSale,
    UserRef,
)
from partshop_analytics.database.connection import session_scope
from partshop_analytics.database.models import Category, Order, OrderItem, Product, User

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def unique_ids(values: Iterable[Optional[Any]]) -> List[Any]:
    """Distinct, non-empty ids in first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def chunked(values: Sequence[T], size: int) -> List[Sequence[T]]:
    return [values[i:i + size] for i in range(0, len(values), size)]


def _id(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


class OrderSource(ABC):
    """Abstract fetch strategy for the financial reports"""

    @abstractmethod
    async def fetch_orders(self, start: datetime, end: datetime) -> List[OrderRow]:
        """Orders created within ``[start, end]``, oldest first."""

    @abstractmethod
    async def fetch_product_sales(self, start: datetime, end: datetime) -> List[ProductSale]:
        """Order items whose order falls within ``[start, end]``."""

    @abstractmethod
    async def fetch_customer_orders(self, start: datetime, end: datetime) -> List[CustomerOrder]:
        """Orders within ``[start, end]`` with their users."""

    @abstractmethod
    async def fetch_export(self, start: datetime, end: datetime, max_orders: int) -> ExportBundle:
        """Orders, items, users and products for the export."""


class SqlOrderSource(OrderSource):
    """
    SQLAlchemy-backed order source.

    Example:
        source = SqlOrderSource(session_factory, max_concurrency=4)
        orders = await source.fetch_orders(start, end)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_concurrency: int = 4,
        id_chunk_size: int = 500,
    ):
        self.session_factory = session_factory
        self.id_chunk_size = id_chunk_size
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def _all(self, query: Select, label: str) -> List[Any]:
        """Run ``query`` in its own session and return all rows."""
        async with self._semaphore:
            try:
                async with session_scope(self.session_factory) as session:
                    result = await session.execute(query)
                    rows = result.all()
            except (SQLAlchemyError, OSError) as e:
                error = classify_store_error(e)
                logger.error(
                    "Store query failed",
                    query=label,
                    error=str(e),
                    error_type=type(e).__name__,
                    classified_as=type(error).__name__,
                )
                raise error from e
        logger.debug("Store query completed", query=label, rows=len(rows))
        return rows

    @staticmethod
    def _in_window(start: datetime, end: datetime):
        return and_(Order.created_at >= start, Order.created_at <= end)

    @staticmethod
    def _order_row(row: Any) -> OrderRow:
        return OrderRow(
            id=str(row.id),
            total_amount=row.total_amount,
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
            payment_method=row.payment_method,
            user_id=_id(row.user_id),
            shipping_address=row.shipping_address,
        )

    @staticmethod
    def _order_columns():
        return (
            Order.id,
            Order.total_amount,
            Order.status,
            Order.created_at,
            Order.updated_at,
            Order.payment_method,
            Order.user_id,
            Order.shipping_address,
        )

    async def fetch_orders(self, start: datetime, end: datetime) -> List[OrderRow]:
        query = (
            select(*self._order_columns())
            .where(self._in_window(start, end))
            .order_by(Order.created_at.asc())
        )
        rows = await self._all(query, "orders")
        return [self._order_row(row) for row in rows]

    async def fetch_product_sales(self, start: datetime, end: datetime) -> List[ProductSale]:
        query = (
            select(
                OrderItem.product_id,
                OrderItem.quantity,
                OrderItem.price,
                Product.id.label("resolved_product_id"),
                Product.name.label("product_name"),
                Product.sku.label("product_sku"),
                Category.name.label("category_name"),
            )
            .join(Order, OrderItem.order_id == Order.id)
            .outerjoin(Product, OrderItem.product_id == Product.id)
            .outerjoin(Category, Product.category_id == Category.id)
            .where(self._in_window(start, end))
        )
        rows = await self._all(query, "product_sales")

        return [
            ProductSale(
                product_id=_id(row.product_id),
                quantity=row.quantity,
                price=row.price,
                product=ProductRef(
                    id=str(row.resolved_product_id),
                    name=row.product_name,
                    sku=row.product_sku,
                    category=row.category_name,
                ) if row.resolved_product_id is not None else None,
            )
            for row in rows
        ]

    async def fetch_customer_orders(self, start: datetime, end: datetime) -> List[CustomerOrder]:
        query = (
            select(
                *self._order_columns(),
                User.id.label("resolved_user_id"),
                User.email,
                User.first_name,
                User.last_name,
                User.phone,
            )
            .outerjoin(User, Order.user_id == User.id)
            .where(self._in_window(start, end))
            .order_by(Order.created_at.asc())
        )
        rows = await self._all(query, "customer_orders")

        return [
            CustomerOrder(
                order=self._order_row(row),
                user=UserRef(
                    id=str(row.resolved_user_id),
                    email=row.email,
                    first_name=row.first_name,
                    last_name=row.last_name,
                    phone=row.phone,
                ) if row.resolved_user_id is not None else None,
            )
            for row in rows
        ]

    async def _fetch_items(self, order_ids: Sequence[Any]) -> Dict[str, List[LineItem]]:
        batches = await asyncio.gather(*[
            self._all(
                select(
                    OrderItem.order_id,
                    OrderItem.product_id,
                    OrderItem.quantity,
                    OrderItem.price,
                ).where(OrderItem.order_id.in_(chunk)),
                "export_items",
            )
            for chunk in chunked(order_ids, self.id_chunk_size)
        ])

        items: Dict[str, List[LineItem]] = {}
        for batch in batches:
            for row in batch:
                items.setdefault(str(row.order_id), []).append(LineItem(
                    order_id=str(row.order_id),
                    product_id=_id(row.product_id),
                    quantity=row.quantity,
                    price=row.price,
                ))
        return items

    async def _fetch_users(self, user_ids: Sequence[Any]) -> Dict[str, UserRef]:
        batches = await asyncio.gather(*[
            self._all(
                select(User.id, User.email, User.first_name, User.last_name, User.phone)
                .where(User.id.in_(chunk)),
                "export_users",
            )
            for chunk in chunked(user_ids, self.id_chunk_size)
        ])
        return {
            str(row.id): UserRef(
                id=str(row.id),
                email=row.email,
                first_name=row.first_name,
                last_name=row.last_name,
                phone=row.phone,
            )
            for batch in batches
            for row in batch
        }

    async def _fetch_products(self, product_ids: Sequence[Any]) -> Dict[str, ProductRef]:
        batches = await asyncio.gather(*[
            self._all(
                select(Product.id, Product.name, Product.sku, Category.name.label("category_name"))
                .outerjoin(Category, Product.category_id == Category.id)
                .where(Product.id.in_(chunk)),
                "export_products",
            )
            for chunk in chunked(product_ids, self.id_chunk_size)
        ])
        return {
            str(row.id): ProductRef(
                id=str(row.id),
                name=row.name,
                sku=row.sku,
                category=row.category_name,
            )
            for batch in batches
            for row in batch
        }

    async def fetch_export(self, start: datetime, end: datetime, max_orders: int) -> ExportBundle:
        query = (
            select(*self._order_columns())
            .where(self._in_window(start, end))
            .order_by(Order.created_at.desc())
            .limit(max_orders + 1)
        )
        rows = await self._all(query, "export_orders")

        truncated = len(rows) > max_orders
        if truncated:
            logger.warning("Export truncated", max_orders=max_orders)
            rows = rows[:max_orders]

        bundle = ExportBundle(orders=[self._order_row(row) for row in rows], truncated=truncated)
        if not rows:
            return bundle

        bundle.items = await self._fetch_items([row.id for row in rows])

        # Users and products are looked up once per distinct id, in parallel
        user_ids = unique_ids(row.user_id for row in rows)
        product_ids = unique_ids(
            _parse_product_id(item.product_id)
            for items in bundle.items.values()
            for item in items
        )
        users, products = await asyncio.gather(
            self._fetch_users(user_ids),
            self._fetch_products(product_ids),
        )
        bundle.users = users
        bundle.products = products

        logger.info(
            "Export data fetched",
            orders=len(bundle.orders),
            users=len(users),
            products=len(products),
        )
        return bundle


def _parse_product_id(value: Optional[str]) -> Optional[int]:
    """Product keys are integers in the store but strings in fetched rows."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
