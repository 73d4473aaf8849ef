"""
Demo Data Seeder

Fills a development database with a synthetic auto-parts catalogue and
order history so the financial dashboards have something to show.

Usage:
    python -m partshop_analytics.ingestion.seed_db --create-tables --orders 500
"""

import argparse
import asyncio
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from faker import Faker
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from partshop_analytics.config import get_settings
from partshop_analytics.config.logging import configure_logging, get_logger
from partshop_analytics.database.connection import (
    close_database,
    create_engine,
    create_session_factory,
    session_scope,
)
from partshop_analytics.database.models import Base, Category, Order, OrderItem, Product, User

logger = get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATALOGUE = {
    "Brakes": ["Brake Pad Set", "Brake Disc", "Brake Caliper", "Brake Fluid DOT4"],
    "Engine": ["Timing Belt Kit", "Water Pump", "Spark Plug", "Head Gasket"],
    "Filters": ["Oil Filter", "Air Filter", "Cabin Filter", "Fuel Filter"],
    "Suspension": ["Shock Absorber", "Coil Spring", "Control Arm", "Stabilizer Link"],
    "Electrical": ["Alternator", "Starter Motor", "Battery 70Ah", "Ignition Coil"],
    "Lighting": ["Headlight Bulb H7", "LED Tail Light", "Fog Lamp", "Indicator Bulb"],
}

PAYMENT_METHODS = ["cash_on_delivery", "bank_transfer", "check", "stripe", "paypal"]

ORDER_STATUSES = [
    ("pending", 0.10),
    ("processing", 0.10),
    ("shipped", 0.15),
    ("delivered", 0.45),
    ("completed", 0.12),
    ("cancelled", 0.08),
]

GUEST_ORDER_RATE = 0.1


@dataclass
class DemoDataset:
    """Rows ready for bulk insert, keyed by table"""
    users: List[Dict[str, Any]] = field(default_factory=list)
    categories: List[Dict[str, Any]] = field(default_factory=list)
    products: List[Dict[str, Any]] = field(default_factory=list)
    orders: List[Dict[str, Any]] = field(default_factory=list)
    order_items: List[Dict[str, Any]] = field(default_factory=list)


def _money(value: float) -> Decimal:
    return Decimal(str(round(value, 2)))


def generate_demo_dataset(
    orders: int = 200,
    customers: int = 40,
    days: int = 120,
    seed: int = 42,
    now: Optional[datetime] = None,
) -> DemoDataset:
    """Generate a reproducible dataset for ``seed``."""
    rng = random.Random(seed)
    fake = Faker()
    fake.seed_instance(seed)
    now = now or datetime.now(timezone.utc)

    dataset = DemoDataset()

    for _ in range(customers):
        dataset.users.append({
            "id": uuid.UUID(int=rng.getrandbits(128), version=4),
            "email": fake.unique.email(),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "phone": fake.phone_number(),
            "created_at": now - timedelta(days=rng.randint(days, days * 3)),
        })

    product_id = 0
    for category_id, (category, names) in enumerate(CATALOGUE.items(), start=1):
        dataset.categories.append({"id": category_id, "name": category})
        for name in names:
            product_id += 1
            dataset.products.append({
                "id": product_id,
                "name": name,
                "sku": f"{category[:3].upper()}-{product_id:05d}",
                "price": _money(rng.uniform(4.5, 420.0)),
                "category_id": category_id,
            })

    statuses = [s for s, _ in ORDER_STATUSES]
    weights = [w for _, w in ORDER_STATUSES]

    for _ in range(orders):
        order_id = uuid.UUID(int=rng.getrandbits(128), version=4)
        created_at = now - timedelta(seconds=rng.randint(0, days * 24 * 3600))
        status = rng.choices(statuses, weights=weights)[0]

        if status in ("shipped", "delivered", "completed"):
            updated_at = created_at + timedelta(hours=rng.randint(12, 240))
        else:
            updated_at = created_at

        user = None if rng.random() < GUEST_ORDER_RATE else rng.choice(dataset.users)

        total = Decimal("0")
        for product in rng.sample(dataset.products, k=rng.randint(1, 4)):
            quantity = rng.randint(1, 3)
            dataset.order_items.append({
                "id": uuid.UUID(int=rng.getrandbits(128), version=4),
                "order_id": order_id,
                "product_id": product["id"],
                "quantity": quantity,
                "price": product["price"],
            })
            total += product["price"] * quantity

        dataset.orders.append({
            "id": order_id,
            "user_id": user["id"] if user else None,
            "total_amount": total,
            "status": status,
            "payment_method": rng.choice(PAYMENT_METHODS),
            "shipping_address": fake.address().replace("\n", ", "),
            "created_at": created_at,
            "updated_at": updated_at,
        })

    return dataset


async def execute_batch_insert(
    session_factory: async_sessionmaker[AsyncSession],
    model: Any,
    records: List[Dict[str, Any]],
    chunk_size: int = 1000,
) -> None:
    """Insert ``records`` into ``model``'s table in chunks"""
    if not records:
        return

    async with session_scope(session_factory) as db:
        for i in range(0, len(records), chunk_size):
            await db.execute(insert(model).values(records[i:i + chunk_size]))
    logger.info("Inserted records", table=model.__tablename__, count=len(records))


async def seed_database(session_factory: async_sessionmaker[AsyncSession], dataset: DemoDataset) -> None:
    """Insert ``dataset`` parents first."""
    await execute_batch_insert(session_factory, User, dataset.users)
    await execute_batch_insert(session_factory, Category, dataset.categories)
    await execute_batch_insert(session_factory, Product, dataset.products)
    await execute_batch_insert(session_factory, Order, dataset.orders)
    await execute_batch_insert(session_factory, OrderItem, dataset.order_items)


async def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Seed the storefront database with demo orders")
    parser.add_argument("--orders", type=int, default=200, help="Number of orders (default: 200)")
    parser.add_argument("--customers", type=int, default=40, help="Number of customers (default: 40)")
    parser.add_argument("--days", type=int, default=120, help="History length in days (default: 120)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings=settings)
    engine = create_engine(settings)

    try:
        if args.create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created")

        dataset = generate_demo_dataset(
            orders=args.orders,
            customers=args.customers,
            days=args.days,
            seed=args.seed,
        )
        await seed_database(create_session_factory(engine), dataset)
        logger.info("Database seeding completed", orders=len(dataset.orders), items=len(dataset.order_items))
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await close_database(engine)


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
