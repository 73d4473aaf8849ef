"""
Integration Tests - Demo Data Seeder
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from partshop_analytics.analytics.sources import SqlOrderSource
from partshop_analytics.database.models import Order, OrderItem, Product
from partshop_analytics.ingestion.seed_db import CATALOGUE, generate_demo_dataset, seed_database


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestGenerateDemoDataset:
    """Tests for synthetic data generation"""

    def test_reproducible_for_seed(self):
        first = generate_demo_dataset(orders=20, customers=5, seed=7, now=NOW)
        second = generate_demo_dataset(orders=20, customers=5, seed=7, now=NOW)

        assert [o["id"] for o in first.orders] == [o["id"] for o in second.orders]
        assert [u["email"] for u in first.users] == [u["email"] for u in second.users]

    def test_totals_match_items(self):
        dataset = generate_demo_dataset(orders=30, customers=5, now=NOW)

        for order in dataset.orders:
            items = [i for i in dataset.order_items if i["order_id"] == order["id"]]
            assert items
            assert order["total_amount"] == sum(i["price"] * i["quantity"] for i in items)

    def test_orders_within_history(self):
        dataset = generate_demo_dataset(orders=50, customers=5, days=30, now=NOW)

        assert all(NOW - timedelta(days=30) <= o["created_at"] <= NOW for o in dataset.orders)
        assert all(o["updated_at"] >= o["created_at"] for o in dataset.orders)

    def test_catalogue(self):
        dataset = generate_demo_dataset(orders=1, customers=1, now=NOW)

        assert len(dataset.categories) == len(CATALOGUE)
        assert len(dataset.products) == sum(len(names) for names in CATALOGUE.values())


class TestSeedDatabase:
    """Tests for loading the dataset"""

    async def test_seeded_rows_are_reportable(self, session_factory):
        dataset = generate_demo_dataset(orders=25, customers=5, now=NOW)

        await seed_database(session_factory, dataset)

        async with session_factory() as session:
            assert await session.scalar(select(func.count()).select_from(Order)) == 25
            assert await session.scalar(select(func.count()).select_from(OrderItem)) == len(dataset.order_items)
            assert await session.scalar(select(func.count()).select_from(Product)) == len(dataset.products)

        source = SqlOrderSource(session_factory, max_concurrency=1)
        sales = await source.fetch_product_sales(NOW - timedelta(days=365), NOW)
        assert len(sales) == len(dataset.order_items)
        assert all(sale.product is not None for sale in sales)
