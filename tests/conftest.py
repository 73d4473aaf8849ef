"""
Test Suite Configuration
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from partshop_analytics.analytics.sources import SqlOrderSource
from partshop_analytics.config import Settings
from partshop_analytics.database.models import Base, Category, Order, OrderItem, Product, User
from partshop_analytics.serving.api.dependencies import get_order_source
from partshop_analytics.serving.api.main import create_api_app


NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(app_env="testing", debug=True)


@pytest.fixture
async def test_engine():
    """In-memory SQLite shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_source(session_factory) -> SqlOrderSource:
    """One connection underneath, so queries must not overlap"""
    return SqlOrderSource(session_factory, max_concurrency=1, id_chunk_size=2)


class StoreBuilder:
    """Inserts storefront rows for a test"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def add(self, *rows) -> None:
        async with self.session_factory() as session:
            session.add_all(rows)
            await session.commit()

    async def user(self, email: str, first_name: Optional[str] = None, last_name: Optional[str] = None,
                   phone: Optional[str] = None) -> User:
        user = User(id=uuid.uuid4(), email=email, first_name=first_name, last_name=last_name, phone=phone)
        await self.add(user)
        return user

    async def product(self, product_id: int, name: str, sku: str = "", category: Optional[str] = None) -> Product:
        rows = []
        category_id = None
        if category is not None:
            category_id = product_id * 100
            rows.append(Category(id=category_id, name=category))
        product = Product(id=product_id, name=name, sku=sku, price=Decimal("0"), category_id=category_id)
        rows.append(product)
        await self.add(*rows)
        return product

    async def order(
        self,
        total: str,
        status: str = "delivered",
        created_at: datetime = NOW,
        updated_at: Optional[datetime] = None,
        user: Optional[User] = None,
        payment_method: Optional[str] = "stripe",
        shipping_address: Optional[str] = None,
    ) -> Order:
        order = Order(
            id=uuid.uuid4(),
            user_id=user.id if user else None,
            total_amount=Decimal(total),
            status=status,
            payment_method=payment_method,
            shipping_address=shipping_address,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        await self.add(order)
        return order

    async def item(self, order: Order, product_id: Optional[int], quantity: int, price: str) -> OrderItem:
        item = OrderItem(
            id=uuid.uuid4(),
            order_id=order.id,
            product_id=product_id,
            quantity=quantity,
            price=Decimal(price),
        )
        await self.add(item)
        return item


@pytest.fixture
def store(session_factory) -> StoreBuilder:
    return StoreBuilder(session_factory)


@pytest.fixture
def api_app(test_settings, sql_source):
    """API app reading from the test store"""
    app = create_api_app(test_settings)
    app.dependency_overrides[get_order_source] = lambda: sql_source
    return app


@pytest.fixture
async def client(api_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def storeless_client(test_settings) -> AsyncGenerator[AsyncClient, None]:
    """API client for an app whose database never came up"""
    app = create_api_app(test_settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
