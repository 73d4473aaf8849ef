"""
Integration Tests - Financial Analytics API
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from partshop_analytics.analytics.request import AVAILABLE_TYPES
from partshop_analytics.config import Settings
from partshop_analytics.serving.api.dependencies import get_order_source
from partshop_analytics.serving.api.main import create_api_app
from partshop_analytics.serving.api.responses import DEGRADED_HEADER


URL = "/api/analytics/financial"
DAY_1 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
DAY_2 = datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc)
WINDOW = {"startDate": "2024-01-01", "endDate": "2024-01-02"}


async def drop_table(session_factory, name: str) -> None:
    async with session_factory() as session:
        await session.execute(text(f"DROP TABLE {name}"))
        await session.commit()


@pytest.fixture
async def scenario(store):
    """Delivered, pending and cancelled orders across two days"""
    await store.order("100.00", "delivered", DAY_1, payment_method="card")
    await store.order("50.00", "pending", DAY_1, payment_method="card")
    await store.order("200.00", "cancelled", DAY_2, payment_method="card")


class TestRequestValidation:
    """Tests for rejected requests"""

    async def test_unknown_type(self, client):
        response = await client.get(URL, params={"type": "bogus"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid analytics type"
        assert body["availableTypes"] == AVAILABLE_TYPES

    async def test_reversed_dates(self, client):
        response = await client.get(URL, params={"startDate": "2024-02-01", "endDate": "2024-01-01"})

        assert response.status_code == 400
        assert response.json()["message"] == "startDate must not be after endDate"

    async def test_bad_export_format(self, client):
        response = await client.get(URL, params={"type": "export", "format": "xml"})

        assert response.status_code == 400
        assert response.json()["availableFormats"] == ["json", "csv"]

    async def test_format_ignored_outside_export(self, client, scenario):
        """Test a non-export report does not validate format"""
        response = await client.get(URL, params={"type": "overview", "format": "xml", **WINDOW})

        assert response.status_code == 200
        assert response.json()["data"]["orders"]["total"] == 3

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    async def test_method_not_allowed(self, client, method):
        response = await client.request(method, URL)

        assert response.status_code == 405
        assert response.json() == {"success": False, "message": "Method not allowed"}

    async def test_options_accepted(self, client):
        response = await client.options(URL)

        assert response.status_code == 200

    async def test_cors_preflight(self, client):
        response = await client.options(URL, headers={
            "Origin": "https://admin.example.com",
            "Access-Control-Request-Method": "GET",
        })

        assert response.status_code == 200
        assert "GET" in response.headers["access-control-allow-methods"]


class TestTestReport:
    """Tests for the liveness report"""

    async def test_without_database(self, storeless_client):
        response = await storeless_client.get(URL, params={"type": "test"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Analytics API is working!"
        assert body["storeConfigured"] is False
        assert body["timestamp"].endswith("Z")

    async def test_with_database(self, client):
        response = await client.get(URL, params={"type": "test", **WINDOW})

        body = response.json()
        assert body["storeConfigured"] is True
        assert body["dateRange"]["startDate"] == "2024-01-01T00:00:00.000Z"
        assert body["dateRange"]["endDate"] == "2024-01-02T23:59:59.999Z"

    async def test_legacy_dashboard_keys(self, client, storeless_client):
        """Test older dashboard keys mirror the newer ones"""
        connected = (await client.get(URL, params={"type": "test", **WINDOW})).json()
        disconnected = (await storeless_client.get(URL, params={"type": "test"})).json()

        assert connected["supabaseConnected"] is True
        assert disconnected["supabaseConnected"] is False
        assert connected["dateRange"]["startDateStr"] == "2024-01-01T00:00:00.000Z"
        assert connected["dateRange"]["endDateStr"] == "2024-01-02T23:59:59.999Z"


class TestReports:
    """Tests for each report type against the store"""

    async def test_overview(self, client, scenario):
        response = await client.get(URL, params={"type": "overview", **WINDOW})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["revenue"]["total"] == pytest.approx(350)
        assert data["revenue"]["completed"] == pytest.approx(100)
        assert data["revenue"]["pending"] == pytest.approx(50)
        assert data["orders"] == {"total": 3, "completed": 1, "pending": 1}
        assert data["trends"]["dailyRevenue"] == {"2024-01-01": 150.0, "2024-01-02": 200.0}
        assert data["period"]["startDate"] == "2024-01-01T00:00:00.000Z"

    async def test_default_type_is_overview(self, client, scenario):
        response = await client.get(URL, params=WINDOW)

        assert "revenue" in response.json()["data"]

    async def test_revenue(self, client, scenario):
        response = await client.get(URL, params={"type": "revenue", **WINDOW})

        data = response.json()["data"]
        assert data["monthlyRevenue"]["2024-01"]["orders"] == 3
        assert data["monthlyRevenue"]["2024-01"]["pending"] == pytest.approx(250)
        assert data["revenueGrowth"] == []
        assert data["totalRevenue"] == pytest.approx(350)

    async def test_orders(self, client, store):
        await store.order("30", "delivered", DAY_1, updated_at=DAY_1 + timedelta(days=4))
        await store.order("10", "pending", DAY_2)

        response = await client.get(URL, params={"type": "orders", **WINDOW})

        data = response.json()["data"]
        assert data["statusDistribution"]["delivered"] == {"count": 1, "revenue": 30.0}
        assert data["fulfillmentMetrics"] == {"averageFulfillmentTime": "4.0", "totalFulfilledOrders": 1}

    async def test_products(self, client, store):
        await store.product(1, "Brake Pad Set", category="Brakes")
        order = await store.order("90", created_at=DAY_1)
        await store.item(order, 1, 3, "30.00")

        response = await client.get(URL, params={"type": "products", **WINDOW})

        assert DEGRADED_HEADER not in response.headers
        data = response.json()["data"]
        assert data["totalProductsSold"] == 1
        assert data["topProducts"][0] == {
            "id": "1",
            "name": "Brake Pad Set",
            "category": "Brakes",
            "totalQuantity": 3,
            "totalRevenue": 90.0,
            "orderCount": 1,
        }

    async def test_customers(self, client, store):
        user = await store.user("ana@example.com", "Ana", "Silva")
        await store.order("40", user=user, created_at=DAY_2)
        await store.order("60", user=user, created_at=DAY_1)
        await store.order("500", created_at=DAY_1)

        response = await client.get(URL, params={"type": "customers", **WINDOW})

        data = response.json()["data"]
        assert data["metrics"] == {"totalCustomers": 1, "averageCustomerValue": "100.00", "totalRevenue": "100.00"}
        top = data["topCustomers"][0]
        assert top["name"] == "Ana Silva"
        assert top["orderCount"] == 2
        assert top["firstOrder"] == "2024-01-01T10:00:00.000Z"
        assert top["lastOrder"] == "2024-01-02T15:00:00.000Z"


class TestExport:
    """Tests for the export report"""

    @pytest.fixture
    async def export_data(self, store):
        user = await store.user("ana@example.com", "Ana", "Silva")
        await store.product(1, "Oil Filter", sku="FIL-1", category="Filters")
        order = await store.order("25.00", user=user, created_at=DAY_1, shipping_address="1 Main St")
        await store.item(order, 1, 2, "12.50")
        await store.order("8.00", created_at=DAY_2)

    async def test_json_rows_and_summary(self, client, export_data):
        response = await client.get(URL, params={"type": "export", **WINDOW})

        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == 2
        assert {row["product_name"] for row in body["data"]} == {"Oil Filter", "No items"}
        assert body["summary"]["totalOrders"] == 2
        assert body["summary"]["totalItems"] == 2
        assert body["summary"]["totalRevenue"] == pytest.approx(33)
        assert body["summary"]["truncated"] is False

    async def test_csv_download(self, client, export_data):
        response = await client.get(URL, params={"type": "export", "format": "csv", **WINDOW})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == (
            'attachment; filename="financial_report_2024-01-01_2024-01-02.csv"'
        )
        assert response.text.startswith("order_id,order_date,order_time,")
        assert "Total Orders,2" in response.text

    async def test_rows_limited_to_window(self, client, store):
        """Test orders outside the window never reach the export"""
        await store.product(1, "Oil Filter", sku="FIL-1", category="Filters")
        inside = await store.order("25.00", created_at=DAY_1)
        outside = await store.order("40.00", created_at=DAY_1 + timedelta(days=5))
        await store.item(inside, 1, 2, "12.50")
        await store.item(outside, 1, 4, "10.00")

        response = await client.get(URL, params={"type": "export", **WINDOW})

        body = response.json()
        assert {row["order_id"] for row in body["data"]} == {str(inside.id)}
        assert body["summary"]["totalOrders"] == 1
        assert body["summary"]["totalItems"] == 2
        assert str(outside.id) not in response.text

    async def test_empty_window(self, client):
        response = await client.get(URL, params={"type": "export", **WINDOW})

        body = response.json()
        assert body["data"] == []
        assert body["summary"]["message"] == "No orders found for the specified date range"


class TestStoreFailures:
    """Tests for upstream failures"""

    async def test_products_degrade_to_empty(self, client, session_factory, store):
        await store.order("90", created_at=DAY_1)
        await drop_table(session_factory, "products")

        response = await client.get(URL, params={"type": "products", **WINDOW})

        assert response.status_code == 200
        assert response.headers[DEGRADED_HEADER] == "products"
        assert response.json() == {"success": True, "data": {"topProducts": [], "totalProductsSold": 0}}

    async def test_missing_table_hidden_outside_development(self, client, session_factory):
        await drop_table(session_factory, "orders")

        response = await client.get(URL, params={"type": "overview", **WINDOW})

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Database table not found. Please check database setup."
        assert body["error"] == "Internal server error"
        assert body["type"] == "overview"

    async def test_missing_table_detail_in_development(self, sql_source, session_factory):
        app = create_api_app(Settings(app_env="development"))
        app.dependency_overrides[get_order_source] = lambda: sql_source
        await drop_table(session_factory, "orders")

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get(URL, params={"type": "revenue", **WINDOW})

        assert response.status_code == 500
        assert "no such table: orders" in response.json()["error"]

    async def test_no_database(self, storeless_client):
        response = await storeless_client.get(URL, params={"type": "overview"})

        assert response.status_code == 500
        assert response.json()["message"] == "Database connection error. Please try again."


class TestHealth:
    """Tests for the platform endpoints"""

    async def test_liveness(self, storeless_client):
        response = await storeless_client.get("/api/health/live")

        assert response.json() == {"status": "alive"}

    async def test_readiness_without_database(self, storeless_client):
        response = await storeless_client.get("/api/health/ready")

        assert response.status_code == 503

    async def test_readiness_with_database(self, api_app, client, session_factory):
        api_app.state.session_factory = session_factory

        response = await client.get("/api/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    async def test_metrics_exposed(self, client):
        await client.get(URL, params={"type": "bogus"})

        response = await client.get("/api/metrics")

        assert "partshop_analytics_reports_total" in response.text

    async def test_request_id_header(self, client):
        response = await client.get("/api/health/live", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"
