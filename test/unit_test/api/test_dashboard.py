import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestDashboardData:

    async def test_empty_system(self, client: AsyncClient, admin: dict):
        response = await client.get("/dashboard-data", headers=admin["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 0
        assert data["total_revenue"] == 0.0
        assert data["avg_order_value"] == 0.0
        assert data["recent_orders"] == []

    async def test_aggregates(self, client: AsyncClient, catalogue: dict, customer: dict, admin: dict):
        window, patio = catalogue["tables"]

        first = (await client.post("/orders", json={"table_id": window["table_id"]}, headers=customer["headers"])).json()
        await client.post(
            f"/orders/{first['order_id']}/items", json={"food_id": "food-001", "quantity": 2}, headers=customer["headers"]
        )
        await client.patch(f"/orders/{first['order_id']}", json={"order_status": "completed"}, headers=admin["headers"])

        second = (await client.post("/orders", json={"table_id": patio["table_id"]}, headers=customer["headers"])).json()
        await client.post(
            f"/orders/{second['order_id']}/items", json={"food_id": "food-002", "quantity": 2}, headers=customer["headers"]
        )

        third = (await client.post("/orders", json={"table_id": window["table_id"]}, headers=customer["headers"])).json()
        await client.post(
            f"/orders/{third['order_id']}/items", json={"food_id": "food-001", "quantity": 4}, headers=customer["headers"]
        )
        await client.patch(f"/orders/{third['order_id']}", json={"order_status": "cancelled"}, headers=admin["headers"])

        data = (await client.get("/dashboard-data", headers=admin["headers"])).json()

        assert data["total_orders"] == 3
        assert data["pending_orders"] == 1
        assert data["completed_orders"] == 1
        assert data["active_orders"] == 1
        assert data["total_revenue"] == 39.5
        assert data["today_revenue"] == 39.5
        assert data["avg_order_value"] == 19.75
        assert data["tables_total"] == 2
        assert data["tables_occupied"] == 1
        assert data["tables_available"] == 1
        assert data["menus"] == 1
        assert data["foods"] == 2
        assert [o["order_id"] for o in data["recent_orders"]] == [
            third["order_id"], second["order_id"], first["order_id"],
        ]

    async def test_customer_is_forbidden(self, client: AsyncClient, customer: dict):
        response = await client.get("/dashboard-data", headers=customer["headers"])
        assert response.status_code == 403
