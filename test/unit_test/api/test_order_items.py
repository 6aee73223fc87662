"""
Unit tests for order item endpoints.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from restaurant_api.api import order_items as order_items_api

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def open_order(client: AsyncClient, catalogue: dict, customer: dict) -> dict:
    response = await client.post(
        "/orders", json={"table_id": catalogue["tables"][0]["table_id"]}, headers=customer["headers"]
    )
    return response.json()


async def _add(client: AsyncClient, who: dict, order_id: str, food_id: str, quantity: int = 1):
    return await client.post(
        "/order-items",
        json={"order_id": order_id, "food_id": food_id, "quantity": quantity},
        headers=who["headers"],
    )


async def _total(client: AsyncClient, who: dict, order_id: str) -> float:
    return (await client.get(f"/orders/{order_id}", headers=who["headers"])).json()["order_total"]


class TestCreateOrderItem:

    async def test_create_and_merge(self, client: AsyncClient, open_order: dict, customer: dict):
        order_id = open_order["order_id"]
        first = await _add(client, customer, order_id, "food-001", 1)
        assert first.status_code == 201
        assert first.json()["order_item_id"] == "item-001"

        merged = await _add(client, customer, order_id, "food-001", 2)
        assert merged.status_code == 201
        assert merged.json()["order_item_id"] == "item-001"
        assert merged.json()["quantity"] == 3

        assert await _total(client, customer, order_id) == 37.5

    async def test_order_must_exist(self, client: AsyncClient, catalogue: dict, customer: dict):
        response = await _add(client, customer, "order-404", "food-001")
        assert response.status_code == 400
        assert response.json()["error"] == "The order referenced does not exist"

    async def test_food_must_exist(self, client: AsyncClient, open_order: dict, customer: dict):
        response = await _add(client, customer, open_order["order_id"], "food-404")
        assert response.status_code == 400
        assert response.json()["error"] == "The food item referenced does not exist"

    async def test_customer_must_own_order(self, client: AsyncClient, open_order: dict, other_customer: dict):
        response = await _add(client, other_customer, open_order["order_id"], "food-001")
        assert response.status_code == 403

    async def test_customer_cannot_touch_processed_order(self, client: AsyncClient, open_order: dict, customer: dict, admin: dict):
        await client.patch(
            f"/orders/{open_order['order_id']}", json={"order_status": "ready"}, headers=admin["headers"]
        )
        response = await _add(client, customer, open_order["order_id"], "food-001")
        assert response.status_code == 400

    @pytest.mark.parametrize("quantity", [0, -1, 100])
    async def test_quantity_bounds(self, client: AsyncClient, open_order: dict, customer: dict, quantity):
        response = await _add(client, customer, open_order["order_id"], "food-001", quantity)
        assert response.status_code == 400

    async def test_failed_total_leaves_no_item(self, client: AsyncClient, open_order: dict, customer: dict, admin: dict, monkeypatch):
        async def broken_total(db, order_id):
            raise RuntimeError("total unavailable")

        monkeypatch.setattr(order_items_api, "recalculate_order_total", broken_total)

        # The app logs and renders a 500; the transport re-raises the error
        with pytest.raises(RuntimeError):
            await _add(client, customer, open_order["order_id"], "food-001", 2)

        items = await client.get("/order-items", headers=admin["headers"])
        assert items.json() == []
        assert await _total(client, customer, open_order["order_id"]) == 0.0

    async def test_merge_failure_keeps_quantity(self, client: AsyncClient, open_order: dict, customer: dict, admin: dict, monkeypatch):
        await _add(client, customer, open_order["order_id"], "food-001", 1)

        async def broken_total(db, order_id):
            raise RuntimeError("total unavailable")

        monkeypatch.setattr(order_items_api, "recalculate_order_total", broken_total)
        with pytest.raises(RuntimeError):
            await _add(client, customer, open_order["order_id"], "food-001", 2)

        items = await client.get("/order-items", headers=admin["headers"])
        assert [i["quantity"] for i in items.json()] == [1]
        assert await _total(client, customer, open_order["order_id"]) == 12.5


class TestReadOrderItems:

    async def test_admin_lists_all_with_alias(self, client: AsyncClient, open_order: dict, customer: dict, admin: dict):
        await _add(client, customer, open_order["order_id"], "food-001")
        await _add(client, customer, open_order["order_id"], "food-002")

        for path in ["/order-items", "/orderItems"]:
            response = await client.get(path, headers=admin["headers"])
            assert response.status_code == 200
            assert [i["order_item_id"] for i in response.json()] == ["item-001", "item-002"]

    async def test_customer_cannot_list_all(self, client: AsyncClient, customer: dict):
        assert (await client.get("/order-items", headers=customer["headers"])).status_code == 403

    async def test_get_respects_ownership(self, client: AsyncClient, open_order: dict, customer: dict, other_customer: dict):
        item_id = (await _add(client, customer, open_order["order_id"], "food-001")).json()["order_item_id"]

        assert (await client.get(f"/order-items/{item_id}", headers=customer["headers"])).status_code == 200
        assert (await client.get(f"/order-items/{item_id}", headers=other_customer["headers"])).status_code == 403

    async def test_next_id_uses_item_prefix(self, client: AsyncClient, open_order: dict, customer: dict):
        await _add(client, customer, open_order["order_id"], "food-001")
        response = await client.get("/order-items/next-id", headers=customer["headers"])
        assert response.json() == {"next_id": "item-002"}


class TestUpdateOrderItem:

    async def test_customer_changes_quantity(self, client: AsyncClient, open_order: dict, customer: dict):
        item_id = (await _add(client, customer, open_order["order_id"], "food-002")).json()["order_item_id"]

        response = await client.patch(f"/order-items/{item_id}", json={"quantity": 4}, headers=customer["headers"])
        assert response.status_code == 200
        assert response.json()["quantity"] == 4
        assert await _total(client, customer, open_order["order_id"]) == 29.0

    async def test_customer_cannot_swap_food(self, client: AsyncClient, open_order: dict, customer: dict):
        item_id = (await _add(client, customer, open_order["order_id"], "food-002")).json()["order_item_id"]

        response = await client.patch(
            f"/order-items/{item_id}", json={"food_id": "food-001"}, headers=customer["headers"]
        )
        assert response.status_code == 403

    async def test_admin_moves_item_between_orders(self, client: AsyncClient, catalogue: dict, open_order: dict, customer: dict, admin: dict):
        second = await client.post(
            "/orders", json={"table_id": catalogue["tables"][1]["table_id"]}, headers=admin["headers"]
        )
        item_id = (await _add(client, customer, open_order["order_id"], "food-001", 2)).json()["order_item_id"]

        response = await client.patch(
            f"/order-items/{item_id}",
            json={"order_id": second.json()["order_id"]},
            headers=admin["headers"],
        )
        assert response.status_code == 200
        assert await _total(client, admin, open_order["order_id"]) == 0.0
        assert await _total(client, admin, second.json()["order_id"]) == 25.0

    async def test_admin_swap_onto_existing_food_conflicts(self, client: AsyncClient, open_order: dict, customer: dict, admin: dict):
        await _add(client, customer, open_order["order_id"], "food-001")
        salad_id = (await _add(client, customer, open_order["order_id"], "food-002")).json()["order_item_id"]

        response = await client.patch(
            f"/order-items/{salad_id}", json={"food_id": "food-001"}, headers=admin["headers"]
        )
        assert response.status_code == 409

    async def test_admin_swap_to_unknown_food(self, client: AsyncClient, open_order: dict, customer: dict, admin: dict):
        item_id = (await _add(client, customer, open_order["order_id"], "food-001")).json()["order_item_id"]
        response = await client.patch(
            f"/order-items/{item_id}", json={"food_id": "food-404"}, headers=admin["headers"]
        )
        assert response.status_code == 400

    async def test_body_id_must_match(self, client: AsyncClient, open_order: dict, customer: dict):
        item_id = (await _add(client, customer, open_order["order_id"], "food-001")).json()["order_item_id"]
        response = await client.patch(
            f"/order-items/{item_id}",
            json={"order_item_id": "item-999", "quantity": 2},
            headers=customer["headers"],
        )
        assert response.status_code == 400


class TestDeleteOrderItem:

    async def test_delete_recomputes_total(self, client: AsyncClient, open_order: dict, customer: dict):
        pizza_id = (await _add(client, customer, open_order["order_id"], "food-001")).json()["order_item_id"]
        await _add(client, customer, open_order["order_id"], "food-002")

        response = await client.delete(f"/order-items/{pizza_id}", headers=customer["headers"])
        assert response.status_code == 200
        assert await _total(client, customer, open_order["order_id"]) == 7.25

    async def test_other_customer_cannot_delete(self, client: AsyncClient, open_order: dict, customer: dict, other_customer: dict):
        item_id = (await _add(client, customer, open_order["order_id"], "food-001")).json()["order_item_id"]
        response = await client.delete(f"/order-items/{item_id}", headers=other_customer["headers"])
        assert response.status_code == 403

    async def test_unknown_item(self, client: AsyncClient, admin: dict):
        assert (await client.delete("/order-items/item-404", headers=admin["headers"])).status_code == 404
