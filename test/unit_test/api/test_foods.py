"""
Unit tests for food endpoints.
"""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestCreateFood:

    async def test_create(self, client: AsyncClient, catalogue: dict):
        assert catalogue["pizza"]["food_id"] == "food-001"
        assert catalogue["salad"]["food_id"] == "food-002"
        assert catalogue["pizza"]["price"] == 12.5

    async def test_menu_must_exist(self, client: AsyncClient, admin: dict):
        response = await client.post(
            "/foods", json={"name": "Pizza", "price": 10, "menu_id": "menu-404"}, headers=admin["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"] == "The menu referenced does not exist"

    @pytest.mark.parametrize("price", [0, -3.5])
    async def test_price_must_be_positive(self, client: AsyncClient, catalogue: dict, admin: dict, price):
        response = await client.post(
            "/foods",
            json={"name": "Free Lunch", "price": price, "menu_id": catalogue["menu"]["menu_id"]},
            headers=admin["headers"],
        )
        assert response.status_code == 400

    async def test_customer_cannot_create(self, client: AsyncClient, catalogue: dict, customer: dict):
        response = await client.post(
            "/foods",
            json={"name": "Pie", "price": 4, "menu_id": catalogue["menu"]["menu_id"]},
            headers=customer["headers"],
        )
        assert response.status_code == 403


class TestQueryFoods:

    async def test_filter_by_menu(self, client: AsyncClient, catalogue: dict, admin: dict):
        other = await client.post("/menus", json={"name": "Drinks", "category": "Beverages"}, headers=admin["headers"])
        await client.post(
            "/foods",
            json={"name": "Lemonade", "price": 3, "menu_id": other.json()["menu_id"]},
            headers=admin["headers"],
        )

        everything = await client.get("/foods", headers=admin["headers"])
        assert len(everything.json()) == 3

        filtered = await client.get(f"/foods?menu_id={catalogue['menu']['menu_id']}", headers=admin["headers"])
        assert {f["name"] for f in filtered.json()} == {"Pizza", "Salad"}

    async def test_by_category(self, client: AsyncClient, catalogue: dict, customer: dict):
        response = await client.get("/foods/category/Main Course", headers=customer["headers"])
        assert {f["name"] for f in response.json()} == {"Pizza", "Salad"}

        empty = await client.get("/foods/category/Desserts", headers=customer["headers"])
        assert empty.json() == []

    async def test_search_is_case_insensitive(self, client: AsyncClient, catalogue: dict, customer: dict):
        response = await client.get("/foods/search?q=PIZ", headers=customer["headers"])
        assert [f["food_id"] for f in response.json()] == [catalogue["pizza"]["food_id"]]

    @pytest.mark.parametrize("query", ["%25", "_", "Pi%25a", "P_zza"])
    async def test_search_wildcards_are_literal(self, client: AsyncClient, catalogue: dict, customer: dict, query):
        response = await client.get(f"/foods/search?q={query}", headers=customer["headers"])
        assert response.status_code == 200
        assert response.json() == []

    async def test_search_matches_literal_percent(self, client: AsyncClient, catalogue: dict, admin: dict, customer: dict):
        await client.post(
            "/foods",
            json={"name": "Half 50% Off", "price": 5.0, "menu_id": catalogue["menu"]["menu_id"]},
            headers=admin["headers"],
        )
        response = await client.get("/foods/search?q=50%25", headers=customer["headers"])
        assert [f["name"] for f in response.json()] == ["Half 50% Off"]

    @pytest.mark.parametrize("query", ["", "?q=", "?q=%20%20"])
    async def test_search_requires_query(self, client: AsyncClient, customer: dict, query):
        response = await client.get(f"/foods/search{query}", headers=customer["headers"])
        assert response.status_code == 400

    async def test_get_and_next_id(self, client: AsyncClient, catalogue: dict, customer: dict):
        response = await client.get("/foods/food-002", headers=customer["headers"])
        assert response.json()["name"] == "Salad"

        assert (await client.get("/foods/food-404", headers=customer["headers"])).status_code == 404
        assert (await client.get("/foods/next-id", headers=customer["headers"])).json() == {"next_id": "food-003"}


class TestUpdateFood:

    async def test_update_price(self, client: AsyncClient, catalogue: dict, admin: dict):
        response = await client.patch("/foods/food-001", json={"price": 13.999}, headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["price"] == 14.0

    async def test_moved_menu_must_exist(self, client: AsyncClient, catalogue: dict, admin: dict):
        response = await client.patch("/foods/food-001", json={"menu_id": "menu-404"}, headers=admin["headers"])
        assert response.status_code == 400

    async def test_null_fields_are_ignored(self, client: AsyncClient, catalogue: dict, admin: dict):
        response = await client.patch(
            "/foods/food-001", json={"name": None, "price": None, "menu_id": None}, headers=admin["headers"]
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Pizza"
        assert response.json()["price"] == 12.5
        assert response.json()["menu_id"] == catalogue["menu"]["menu_id"]


class TestDeleteFood:

    async def test_food_on_an_order_cannot_be_deleted(self, client: AsyncClient, catalogue: dict, customer: dict, admin: dict):
        order = await client.post(
            "/orders", json={"table_id": catalogue["tables"][0]["table_id"]}, headers=customer["headers"]
        )
        await client.post(
            f"/orders/{order.json()['order_id']}/items",
            json={"food_id": "food-001"},
            headers=customer["headers"],
        )

        response = await client.delete("/foods/food-001", headers=admin["headers"])
        assert response.status_code == 400

    async def test_delete(self, client: AsyncClient, catalogue: dict, admin: dict):
        assert (await client.delete("/foods/food-002", headers=admin["headers"])).status_code == 200
        assert (await client.delete("/foods/food-002", headers=admin["headers"])).status_code == 404
