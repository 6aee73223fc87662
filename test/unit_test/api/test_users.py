"""
Unit tests for user account endpoints.
"""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestListUsers:

    async def test_admin_lists_customers_only(self, client: AsyncClient, admin: dict, customer: dict, other_customer: dict):
        response = await client.get("/users", headers=admin["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["total_count"] == 2
        ids = {u["user_id"] for u in data["user_items"]}
        assert ids == {customer["user_id"], other_customer["user_id"]}
        assert all("password" not in u for u in data["user_items"])

    async def test_record_per_page(self, client: AsyncClient, admin: dict, customer: dict, other_customer: dict):
        response = await client.get("/users?recordPerPage=1&page=2", headers=admin["headers"])
        data = response.json()
        assert data["total_count"] == 2
        assert [u["user_id"] for u in data["user_items"]] == [other_customer["user_id"]]

    async def test_customer_is_forbidden(self, client: AsyncClient, customer: dict):
        response = await client.get("/users", headers=customer["headers"])
        assert response.status_code == 403


class TestGetUser:

    async def test_owner_can_read_self(self, client: AsyncClient, customer: dict):
        response = await client.get(f"/users/{customer['user_id']}", headers=customer["headers"])
        assert response.status_code == 200
        assert response.json()["email"] == customer["email"]

    async def test_customer_cannot_read_others(self, client: AsyncClient, customer: dict, other_customer: dict):
        response = await client.get(f"/users/{other_customer['user_id']}", headers=customer["headers"])
        assert response.status_code == 403

    async def test_admin_reads_anyone(self, client: AsyncClient, admin: dict, customer: dict):
        response = await client.get(f"/users/{customer['user_id']}", headers=admin["headers"])
        assert response.status_code == 200

    async def test_unknown_user(self, client: AsyncClient, admin: dict):
        response = await client.get("/users/no-such-user", headers=admin["headers"])
        assert response.status_code == 404


class TestUpdateUser:

    async def test_update_profile(self, client: AsyncClient, customer: dict):
        response = await client.put(
            f"/users/{customer['user_id']}",
            json={"first_name": "Caroline", "phone": "555-000-1111"},
            headers=customer["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["first_name"] == "Caroline"
        assert data["phone"] == "555-000-1111"
        assert data["last_name"] == "Doe"

    async def test_phone_must_stay_unique(self, client: AsyncClient, customer: dict, other_customer: dict):
        response = await client.put(
            f"/users/{customer['user_id']}",
            json={"phone": other_customer["phone"]},
            headers=customer["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "user with this phone already exists"

    async def test_cannot_update_others(self, client: AsyncClient, customer: dict, other_customer: dict):
        response = await client.put(
            f"/users/{other_customer['user_id']}",
            json={"first_name": "Mallory"},
            headers=customer["headers"],
        )
        assert response.status_code == 403


class TestChangePassword:

    async def test_change_password(self, client: AsyncClient, customer: dict):
        response = await client.put(
            f"/users/{customer['user_id']}/password",
            json={
                "current_password": "secret123",
                "new_password": "new-secret",
                "confirm_password": "new-secret",
            },
            headers=customer["headers"],
        )
        assert response.status_code == 200

        old = await client.post("/users/login", json={"email": customer["email"], "password": "secret123"})
        assert old.status_code == 401
        new = await client.post("/users/login", json={"email": customer["email"], "password": "new-secret"})
        assert new.status_code == 200

    async def test_wrong_current_password(self, client: AsyncClient, customer: dict):
        response = await client.put(
            f"/users/{customer['user_id']}/password",
            json={
                "current_password": "not-it",
                "new_password": "new-secret",
                "confirm_password": "new-secret",
            },
            headers=customer["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

    async def test_confirmation_must_match(self, client: AsyncClient, customer: dict):
        response = await client.put(
            f"/users/{customer['user_id']}/password",
            json={
                "current_password": "secret123",
                "new_password": "new-secret",
                "confirm_password": "new-secrex",
            },
            headers=customer["headers"],
        )
        assert response.status_code == 400
