import os
import uuid
from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Set test configuration before importing the app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"

DEFAULT_PASSWORD = "secret123"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh database for each test."""
    from restaurant_api.database import Base, enable_sqlite_savepoints
    import restaurant_api.models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(name="session")
async def session_fixture(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def export_task(monkeypatch) -> MagicMock:
    """Replace the Celery export task so no broker is needed."""
    from restaurant_api.api import invoices as invoices_api

    task = MagicMock()
    monkeypatch.setattr(invoices_api, "export_invoice_to_excel", task)
    return task


@pytest_asyncio.fixture(name="client")
async def client_fixture(session_maker, export_task) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app with the test database."""
    from restaurant_api.database import get_db
    from restaurant_api.main import app

    async def get_db_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = get_db_override

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()


async def register(
    client: AsyncClient,
    user_type: str = "USER",
    first_name: str = "Jane",
    password: str = DEFAULT_PASSWORD,
) -> dict:
    """Sign up and log in a fresh account; return its login payload plus auth headers."""
    suffix = uuid.uuid4().int % 10_000_000
    email = f"{first_name.lower()}-{suffix}@example.com"
    response = await client.post(
        "/users/signup",
        json={
            "first_name": first_name,
            "last_name": "Doe",
            "email": email,
            "password": password,
            "phone": f"555{suffix:07d}",
            "user_type": user_type,
        },
    )
    assert response.status_code == 200, response.text

    response = await client.post("/users/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    data = response.json()
    data["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return data


@pytest_asyncio.fixture
async def admin(client: AsyncClient) -> dict:
    return await register(client, user_type="ADMIN", first_name="Admin")


@pytest_asyncio.fixture
async def customer(client: AsyncClient) -> dict:
    return await register(client, user_type="USER", first_name="Carol")


@pytest_asyncio.fixture
async def other_customer(client: AsyncClient) -> dict:
    return await register(client, user_type="USER", first_name="Oscar")


@pytest_asyncio.fixture
async def catalogue(client: AsyncClient, admin: dict) -> dict:
    """One menu, two foods and two tables created through the API."""
    headers = admin["headers"]

    menu = (await client.post(
        "/menus", json={"name": "Dinner", "category": "Main Course"}, headers=headers
    )).json()
    pizza = (await client.post(
        "/foods", json={"name": "Pizza", "price": 12.5, "menu_id": menu["menu_id"]}, headers=headers
    )).json()
    salad = (await client.post(
        "/foods", json={"name": "Salad", "price": 7.25, "menu_id": menu["menu_id"]}, headers=headers
    )).json()
    table_1 = (await client.post("/tables", json={"table_name": "Window", "capacity": 4}, headers=headers)).json()
    table_2 = (await client.post("/tables", json={"table_name": "Patio", "capacity": 2}, headers=headers)).json()

    return {
        "menu": menu,
        "pizza": pizza,
        "salad": salad,
        "tables": [table_1, table_2],
    }


@pytest.fixture
def register_user(client: AsyncClient):
    """Factory for additional accounts within a test."""
    async def _register(**kwargs) -> dict:
        return await register(client, **kwargs)
    return _register
