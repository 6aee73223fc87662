"""
Dinner Rush Simulation Script

Seeds an admin, menus, foods and tables through the HTTP API, then fires
concurrent orders at the tables. Each table accepts one active order, so
every table should end up with exactly one winner and the rest of the
requests should be rejected with 409.

Run from project root: python scripts/simulate.py

Version: 1.0.0
"""

import asyncio
import sys
import os
import random
import time
import argparse
import uuid
from datetime import datetime
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:9000"
TOTAL_ORDERS = 50
TOTAL_TABLES = 10
# Existing admin to log in as; a throwaway admin is only possible on a fresh database
ADMIN_EMAIL = None
ADMIN_PASSWORD = None

MENUS = [
    {"name": "Pizzeria", "category": "Main Course"},
    {"name": "Starters", "category": "Appetizers"},
    {"name": "Sweets", "category": "Desserts"},
]
FOODS = {
    "Main Course": [("Pizza Margherita", 14.99), ("Pepperoni Pizza", 16.99), ("Pasta Carbonara", 13.99)],
    "Appetizers": [("Caesar Salad", 8.99), ("Garlic Bread", 5.99)],
    "Desserts": [("Tiramisu", 7.99), ("Panna Cotta", 6.49)],
}


# =============================================================================
# SEEDING
# =============================================================================

async def create_admin(client: httpx.AsyncClient) -> dict[str, str]:
    """Log in as the configured admin, or sign up a throwaway one; return auth headers."""
    if ADMIN_EMAIL:
        credentials = {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        response = await client.post(f"{API_BASE_URL}/users/login", json=credentials)
        response.raise_for_status()
        return {"Authorization": f"Bearer {response.json()['token']}"}

    suffix = uuid.uuid4().hex[:8]
    credentials = {"email": f"sim-{suffix}@example.com", "password": "simulate123"}
    response = await client.post(
        f"{API_BASE_URL}/users/signup",
        json={
            **credentials,
            "first_name": "Sim",
            "last_name": "Admin",
            "phone": f"555{random.randint(1000000, 9999999)}",
            "user_type": "ADMIN",
        },
    )
    if response.status_code == 403:
        sys.exit("❌ An admin already exists; pass --admin-email and --admin-password")
    response.raise_for_status()

    response = await client.post(f"{API_BASE_URL}/users/login", json=credentials)
    response.raise_for_status()
    return {"Authorization": f"Bearer {response.json()['token']}"}


async def seed_catalogue(client: httpx.AsyncClient, headers: dict[str, str]) -> list[str]:
    """Create menus and foods; return the food ids."""
    food_ids = []
    for menu in MENUS:
        response = await client.post(f"{API_BASE_URL}/menus", json=menu, headers=headers)
        response.raise_for_status()
        menu_id = response.json()["menu_id"]

        for name, price in FOODS[menu["category"]]:
            response = await client.post(
                f"{API_BASE_URL}/foods",
                json={"name": name, "price": price, "menu_id": menu_id},
                headers=headers,
            )
            response.raise_for_status()
            food_ids.append(response.json()["food_id"])
    return food_ids


async def seed_tables(client: httpx.AsyncClient, headers: dict[str, str], count: int) -> list[str]:
    table_ids = []
    for n in range(1, count + 1):
        response = await client.post(
            f"{API_BASE_URL}/tables",
            json={"table_name": f"Sim Table {n}", "table_number": n, "capacity": random.choice([2, 4, 6])},
            headers=headers,
        )
        response.raise_for_status()
        table_ids.append(response.json()["table_id"])
    return table_ids


# =============================================================================
# ORDERS
# =============================================================================

async def send_order(
    client: httpx.AsyncClient,
    headers: dict[str, str],
    order_num: int,
    table_id: str,
    food_ids: list[str],
) -> dict[str, Any]:
    """Place an order at a table and, if it wins the table, fill it."""
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/orders",
            json={"table_id": table_id},
            headers=headers,
            timeout=30.0,
        )
        if response.status_code != 201:
            return {
                "order_num": order_num,
                "success": False,
                "status": response.status_code,
                "error": response.text[:100],
                "time": round(time.time() - start_time, 3),
            }

        order_id = response.json()["order_id"]
        for food_id in random.sample(food_ids, k=random.randint(1, 3)):
            await client.post(
                f"{API_BASE_URL}/orders/{order_id}/items",
                json={"food_id": food_id, "quantity": random.randint(1, 3)},
                headers=headers,
                timeout=30.0,
            )

        response = await client.get(f"{API_BASE_URL}/orders/{order_id}", headers=headers)
        return {
            "order_num": order_num,
            "success": True,
            "order_id": order_id,
            "table_id": table_id,
            "total": response.json().get("order_total", 0.0),
            "time": round(time.time() - start_time, 3),
        }
    except Exception as e:
        return {
            "order_num": order_num,
            "success": False,
            "status": None,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def invoice_order(client: httpx.AsyncClient, headers: dict[str, str], order_id: str) -> bool:
    response = await client.post(
        f"{API_BASE_URL}/invoices",
        json={"order_id": order_id, "payment_method": random.choice(["card", "cash"])},
        headers=headers,
    )
    return response.status_code == 201


async def run_simulation(
    num_orders: int = TOTAL_ORDERS,
    num_tables: int = TOTAL_TABLES,
) -> dict[str, Any]:
    """
    Run the dinner rush simulation.

    Args:
        num_orders: Number of orders to fire
        num_tables: Number of tables to seat them at
    """
    print("=" * 70)
    print("🔥 DINNER RUSH SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🪑 Tables: {num_tables}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        headers = await create_admin(client)
        food_ids = await seed_catalogue(client, headers)
        table_ids = await seed_tables(client, headers, num_tables)
        print(f"\n🌱 Seeded {len(food_ids)} foods and {len(table_ids)} tables")
        if len(set(table_ids)) != len(table_ids):
            print("⚠️ Duplicate table ids were allocated!")

        print("\n🚀 Firing orders...\n")
        start_time = time.time()
        tasks = [
            send_order(client, headers, i + 1, random.choice(table_ids), food_ids)
            for i in range(num_orders)
        ]
        results = await asyncio.gather(*tasks)
        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        invoiced = 0
        for r in successful:
            if await invoice_order(client, headers, r["order_id"]):
                invoiced += 1

    failed = [r for r in results if not r["success"]]
    rejected = [r for r in failed if r.get("status") == 409]
    winners_per_table: dict[str, int] = {}
    for r in successful:
        winners_per_table[r["table_id"]] = winners_per_table.get(r["table_id"], 0) + 1

    # Print results
    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Seated Orders: {len(successful)}/{num_orders}")
    print(f"🚫 Rejected (table busy): {len(rejected)}")
    print(f"❌ Other Failures: {len(failed) - len(rejected)}")
    print(f"🧾 Invoiced: {invoiced}")
    print(f"⏱️  Total Time: {total_time}s")

    double_booked = {t: n for t, n in winners_per_table.items() if n > 1}
    if double_booked:
        print(f"\n⚠️ Tables with more than one active order: {double_booked}")
    else:
        print(f"\n✅ No table was double-booked")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)

        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   💰 Total Billed: ${total_revenue:.2f}")

    unexpected = [r for r in failed if r.get("status") != 409]
    if unexpected:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in unexpected[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all export tasks should complete")
    print("2. Run: python scripts/verify.py")
    print(f"3. Visit {API_BASE_URL}/docs to explore the API")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "rejected": len(rejected),
        "invoiced": invoiced,
        "total_time": total_time,
        "results": results,
    }


async def check_health() -> bool:
    """Confirm the API is up before firing orders."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"❌ API unreachable: {e}")
            return False

    data = response.json()
    print(f"🩺 Health: {data.get('status')} (database: {data.get('database')}, redis: {data.get('redis')})")
    return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner rush simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders to fire")
    parser.add_argument("--tables", type=int, default=TOTAL_TABLES, help="Number of tables to seed")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--admin-email", help="Log in as this existing admin")
    parser.add_argument("--admin-password", help="Password for --admin-email")
    args = parser.parse_args()

    API_BASE_URL = args.url
    ADMIN_EMAIL = args.admin_email
    ADMIN_PASSWORD = args.admin_password
    if asyncio.run(check_health()):
        asyncio.run(run_simulation(num_orders=args.orders, num_tables=args.tables))
