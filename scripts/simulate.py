"""
Lifecycle Simulation Script

Fires concurrent orders at a running server and drives each one through
the full lifecycle: admin confirms and starts preparing, a driver accepts,
goes on the way and delivers. Duplicate status updates are sent in
parallel to show that only one of them wins.

Run from project root (after scripts/seed.py):
    python scripts/simulate.py --orders 20
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 20

# Sample data for random orders
FIRST_NAMES = ["Sara", "Omar", "Lina", "Yusuf", "Maya", "Adam", "Noor", "Ali", "Hana", "Zaid"]
LAST_NAMES = ["Hassan", "Saleh", "Haddad", "Nasser", "Khalil", "Mansour", "Aziz", "Farah"]
STREETS = ["Market Square", "Garden Road", "Station Street", "Palm Avenue", "Harbour Lane"]
MENU_ITEMS = [
    {"name": "Mixed Grill Platter", "price": 55.0},
    {"name": "Chicken Mandi", "price": 45.0},
    {"name": "Kunafa", "price": 45.0},
    {"name": "Pistachio Baklava", "price": 35.0},
    {"name": "Cardamom Coffee", "price": 8.0},
    {"name": "Cheese Sandwich", "price": 12.0},
]


def generate_order_payload() -> dict[str, Any]:
    """Random customer with one to four menu lines."""
    items = []
    for _ in range(random.randint(1, 4)):
        item = random.choice(MENU_ITEMS).copy()
        item["quantity"] = random.randint(1, 3)
        items.append(item)

    return {
        "customerName": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customerPhone": f"05{random.randint(10000000, 99999999)}",
        "deliveryAddress": f"{random.randint(1, 200)} {random.choice(STREETS)}",
        "items": items,
        "notes": random.choice([None, "Ring the bell", "Leave at door", "Call on arrival"]),
        "paymentMethod": random.choice(["cash", "prepaid"]),
    }


class Simulator:
    def __init__(self, client: httpx.AsyncClient, admin_token: str, driver_token: Optional[str]):
        self.client = client
        self.admin = {"Authorization": f"Bearer {admin_token}"}
        self.driver = {"Authorization": f"Bearer {driver_token}"} if driver_token else None
        self.conflicts = 0

    async def place(self, order_num: int) -> dict[str, Any]:
        start_time = time.time()
        try:
            response = await self.client.post("/api/orders", json=generate_order_payload())
            elapsed = round(time.time() - start_time, 3)
            if response.status_code == 201:
                order = response.json()["order"]
                return {"order_num": order_num, "success": True, "order": order, "time": elapsed}
            return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}
        except httpx.HTTPError as e:
            elapsed = round(time.time() - start_time, 3)
            return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": elapsed}

    async def admin_status(self, order_id: str, status: str, racers: int = 2) -> bool:
        """Send the same status update several times at once; count the losers."""
        responses = await asyncio.gather(*[
            self.client.put(
                f"/api/admin/orders/{order_id}/status",
                json={"status": status},
                headers=self.admin,
            )
            for _ in range(racers)
        ])
        self.conflicts += sum(1 for r in responses if r.status_code == 409)
        return any(r.status_code == 200 for r in responses)

    async def drive(self, order_id: str) -> bool:
        accept = await self.client.post(f"/api/driver/orders/{order_id}/accept", headers=self.driver)
        if accept.status_code != 200:
            return False
        for status in ("on_way", "delivered"):
            response = await self.client.put(
                f"/api/driver/orders/{order_id}/status",
                json={"status": status},
                headers=self.driver,
            )
            if response.status_code != 200:
                return False
        return True


async def login(client: httpx.AsyncClient, path: str, payload: dict) -> Optional[str]:
    response = await client.post(path, json=payload)
    if response.status_code != 200:
        print(f"   ❌ Login failed at {path}: {response.text[:100]}")
        return None
    return response.json()["token"]


async def run_simulation(args: argparse.Namespace) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 ORDER LIFECYCLE SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {args.orders}")
    print(f"🎯 Target: {args.base_url}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=args.base_url, timeout=30.0) as client:
        health = await client.get("/health")
        print(f"\n🩺 Health: {health.json().get('status') if health.status_code == 200 else health.text[:100]}")

        admin_token = await login(client, "/api/admin/login", {
            "email": args.admin_email, "password": args.admin_password,
        })
        if admin_token is None:
            return {"success": False}

        driver_token = None
        if args.driver_phone:
            driver_token = await login(client, "/api/driver/login", {
                "phone": args.driver_phone, "password": args.driver_password,
            })
            if driver_token:
                await client.put(
                    "/api/driver/availability",
                    json={"isAvailable": True},
                    headers={"Authorization": f"Bearer {driver_token}"},
                )

        sim = Simulator(client, admin_token, driver_token)

        print("\n🚀 Placing orders...\n")
        start_time = time.time()
        placed = await asyncio.gather(*[sim.place(i + 1) for i in range(args.orders)])
        successful = [r for r in placed if r["success"]]
        failed = [r for r in placed if not r["success"]]

        print("🔁 Driving orders through the lifecycle...\n")
        completed = 0
        # One driver handles deliveries sequentially; admin steps race in parallel
        admin_steps = await asyncio.gather(*[
            sim.admin_status(r["order"]["id"], "confirmed") for r in successful
        ])
        for result, confirmed in zip(successful, admin_steps):
            order_id = result["order"]["id"]
            if not confirmed:
                continue
            if not await sim.admin_status(order_id, "preparing"):
                continue
            if driver_token is None or await sim.drive(order_id):
                completed += 1

        total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Placed: {len(successful)}/{args.orders}")
    print(f"❌ Failed to place: {len(failed)}/{args.orders}")
    print(f"🏁 Completed lifecycle: {completed}/{len(successful)}")
    print(f"⚔️  Rejected duplicate transitions (409): {sim.conflicts}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["order"]["total"] for r in successful)
        print(f"\n📈 Average placement time: {avg_time}s")
        print(f"   💰 Total Revenue: {total_revenue:.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "success": True,
        "placed": len(successful),
        "failed": len(failed),
        "completed": completed,
        "conflicts": sim.conflicts,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Lifecycle Simulation")
    parser.add_argument("--base-url", default=API_BASE_URL)
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--admin-email", default="admin@fooddelivery.local")
    parser.add_argument("--admin-password", default="admin123456")
    parser.add_argument("--driver-phone", default="0500000001", help="Empty to skip deliveries")
    parser.add_argument("--driver-password", default="driver123")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args))
    sys.exit(0 if summary.get("success") else 1)
