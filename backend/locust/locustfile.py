"""
Locust Load Test Suite

Event creation is admin-only, so setup logs in with an existing admin account:
  export LOCUST_ADMIN_EMAIL=admin@example.com
  export LOCUST_ADMIN_PASSWORD=...

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags tiers        # Test tier stock
  locust -f locustfile.py --tags cancel       # Reserve/cancel churn
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from datetime import datetime, timezone, timedelta

import requests
from locust import HttpUser, task, between, tag, events

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
TIERED_EVENT_ID = None
VIP_TIER_ID = None


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def _future(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: create the contested events once, as admin."""
    global CONCURRENCY_EVENT_ID, TIERED_EVENT_ID, VIP_TIER_ID

    host = environment.host
    email = os.environ.get("LOCUST_ADMIN_EMAIL")
    password = os.environ.get("LOCUST_ADMIN_PASSWORD")
    if not host or not email or not password:
        print("SETUP skipped: set --host, LOCUST_ADMIN_EMAIL and LOCUST_ADMIN_PASSWORD")
        return

    resp = requests.post(f"{host}/api/v1/auth/login", json={"email": email, "password": password})
    if resp.status_code != 200:
        print(f"SETUP failed: admin login returned {resp.status_code}")
        return
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    resp = requests.post(
        f"{host}/api/v1/events/",
        json={
            "title": "Concurrency Test Event",
            "description": "10 seats only",
            "date": _future(),
            "location": "Test",
            "capacity": 10,
        },
        headers=headers,
    )
    if resp.status_code == 201:
        CONCURRENCY_EVENT_ID = resp.json()["id"]
        EVENT_IDS.append(CONCURRENCY_EVENT_ID)
        print(f"Created event {CONCURRENCY_EVENT_ID} with 10 seats")

    resp = requests.post(
        f"{host}/api/v1/events/",
        json={
            "title": "Tier Test Event",
            "date": _future(),
            "location": "Test",
            "capacity": 500,
            "ticket_tiers": [
                {"name": "VIP", "price": "99.99", "quantity": 20},
                {"name": "General", "price": "25.00", "quantity": 400},
            ],
        },
        headers=headers,
    )
    if resp.status_code == 201:
        TIERED_EVENT_ID = resp.json()["id"]
        VIP_TIER_ID = resp.json()["ticket_tiers"][0]["id"]
        EVENT_IDS.append(TIERED_EVENT_ID)
        print(f"Created event {TIERED_EVENT_ID} with a 20-unit VIP tier")


class AuthenticatedUser(HttpUser):
    abstract = True

    def on_start(self):
        email = random_email()
        self.client.post("/api/v1/auth/register", json={
            "email": email,
            "username": random_username(),
            "password": "Load!Test9x",
        })

        resp = self.client.post("/api/v1/auth/login", json={
            "email": email,
            "password": "Load!Test9x",
        })

        if resp.status_code == 200:
            self.headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        else:
            self.headers = {}


class ConcurrencyUser(AuthenticatedUser):
    """
    TEST 1: Concurrency - 100 users -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(quantity) FROM bookings WHERE event_id = X AND status = 'confirmed';
    Should be <= 10, and equal to capacity - available_seats.
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for same 10 seats."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={"event_id": CONCURRENCY_EVENT_ID, "quantity": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409 expected once sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class TierUser(AuthenticatedUser):
    """
    TEST 2: Tier stock - the VIP tier runs out long before the event does

    Run: locust -f locustfile.py --tags tiers -u 50 -r 25 --run-time 30s
    """
    wait_time = between(0, 0.2)

    @tag("tiers")
    @task
    def book_vip(self):
        if not TIERED_EVENT_ID or not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={"event_id": TIERED_EVENT_ID, "ticket_tier_id": VIP_TIER_ID, "quantity": random.randint(1, 3)},
            headers=self.headers,
            name="/api/v1/bookings/ [vip]",
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class CancellationUser(AuthenticatedUser):
    """
    TEST 3: Reserve/cancel churn - counters must return to their start values

    Run: locust -f locustfile.py --tags cancel -u 30 -r 10 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("cancel")
    @task
    def reserve_then_cancel(self):
        if not TIERED_EVENT_ID or not self.headers:
            return

        resp = self.client.post("/api/v1/bookings/",
            json={"event_id": TIERED_EVENT_ID, "quantity": 2},
            headers=self.headers)
        if resp.status_code != 201:
            return

        booking_id = resp.json()["id"]
        self.client.put(f"/api/v1/bookings/{booking_id}/cancel",
            headers=self.headers,
            name="/api/v1/bookings/{id}/cancel")

        with self.client.put(f"/api/v1/bookings/{booking_id}/cancel",
            headers=self.headers,
            name="/api/v1/bookings/{id}/cancel [repeat]",
            catch_response=True
        ) as repeat:
            if repeat.status_code == 400:
                repeat.success()
            else:
                repeat.failure(f"Expected 400 on second cancel, got {repeat.status_code}")


class EdgeCaseUser(AuthenticatedUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, payload, allowed, headers=None):
        with self.client.post("/api/v1/bookings/",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        """Book non-existent event."""
        self._expect({"event_id": 999999, "quantity": 1}, (404,))

    @tag("edge")
    @task
    def invalid_tier_id(self):
        self._expect({"event_id": CONCURRENCY_EVENT_ID or 1, "ticket_tier_id": 999999, "quantity": 1}, (404,))

    @tag("edge")
    @task
    def negative_quantity(self):
        self._expect({"event_id": 1, "quantity": -5}, (422,))

    @tag("edge")
    @task
    def zero_quantity(self):
        self._expect({"event_id": 1, "quantity": 0}, (422,))

    @tag("edge")
    @task
    def huge_quantity(self):
        """Try to book absurd number of seats."""
        self._expect({"event_id": CONCURRENCY_EVENT_ID or 1, "quantity": 999999}, (404, 409))

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in (400, 422):
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        """Try booking without auth."""
        self._expect({"event_id": 1, "quantity": 1}, (401,), headers={})


class RealisticUser(AuthenticatedUser):
    """
    TEST 5: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some bookings
      - Occasional cancellations
    """
    wait_time = between(1, 3)

    def on_start(self):
        super().on_start()
        self.booking_ids = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @task(10)
    def book_seats(self):
        if EVENT_IDS and self.headers:
            resp = self.client.post("/api/v1/bookings/",
                json={"event_id": random.choice(EVENT_IDS), "quantity": random.randint(1, 3)},
                headers=self.headers)
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["id"])

    @task(5)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/", headers=self.headers)

    @task(3)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.put(f"/api/v1/bookings/{booking_id}/cancel",
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel")

    @task(1)
    def health_check(self):
        self.client.get("/health")
