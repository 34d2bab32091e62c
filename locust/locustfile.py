"""
Locust Load Test Suite

Needs an admin account (see `python -m venue_booking.seed`):
  ADMIN_EMAIL / ADMIN_PASSWORD environment variables.

Run scenarios:
  locust -f locust/locustfile.py --tags concurrency  # Confirmations racing for 10 seats
  locust -f locust/locustfile.py --tags browse       # Event listing throughput
  locust -f locust/locustfile.py --tags edge         # Bad input
  locust -f locust/locustfile.py                     # All tests
"""

import os
import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@venue.example")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "ChangeMe123!")
PASSWORD = "LoadTest123!"

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None


def random_email():
    return f"load_{random.randint(100000, 999999)}@example.com"


def future(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def register_and_login(client) -> dict:
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "first_name": "Load",
        "last_name": "Test",
        "password": PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}


def admin_headers(client) -> dict:
    resp = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}


def event_body(name: str, capacity: int) -> dict:
    return {
        "name": name,
        "description": "Load test event",
        "category": "concert",
        "venue_name": "Main Hall",
        "venue_capacity": capacity,
        "start_at": future(30),
        "end_at": future(31),
        "base_price": "20.00",
        "status": "published",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Admin account: {ADMIN_EMAIL}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - admins confirming bookings for a 10-seat event

    Run: locust -f locust/locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT current_bookings FROM events WHERE id = X;
      SELECT COUNT(*) FROM bookings WHERE event_id = X AND status = 'confirmed';
    Both should be equal and <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_headers = register_and_login(self.client)
        self.user_id = None
        if self.user_headers:
            resp = self.client.get("/api/v1/users/me", headers=self.user_headers)
            if resp.status_code == 200:
                self.user_id = resp.json()["data"]["id"]

        self.admin_headers = admin_headers(self.client)
        if self.admin_headers and not CONCURRENCY_EVENT_ID:
            resp = self.client.post(
                "/api/v1/events",
                json=event_body("Concurrency Test Event", 10),
                headers=self.admin_headers,
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["data"]["id"]
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with 10 seats\n")

    @tag("concurrency")
    @task
    def confirm_limited_seats(self):
        """Every user races for the same 10 seats."""
        if not CONCURRENCY_EVENT_ID or not self.admin_headers or not self.user_id:
            return

        with self.client.post(
            "/api/v1/admin/bookings",
            json={
                "event_id": CONCURRENCY_EVENT_ID,
                "user_id": self.user_id,
                "email": "load@example.com",
                "requested_date": future(30),
                "status": "confirmed",
            },
            headers=self.admin_headers,
            name="/api/v1/admin/bookings [confirmed]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class BrowseUser(HttpUser):
    """
    TEST 2: Throughput - public event listing

    Run: locust -f locust/locustfile.py --tags browse -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("browse")
    @task(10)
    def list_events(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/events?page={page}&limit=20", name="/api/v1/events")
        if resp.status_code == 200:
            for event in resp.json()["data"]["events"]:
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("browse")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("browse")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input must yield 4xx, never 5xx

    Run: locust -f locust/locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(
            "/api/v1/bookings",
            json={"event_id": "0" * 32, "email": "x@example.com", "requested_date": future(5)},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def negative_fee(self):
        with self.client.post(
            "/api/v1/bookings",
            json={"event_id": "0" * 32, "email": "x@example.com", "requested_date": future(5), "fee_amount": -5},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings", json={}, catch_response=True) as resp:
            self._expect(resp, (401, 422))

    @tag("edge")
    @task
    def user_calls_admin_route(self):
        with self.client.get("/api/v1/admin/dashboard", headers=self.headers, catch_response=True) as resp:
            self._expect(resp, (403,))
