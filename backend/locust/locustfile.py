"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test read paths
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
PASSWORD = "loadtest123"


def random_email():
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=10))
    return f"load_{suffix}@test.com"


def signup(client):
    """Register a fresh member and return auth headers (empty on failure)."""
    resp = client.post("/api/auth/register", json={
        "name": "Load Tester",
        "email": random_email(),
        "password": PASSWORD,
    })
    if resp.status_code == 201:
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: first concurrency user creates a 10-seat event")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT registered, (SELECT COUNT(*) FROM event_registrations WHERE event_id = X)
      FROM events WHERE id = X;
    Both should be 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = signup(self.client)
        if self.headers and not CONCURRENCY_EVENT_ID:
            resp = self.client.post("/api/events",
                json={
                    "title": "Concurrency Test Event",
                    "description": "10 seats only",
                    "date": (date.today() + timedelta(days=30)).isoformat(),
                    "location": "Test",
                    "seats": 10,
                },
                headers=self.headers,
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["data"]["id"]
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with 10 seats\n")

    @tag("concurrency")
    @task
    def register_limited_seats(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(f"/api/events/{CONCURRENCY_EVENT_ID}/register",
            headers=self.headers,
            name="/api/events/{id}/register",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: fully booked or already registered
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - public read endpoints

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events(self):
        resp = self.client.get("/api/events?limit=50", name="/api/events")
        if resp.status_code == 200:
            for event in resp.json().get("data", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(5)
    def featured_events(self):
        self.client.get("/api/events/featured")

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/events/{random.choice(EVENT_IDS)}", name="/api/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = signup(self.client)

    def expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def nonexistent_event(self):
        with self.client.post("/api/events/999999/register",
            headers=self.headers, name="/api/events/[missing]/register", catch_response=True,
        ) as resp:
            self.expect(resp, [404])

    @tag("edge")
    @task
    def non_numeric_event_id(self):
        with self.client.post("/api/events/abc/register",
            headers=self.headers, name="/api/events/[bad]/register", catch_response=True,
        ) as resp:
            self.expect(resp, [400])

    @tag("edge")
    @task
    def cancel_without_registration(self):
        with self.client.delete("/api/events/999999/register",
            headers=self.headers, name="/api/events/[missing]/register", catch_response=True,
        ) as resp:
            self.expect(resp, [404])

    @tag("edge")
    @task
    def zero_seat_event(self):
        with self.client.post("/api/events",
            json={"title": "Empty", "date": date.today().isoformat(), "location": "Nowhere", "seats": 0},
            headers=self.headers, catch_response=True,
        ) as resp:
            self.expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/auth/login",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self.expect(resp, [400])

    @tag("edge")
    @task
    def wrong_password(self):
        with self.client.post("/api/auth/login",
            json={"email": random_email(), "password": "wrongpassword"},
            catch_response=True,
        ) as resp:
            self.expect(resp, [401])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/events/1/register",
            name="/api/events/{id}/register [no auth]", catch_response=True,
        ) as resp:
            self.expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some registrations and cancellations
      - Rare creates
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = signup(self.client)
        self.registered = set()

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/events", name="/api/events")
        if resp.status_code == 200:
            for event in resp.json().get("data", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/events/{random.choice(EVENT_IDS)}", name="/api/events/{id}")

    @task(10)
    def register(self):
        if EVENT_IDS and self.headers:
            event_id = random.choice(EVENT_IDS)
            resp = self.client.post(f"/api/events/{event_id}/register",
                headers=self.headers, name="/api/events/{id}/register")
            if resp.status_code == 201:
                self.registered.add(event_id)

    @task(3)
    def cancel(self):
        if self.registered:
            event_id = self.registered.pop()
            self.client.delete(f"/api/events/{event_id}/register",
                headers=self.headers, name="/api/events/{id}/register")

    @task(3)
    def my_events(self):
        if self.headers:
            self.client.get("/api/events/user/events", headers=self.headers)

    @task(2)
    def create_event(self):
        if self.headers:
            resp = self.client.post("/api/events",
                json={
                    "title": f"Event {random.randint(1, 10000)}",
                    "description": "Test event",
                    "date": (date.today() + timedelta(days=random.randint(1, 90))).isoformat(),
                    "location": "Venue",
                    "seats": random.randint(10, 500),
                },
                headers=self.headers)
            if resp.status_code == 201:
                EVENT_IDS.append(resp.json()["data"]["id"])
