"""Locust load test: tag listing page latency under mixed anonymous / signed-in traffic.

The listing page fans out four concurrent lookups per request, each on its own
pooled connection, so connection pool pressure shows up here first.

Run command:
    # Raise the read bucket, the default 120/min throttles a single user within seconds
    RATE_LIMIT_READ_PER_MINUTE=100000 locust -f tests/load/locustfile_tag_page.py \\
      --host http://localhost:8000 \\
      --users 20 --spawn-rate 5 --run-time 60s \\
      --headless --only-summary --csv=results/tag_page

Prerequisites:
    1. Start the stack and run migrations: cd api && alembic upgrade head
    2. Seed tags and topics: cd api && python -m fixtures.seed_fixtures
    3. mkdir -p results/
"""

import random

from locust import HttpUser, between, task

TAG_NAMES = ["python", "rust", "go"]


class AnonymousReader(HttpUser):
    """Browses tag pages without a session."""

    wait_time = between(0.05, 0.2)

    @task(5)
    def first_page(self) -> None:
        self.client.get(f"/tags/{random.choice(TAG_NAMES)}", name="/tags/[name]")

    @task(1)
    def later_page(self) -> None:
        self.client.get(
            f"/tags/{random.choice(TAG_NAMES)}?page={random.randint(2, 5)}",
            name="/tags/[name]?page",
        )


class SignedInReader(HttpUser):
    """Registers, signs in, then browses and toggles collections."""

    wait_time = between(0.1, 0.5)

    def on_start(self) -> None:
        resp = self.client.post(
            "/api/v1/keys",
            json={"email": f"load-{id(self)}@test.invalid"},
        )
        if resp.status_code == 201:
            self.client.post("/signin", data={"api_key": resp.json()["api_key"]})

        tags = self.client.get("/api/v1/tags").json().get("tags", [])
        self.tag_ids = [t["id"] for t in tags]

    @task(8)
    def browse(self) -> None:
        self.client.get(f"/tags/{random.choice(TAG_NAMES)}", name="/tags/[name]")

    @task(1)
    def toggle_collect(self) -> None:
        if not self.tag_ids:
            return
        tag_id = random.choice(self.tag_ids)
        self.client.post("/tags/collect", data={"tag_id": tag_id})
        self.client.post("/tags/de_collect", data={"tag_id": tag_id})
