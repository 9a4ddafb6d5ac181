"""
Storefront load testing with Locust

Run with:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5000

Or headless:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5000 \
           --users 20 --spawn-rate 4 --run-time 60s --headless

Expects a seeded catalog (`flask catalog seed`) and, for the admin profile,
an administrator created with `flask users create-admin` whose credentials are
given in STRESS_ADMIN_EMAIL / STRESS_ADMIN_PASSWORD.

Checkout traffic exercises the per-day order number sequence; every created
order must carry a distinct order_number, which the summary verifies.

Pass thresholds:
- p95 response time < 500ms for reads
- p95 response time < 1000ms for writes
- Error rate < 1%
"""

import os
import random
import time
import uuid
from typing import Dict, List, Optional

from locust import HttpUser, between, events, task


# =============================================================================
# CONFIGURATION
# =============================================================================

ADMIN_EMAIL = os.getenv("STRESS_ADMIN_EMAIL", "admin@shop.local")
ADMIN_PASSWORD = os.getenv("STRESS_ADMIN_PASSWORD", "admin123")
CUSTOMER_PASSWORD = "loadtest123"

SHIPPING_ADDRESS = {
    "street": "1 Load Test Way",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
    "country": "US",
}


# =============================================================================
# METRICS TRACKING
# =============================================================================

class MetricsCollector:
    """Collect per-endpoint timings plus the order numbers handed out."""

    def __init__(self):
        self.request_counts: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.response_times: Dict[str, List[float]] = {}
        self.order_numbers: List[str] = []

    def record(self, name: str, response_time: float, success: bool):
        if name not in self.request_counts:
            self.request_counts[name] = 0
            self.error_counts[name] = 0
            self.response_times[name] = []

        self.request_counts[name] += 1
        if not success:
            self.error_counts[name] += 1
        self.response_times[name].append(response_time)

    def get_summary(self) -> Dict:
        summary = {}
        for name in self.request_counts:
            times = sorted(self.response_times[name])
            count = len(times)
            if count == 0:
                continue

            p50_idx = int(count * 0.50)
            p95_idx = int(count * 0.95)

            summary[name] = {
                "count": self.request_counts[name],
                "errors": self.error_counts[name],
                "error_rate": self.error_counts[name] / self.request_counts[name] * 100,
                "avg_ms": sum(times) / count,
                "p50_ms": times[p50_idx] if p50_idx < count else times[-1],
                "p95_ms": times[p95_idx] if p95_idx < count else times[-1],
            }
        return summary


metrics = MetricsCollector()


def _timed(user: HttpUser, name: str, method: str, path: str, ok=(200,), **kwargs):
    start = time.time()
    response = user.client.request(method, path, name=name, **kwargs)
    metrics.record(name, (time.time() - start) * 1000, response.status_code in ok)
    return response


# =============================================================================
# USER BEHAVIORS
# =============================================================================

class StorefrontUser(HttpUser):
    """Base user holding an optional bearer token."""
    wait_time = between(0.5, 2)
    abstract = True

    token: Optional[str] = None

    def get_headers(self) -> Dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


class BrowsingUser(StorefrontUser):
    """Anonymous shopper reading the catalog."""
    weight = 4

    product_ids: List[int] = []

    @task(5)
    def list_products(self):
        response = _timed(self, "products/list", "GET", "/api/products",
                          params={"page": random.randint(1, 2), "limit": 12})
        if response.status_code == 200:
            self.product_ids = [p["id"] for p in response.json()["data"]["items"]]

    @task(3)
    def filter_products(self):
        _timed(self, "products/filter", "GET", "/api/products", params={
            "category": random.choice(["skincare", "makeup", "haircare"]),
            "sort": random.choice(["price", "-price", "name"]),
        })

    @task(3)
    def get_product(self):
        if not self.product_ids:
            return
        _timed(self, "products/get", "GET", f"/api/products/{random.choice(self.product_ids)}")

    @task(1)
    def health_check(self):
        _timed(self, "system/health", "GET", "/health")


class ShoppingUser(StorefrontUser):
    """Registers a fresh account, then places and reviews orders."""
    weight = 2

    product_ids: List[int] = []

    def on_start(self):
        email = f"load-{uuid.uuid4().hex[:12]}@example.com"
        response = _timed(self, "auth/register", "POST", "/api/auth/register", ok=(201,), json={
            "name": "Load Tester",
            "email": email,
            "password": CUSTOMER_PASSWORD,
        })
        if response.status_code == 201:
            self.token = response.json()["data"]["access_token"]

        listing = self.client.get("/api/products", params={"limit": 50}, name="products/list")
        if listing.status_code == 200:
            self.product_ids = [
                p["id"] for p in listing.json()["data"]["items"]
                if p["stock_status"] != "out-of-stock"
            ]

    @task(4)
    def place_order(self):
        if not self.token or not self.product_ids:
            return
        items = [
            {"product_id": pid, "quantity": random.randint(1, 3)}
            for pid in random.sample(self.product_ids, k=min(2, len(self.product_ids)))
        ]
        response = _timed(self, "orders/create", "POST", "/api/orders", ok=(201,), headers=self.get_headers(), json={
            "items": items,
            "tax": {"amount_cents": random.randint(0, 500), "rate_bps": 800},
            "shipping": {"cost_cents": 500, "method": "standard"},
            "shipping_address": SHIPPING_ADDRESS,
            "payment_method": "credit-card",
        })
        if response.status_code == 201:
            metrics.order_numbers.append(response.json()["data"]["order"]["order_number"])

    @task(2)
    def my_orders(self):
        if not self.token:
            return
        _timed(self, "orders/mine", "GET", "/api/orders/mine", headers=self.get_headers())

    @task(1)
    def me(self):
        if not self.token:
            return
        _timed(self, "auth/me", "GET", "/api/auth/me", headers=self.get_headers())


class AdminUser(StorefrontUser):
    """Administrator listing and advancing orders."""
    weight = 1

    def on_start(self):
        response = _timed(self, "auth/login", "POST", "/api/auth/login", json={
            "email": ADMIN_EMAIL,
            "password": ADMIN_PASSWORD,
        })
        if response.status_code == 200:
            self.token = response.json()["data"]["access_token"]

    @task(3)
    def list_pending(self):
        if not self.token:
            return
        response = _timed(self, "orders/list", "GET", "/api/orders",
                          params={"status": "pending", "limit": 10}, headers=self.get_headers())
        if response.status_code != 200:
            return
        pending = response.json()["data"]["items"]
        if pending:
            order_id = random.choice(pending)["id"]
            _timed(self, "orders/payment", "POST", f"/api/orders/{order_id}/payment",
                   headers=self.get_headers(), json={"transaction_id": f"load-{uuid.uuid4().hex[:8]}"})

    @task(1)
    def email_config(self):
        if not self.token:
            return
        _timed(self, "email/config", "GET", "/api/email-test/config", headers=self.get_headers())


# =============================================================================
# EVENT HANDLERS
# =============================================================================

@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Print summary when test stops."""
    print("\n" + "=" * 80)
    print("LOAD TEST SUMMARY")
    print("=" * 80)

    summary = metrics.get_summary()

    print(f"\n{'Endpoint':<30} {'Count':>8} {'Errors':>8} {'Err%':>8} {'Avg(ms)':>10} {'P95(ms)':>10}")
    print("-" * 80)

    total_requests = 0
    total_errors = 0
    all_pass = True

    for name, stats in sorted(summary.items()):
        total_requests += stats["count"]
        total_errors += stats["errors"]

        is_write = name in ("auth/register", "orders/create", "orders/payment")
        p95_threshold = 1000 if is_write else 500
        passed = stats["p95_ms"] < p95_threshold and stats["error_rate"] < 1

        status = "PASS" if passed else "FAIL"
        if not passed:
            all_pass = False

        print(f"{name:<30} {stats['count']:>8} {stats['errors']:>8} {stats['error_rate']:>7.2f}% "
              f"{stats['avg_ms']:>9.1f} {stats['p95_ms']:>9.1f} [{status}]")

    print("-" * 80)
    print(f"{'TOTAL':<30} {total_requests:>8} {total_errors:>8} {total_errors/max(total_requests,1)*100:>7.2f}%")

    duplicates = len(metrics.order_numbers) - len(set(metrics.order_numbers))
    print(f"\nOrders created: {len(metrics.order_numbers)}, duplicate order numbers: {duplicates}")
    if duplicates:
        all_pass = False
    print("=" * 80)

    if all_pass:
        print("\n[PASS] All endpoints within thresholds")
    else:
        print("\n[FAIL] Some endpoints exceeded thresholds or order numbers collided")
        print("  - Reads: P95 < 500ms, Error rate < 1%")
        print("  - Writes: P95 < 1000ms, Error rate < 1%")

    print("=" * 80)
