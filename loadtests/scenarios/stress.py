"""Stress test scenarios for the ordering API.

CartFloodUser hammers the cart endpoints with independent customers so
every request writes a new or different cart. SpikeUser simulates a
lunchtime burst of direct orders.
"""

from locust import HttpUser, constant_pacing, task

from loadtests.data_generators import (
    admin_headers,
    cart_item_data,
    customer_headers,
    direct_order_data,
    unknown_item_data,
)


class CartFloodUser(HttpUser):
    """Stress test: maximum cart write throughput.

    No sequential dependencies. Each task uses a fresh customer to avoid
    contention on a single cart row.
    """

    wait_time = constant_pacing(0.1)  # ~10 requests/sec per user

    @task(6)
    def add_to_cart(self):
        self.client.post(
            "/cart",
            json=cart_item_data(),
            headers=customer_headers(),
            name="[STRESS] POST /cart",
        )

    @task(2)
    def add_unknown_then_read(self):
        headers = customer_headers()
        self.client.post("/cart", json=unknown_item_data(), headers=headers, name="[STRESS] POST /cart (unknown)")
        self.client.get("/cart", headers=headers, name="[STRESS] GET /cart")

    @task(1)
    def sweep_expired_carts(self):
        self.client.post("/maintenance/expire-carts", headers=admin_headers(), name="[STRESS] POST /maintenance")


class SpikeUser(HttpUser):
    """Spike test: rapid-fire direct orders.

    Spawn 50-100 of these simultaneously to see how the event store and
    the order summary projection cope with a sudden burst.
    """

    wait_time = constant_pacing(0.05)  # ~20 req/sec per user

    @task
    def rapid_order(self):
        self.client.post(
            "/orders",
            json=direct_order_data(),
            headers=customer_headers(),
            name="[SPIKE] POST /orders",
        )
