"""Ordering load test scenarios.

Stateful SequentialTaskSet journeys covering the cart lifecycle, the
cart-to-checkout conversion, the staff-driven order lifecycle through
fulfilment, and customer cancellation after a reschedule.

Run the server with SEED_DEMO_CATALOG=true so checkout can price the
demo menu.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task
from storefront.transport import extract_error_detail

from loadtests.data_generators import (
    cancel_data,
    cart_item_data,
    checkout_data,
    customer_headers,
    direct_order_data,
    pick_stall,
    reschedule_data,
    staff_headers,
)
from loadtests.helpers.state import CartState, OrderState

STAFF_PATH = ["confirmed", "preparing", "ready", "fulfilled"]


class CartLifecycleJourney(SequentialTaskSet):
    """View Cart -> Add Items -> Update Quantity -> Remove Item -> Clear.

    Models a browsing customer who fills a cart, changes their mind,
    and leaves without checking out.
    """

    def on_start(self):
        self.state = CartState()
        self.headers = customer_headers()
        self.state.customer_id = self.headers["X-Caller-Id"]
        self.state.stall_id = pick_stall()

    @task
    def view_cart(self):
        with self.client.get("/cart", headers=self.headers, catch_response=True, name="GET /cart") as resp:
            if resp.status_code != 200:
                resp.failure(f"View cart failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def add_items(self):
        for _ in range(random.randint(2, 4)):
            payload = cart_item_data(self.state.stall_id)
            with self.client.post(
                "/cart",
                json=payload,
                headers=self.headers,
                catch_response=True,
                name="POST /cart",
            ) as resp:
                if resp.status_code == 200:
                    self.state.product_ids.append(payload["product_id"])
                    self.state.item_count = resp.json()["item_count"]
                else:
                    resp.failure(f"Add to cart failed: {resp.status_code}: {extract_error_detail(resp)}")
                    return

    @task
    def update_quantity(self):
        if not self.state.product_ids:
            return
        with self.client.put(
            "/cart",
            json={
                "product_id": self.state.product_ids[0],
                "stall_id": self.state.stall_id,
                "quantity": random.randint(1, 5),
            },
            headers=self.headers,
            catch_response=True,
            name="PUT /cart",
        ) as resp:
            if resp.status_code == 200:
                self.state.item_count = resp.json()["item_count"]
            else:
                resp.failure(f"Update quantity failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def remove_item(self):
        if not self.state.product_ids:
            return
        with self.client.delete(
            "/cart",
            params={"product_id": self.state.product_ids[-1]},
            headers=self.headers,
            catch_response=True,
            name="DELETE /cart",
        ) as resp:
            if resp.status_code == 200:
                self.state.item_count = resp.json()["item_count"]
            else:
                resp.failure(f"Remove item failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def clear_cart(self):
        with self.client.delete(
            "/cart",
            params={"clear_all": "true"},
            headers=self.headers,
            catch_response=True,
            name="DELETE /cart?clear_all",
        ) as resp:
            if resp.status_code != 200 or resp.json()["item_count"] != 0:
                resp.failure(f"Clear cart failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CartToCheckoutJourney(SequentialTaskSet):
    """Add Items -> Checkout -> View Order.

    The most common purchase path: the cart is converted into a pending
    order and emptied.
    """

    def on_start(self):
        self.cart = CartState()
        self.order = OrderState()
        self.headers = customer_headers()
        self.cart.stall_id = pick_stall()

    @task
    def add_items(self):
        for _ in range(random.randint(1, 3)):
            with self.client.post(
                "/cart",
                json=cart_item_data(self.cart.stall_id),
                headers=self.headers,
                catch_response=True,
                name="POST /cart",
            ) as resp:
                if resp.status_code == 200:
                    self.cart.item_count = resp.json()["item_count"]
                else:
                    resp.failure(f"Add to cart failed: {resp.status_code}: {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def checkout(self):
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders (cart)",
        ) as resp:
            if resp.status_code == 201:
                self.order.order_id = resp.json()["id"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def view_order(self):
        with self.client.get(
            f"/orders/{self.order.order_id}",
            headers=self.headers,
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"View order failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def list_orders(self):
        self.client.get("/orders", headers=self.headers, name="GET /orders")

    @task
    def done(self):
        self.interrupt()


class OrderFulfilmentJourney(SequentialTaskSet):
    """Place Order -> Confirm -> Mark Paid -> Preparing -> Ready -> Fulfilled.

    A customer orders directly from the menu and stall staff walk the
    order through every lifecycle step.
    """

    def on_start(self):
        self.state = OrderState()
        self.customer = customer_headers()
        self.staff = staff_headers()
        self.state.customer_id = self.customer["X-Caller-Id"]

    @task
    def place_order(self):
        with self.client.post(
            "/orders",
            json=direct_order_data(),
            headers=self.customer,
            catch_response=True,
            name="POST /orders (items)",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def walk_lifecycle(self):
        for status in STAFF_PATH:
            payload = {"status": status}
            if status == "confirmed":
                payload["payment_status"] = "paid"
            with self.client.patch(
                f"/orders/{self.state.order_id}",
                json=payload,
                headers=self.staff,
                catch_response=True,
                name="PATCH /orders/{id}",
            ) as resp:
                if resp.status_code == 200:
                    self.state.current_status = status
                    self.state.history.append(status)
                else:
                    resp.failure(f"Move to {status} failed: {resp.status_code}: {extract_error_detail(resp)}")
                    return

    @task
    def staff_listing(self):
        self.client.get("/orders", params={"sort": "scheduled"}, headers=self.staff, name="GET /orders (staff)")

    @task
    def done(self):
        self.interrupt()


class RescheduleAndCancelJourney(SequentialTaskSet):
    """Place Order -> Reschedule -> Cancel -> Cancel again (no-op).

    Models a customer whose plans change twice. The repeated cancel must
    succeed without altering the order.
    """

    def on_start(self):
        self.state = OrderState()
        self.headers = customer_headers()

    @task
    def place_order(self):
        with self.client.post(
            "/orders",
            json=direct_order_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders (items)",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def reschedule(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/reschedule",
            json=reschedule_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/reschedule",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Reschedule failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def cancel(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json=cancel_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "cancelled"
            else:
                resp.failure(f"Cancel failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def cancel_again(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/cancel (repeat)",
        ) as resp:
            if resp.status_code != 200 or resp.json()["status"] != "cancelled":
                resp.failure(f"Repeat cancel failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class OrderingUser(HttpUser):
    """Locust user simulating storefront and stall traffic.

    Weighted distribution:
    - 35% Cart lifecycle (browsing, abandonment)
    - 30% Cart to checkout conversion
    - 20% Staff-driven fulfilment
    - 15% Reschedule and cancel
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        CartLifecycleJourney: 7,
        CartToCheckoutJourney: 6,
        OrderFulfilmentJourney: 4,
        RescheduleAndCancelJourney: 3,
    }
