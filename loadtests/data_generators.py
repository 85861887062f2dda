"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the ordering API's request schemas and
reference the demo catalog the server loads when SEED_DEMO_CATALOG is set.
"""

import random
import uuid
from datetime import UTC, datetime, timedelta

from faker import Faker

fake = Faker()

DEMO_BUSINESS_ID = "biz-demo"

# (product_id, stall_id, price_cents) mirrored from the server's demo catalog
DEMO_MENU = {
    "stall-demo-noodles": [
        ("prod-demo-ramen", 1250),
        ("prod-demo-udon", 1100),
        ("prod-demo-gyoza", 650),
    ],
    "stall-demo-grill": [
        ("prod-demo-skewers", 900),
        ("prod-demo-corn", 450),
    ],
}

# ---------- Callers ----------


def customer_headers(customer_id: str | None = None) -> dict:
    """Headers the upstream gateway would set for a signed-in customer."""
    return {
        "X-Caller-Id": customer_id or f"cust-lt-{uuid.uuid4().hex[:8]}",
        "X-Caller-Role": "customer",
    }


def staff_headers() -> dict:
    return {
        "X-Caller-Id": f"staff-lt-{uuid.uuid4().hex[:6]}",
        "X-Caller-Role": "stall_staff",
        "X-Business-Id": DEMO_BUSINESS_ID,
    }


def admin_headers() -> dict:
    return {"X-Caller-Id": "admin-lt", "X-Caller-Role": "admin"}


# ---------- Cart ----------


def pick_stall() -> str:
    return random.choice(list(DEMO_MENU))


def cart_item_data(stall_id: str | None = None) -> dict:
    """Generate an AddToCartRequest payload for one product of a demo stall."""
    stall_id = stall_id or pick_stall()
    product_id, price_cents = random.choice(DEMO_MENU[stall_id])
    payload = {
        "product_id": product_id,
        "stall_id": stall_id,
        "quantity": random.randint(1, 3),
        "unit_price_cents": price_cents,
    }
    if random.random() < 0.2:
        payload["special_instructions"] = fake.sentence(nb_words=4)[:100]
    return payload


def unknown_item_data() -> dict:
    """A cart line for a product the catalog has never heard of."""
    return {
        "product_id": f"prod-lt-{uuid.uuid4().hex[:8]}",
        "stall_id": pick_stall(),
        "quantity": 1,
        "unit_price_cents": random.randint(100, 2000),
    }


# ---------- Checkout ----------


def pickup_time(min_hours: int = 1, max_hours: int = 72) -> str:
    """ISO-8601 pickup time inside the allowed scheduling window."""
    when = datetime.now(UTC) + timedelta(hours=random.randint(min_hours, max_hours), minutes=random.randint(0, 59))
    return when.isoformat()


def checkout_data(delivery: bool | None = None) -> dict:
    """Generate a PlaceOrderRequest payload that checks out the current cart."""
    if delivery is None:
        delivery = random.random() < 0.3
    payload = {
        "scheduled_for": pickup_time(),
        "delivery_option": "delivery" if delivery else "pickup",
        "payment_method": random.choice(["cash", "card"]),
    }
    if delivery:
        payload["delivery_address"] = f"{fake.street_address()}, {fake.city()}"[:255]
    if random.random() < 0.2:
        payload["special_instructions"] = fake.sentence(nb_words=6)[:200]
    return payload


def direct_order_data(stall_id: str | None = None) -> dict:
    """Generate a PlaceOrderRequest payload with explicit lines from one stall."""
    stall_id = stall_id or pick_stall()
    lines = random.sample(DEMO_MENU[stall_id], k=random.randint(1, len(DEMO_MENU[stall_id])))
    payload = checkout_data(delivery=False)
    payload["items"] = [{"product_id": product_id, "quantity": random.randint(1, 4)} for product_id, _ in lines]
    return payload


def reschedule_data() -> dict:
    return {"scheduled_for": pickup_time(min_hours=24, max_hours=96), "reason": fake.sentence(nb_words=3)}


def cancel_data() -> dict:
    return {"reason": random.choice(["Plans changed", "Ordered by mistake", "Too long a wait"])}
