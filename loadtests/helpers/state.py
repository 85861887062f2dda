"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state. No cross-user sharing.
State tracks ids returned by the API so follow-up requests can reference
them.
"""

from dataclasses import dataclass, field


@dataclass
class CartState:
    """Tracks state for a single customer's cart."""

    customer_id: str | None = None
    stall_id: str | None = None
    product_ids: list[str] = field(default_factory=list)
    item_count: int = 0


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    order_id: str | None = None
    customer_id: str | None = None
    current_status: str = "pending"
    payment_status: str = "pending"
    history: list[str] = field(default_factory=list)
