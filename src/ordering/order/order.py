"""Order aggregate (Event Sourced): the order lifecycle engine.

The Order aggregate uses event sourcing: all state changes are captured as
domain events, and the current state is rebuilt by replaying events via
@apply decorators. Status history entries are appended only from @apply
handlers, so replay reproduces them exactly and nothing rewrites them.

State Machine (6 states):
    PENDING → CONFIRMED → PREPARING → READY → FULFILLED
    CANCELLED (from PENDING, CONFIRMED)

Who may move an order along each edge is in ``TRANSITIONS``. That table is
the only place transition rules live; the API and any UI ask it.
"""

import json
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from uuid import uuid4

from protean import apply, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.actors import Role
from ordering.domain import ordering
from ordering.errors import Forbidden, InvalidScheduleError, InvalidTransitionError
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderFulfilled,
    OrderPlaced,
    OrderPreparing,
    OrderReady,
    OrderRescheduled,
    PaymentStatusRecorded,
)
from ordering.utils.settings import get_settings
from ordering.utils.timestamps import isoformat, parse_timestamp, to_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, label):
        """Resolve a status label, accepting display aliases."""
        text = str(getattr(label, "value", label)).strip().lower()
        text = _STATUS_ALIASES.get(text, text)
        try:
            return cls(text)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {label}"]}) from None

    @property
    def is_terminal(self):
        return self in (OrderStatus.FULFILLED, OrderStatus.CANCELLED)


# "completed" is a legacy label for the same state
_STATUS_ALIASES = {"completed": "fulfilled"}


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"

    @classmethod
    def parse(cls, label):
        try:
            return cls(str(getattr(label, "value", label)).strip().lower())
        except ValueError:
            raise ValidationError({"payment_status": [f"Unknown payment status: {label}"]}) from None


class DeliveryOption(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


# (from, to) → roles allowed to make the move. Admins act as stall staff.
TRANSITIONS = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): frozenset({Role.STALL_STAFF}),
    (OrderStatus.PENDING, OrderStatus.CANCELLED): frozenset({Role.CUSTOMER, Role.STALL_STAFF}),
    (OrderStatus.CONFIRMED, OrderStatus.PREPARING): frozenset({Role.STALL_STAFF}),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): frozenset({Role.STALL_STAFF}),
    (OrderStatus.PREPARING, OrderStatus.READY): frozenset({Role.STALL_STAFF}),
    (OrderStatus.READY, OrderStatus.FULFILLED): frozenset({Role.STALL_STAFF}),
}

# States in which the promised time may still move
_RESCHEDULABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}
# Label reported as the requested move when a reschedule is refused
RESCHEDULE_REQUEST = "rescheduled"


def _table_role(role):
    return Role.STALL_STAFF if role == Role.ADMIN else role


def can_transition(current, target, role) -> bool:
    """True if ``role`` may move an order from ``current`` to ``target``."""
    allowed = TRANSITIONS.get((OrderStatus.parse(current), OrderStatus.parse(target)), frozenset())
    return _table_role(role) in allowed


def allowed_transitions(current, role) -> list[str]:
    """Statuses ``role`` may move an order to from ``current``, in lifecycle order."""
    current = OrderStatus.parse(current)
    role = _table_role(role)
    return [
        target.value
        for target in OrderStatus
        if role in TRANSITIONS.get((current, target), frozenset())
    ]


def _ever_reachable_by(target, role) -> bool:
    role = _table_role(role)
    return any(to == target and role in roles for (_, to), roles in TRANSITIONS.items())


# ---------------------------------------------------------------------------
# Pricing input
# ---------------------------------------------------------------------------
@dataclass
class PricedLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price_cents: int
    notes: str | None = None

    @property
    def total_price_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass
class PriceQuote:
    """Integer-cent price breakdown produced at checkout."""

    lines: list[PricedLine] = field(default_factory=list)
    subtotal_cents: int = 0
    delivery_fee_cents: int = 0
    tax_cents: int = 0
    total_cents: int = 0
    currency: str = "USD"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order, in whole cents.

    Locked when the order is placed and never recalculated, even if the
    catalogue prices change later.
    """

    subtotal_cents = Integer(default=0, min_value=0)
    delivery_fee_cents = Integer(default=0, min_value=0)
    tax_cents = Integer(default=0, min_value=0)
    total_cents = Integer(default=0, min_value=0)
    currency = String(max_length=3, default="USD")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line of an order, priced when the order was placed."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)
    total_price_cents = Integer(required=True, min_value=0)
    notes = Text()


@ordering.entity(part_of="Order")
class StatusEntry:
    status = String(required=True, max_length=20)
    timestamp = DateTime(required=True)
    notes = Text()
    actor_role = String(max_length=20)


@ordering.entity(part_of="Order")
class ScheduleChange:
    """A reschedule, kept apart from the status history."""

    previous_scheduled_for = DateTime()
    scheduled_for = DateTime(required=True)
    reason = Text()
    actor_id = Identifier()
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@ordering.aggregate(is_event_sourced=True)
class Order:
    customer_id = Identifier(required=True)
    business_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    scheduled_for = DateTime()
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    delivery_option = String(choices=DeliveryOption, default=DeliveryOption.PICKUP.value)
    delivery_address = Text()
    payment_method = String(max_length=50)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    notes = Text()
    cancellation_reason = Text()
    status_history = HasMany(StatusEntry)
    schedule_changes = HasMany(ScheduleChange)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_is_sum_of_parts(self):
        p = self.pricing
        if p is not None and p.total_cents != p.subtotal_cents + p.delivery_fee_cents + p.tax_cents:
            raise ValidationError({"pricing": ["Order total must equal subtotal plus delivery fee plus tax"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        business_id,
        stall_id,
        quote: PriceQuote,
        scheduled_for,
        delivery_option,
        delivery_address=None,
        payment_method="cash",
        notes=None,
    ):
        """Create a new order from a priced checkout.

        Uses _create_new() to get a blank aggregate with auto-generated
        identity. All state is established by the OrderPlaced event's
        @apply handler.
        """
        if not quote.lines:
            raise ValidationError({"items": ["An order needs at least one item"]})
        line_sum = sum(line.total_price_cents for line in quote.lines)
        if line_sum != quote.subtotal_cents:
            raise ValidationError({"pricing": ["Line totals must add up to the subtotal"]})
        if quote.total_cents != quote.subtotal_cents + quote.delivery_fee_cents + quote.tax_cents:
            raise ValidationError({"pricing": ["Order total must equal subtotal plus delivery fee plus tax"]})

        # Pre-generate item IDs for deterministic replay
        items = [
            {
                "id": str(uuid4()),
                "product_id": str(line.product_id),
                "product_name": line.product_name,
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
                "total_price_cents": line.total_price_cents,
                "notes": line.notes,
            }
            for line in quote.lines
        ]

        order = cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                business_id=str(business_id),
                stall_id=str(stall_id),
                items=json.dumps(items),
                scheduled_for=to_utc(scheduled_for),
                subtotal_cents=quote.subtotal_cents,
                delivery_fee_cents=quote.delivery_fee_cents,
                tax_cents=quote.tax_cents,
                total_cents=quote.total_cents,
                currency=quote.currency,
                delivery_option=DeliveryOption(delivery_option).value,
                delivery_address=delivery_address,
                payment_method=payment_method,
                notes=notes,
                placed_at=utcnow(),
            )
        )
        return order

    # -------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------
    def assert_caller_may_act(self, caller):
        """Customers act on their own orders; staff on their business's orders."""
        if caller.is_customer:
            if str(caller.id) != str(self.customer_id):
                raise Forbidden("Order belongs to another customer")
            return
        if not caller.can_act_for_business(self.business_id):
            raise Forbidden("Order belongs to another business")

    def allowed_transitions_for(self, caller):
        return allowed_transitions(self.status, caller.role)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition(self, target, caller, notes=None):
        """Move the order to ``target`` on behalf of ``caller``.

        Re-requesting the current status is a no-op for callers who could
        have made that move, so retried requests add no history.
        Returns True when a transition happened, False for a no-op.
        """
        self.assert_caller_may_act(caller)

        current = OrderStatus(self.status)
        target = OrderStatus.parse(target)

        if target == current and _ever_reachable_by(target, caller.role):
            return False

        if _table_role(caller.role) not in TRANSITIONS.get((current, target), frozenset()):
            if current.is_terminal:
                reason = f"Order is already {current.value} and cannot become {target.value}"
            elif (current, target) in TRANSITIONS:
                reason = f"A {caller.role.value} cannot move an order from {current.value} to {target.value}"
            else:
                reason = None
            raise InvalidTransitionError(current, target, reason)

        event_cls = _TRANSITION_EVENTS[target]
        payload = {
            "order_id": str(self.id),
            "actor_id": str(caller.id),
            "actor_role": caller.role.value,
            "notes": notes,
            "changed_at": utcnow(),
        }
        if target == OrderStatus.CANCELLED:
            payment = PaymentStatus(self.payment_status)
            payload["payment_status"] = (
                PaymentStatus.REFUNDED.value if payment == PaymentStatus.PAID else payment.value
            )
        self.raise_(event_cls(**payload))
        return True

    def cancel(self, caller, reason=None):
        return self.transition(OrderStatus.CANCELLED, caller, notes=reason)

    def reschedule(self, scheduled_for, caller, reason=None):
        """Move the promised fulfillment time.

        The new time is checked before the status, so a bad time is
        reported as such even on an order that could not be rescheduled.
        """
        self.assert_caller_may_act(caller)

        try:
            new_time = parse_timestamp(scheduled_for)
        except (TypeError, ValueError):
            raise InvalidScheduleError("Scheduled time is not a valid timestamp") from None
        if new_time is None:
            raise InvalidScheduleError("A new scheduled time is required")

        now = utcnow()
        if new_time <= now:
            raise InvalidScheduleError("New scheduled time must be in the future")
        max_days = get_settings().max_schedule_days
        if new_time > now + timedelta(days=max_days):
            raise InvalidScheduleError(f"Orders cannot be scheduled more than {max_days} days ahead")

        current = OrderStatus(self.status)
        if current not in _RESCHEDULABLE_STATES:
            raise InvalidTransitionError(
                current,
                RESCHEDULE_REQUEST,
                f"Orders can only be rescheduled while pending or confirmed, this one is {current.value}",
            )

        self.raise_(
            OrderRescheduled(
                order_id=str(self.id),
                previous_scheduled_for=to_utc(self.scheduled_for),
                scheduled_for=new_time,
                reason=reason,
                actor_id=str(caller.id),
                rescheduled_at=now,
            )
        )

    def record_payment_status(self, payment_status, caller):
        """Record a payment label. Returns False when nothing changed."""
        if not caller.is_staff:
            raise Forbidden("Only stall staff can record payment status")
        self.assert_caller_may_act(caller)

        new_status = PaymentStatus.parse(payment_status)

        if new_status.value == self.payment_status:
            return False

        self.raise_(
            PaymentStatusRecorded(
                order_id=str(self.id),
                previous_status=self.payment_status,
                payment_status=new_status.value,
                actor_id=str(caller.id),
                recorded_at=utcnow(),
            )
        )
        return True

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    @property
    def item_count(self):
        return sum(item.quantity for item in self.items or [])

    def to_dict(self):
        pricing = self.pricing
        return {
            "id": str(self.id),
            "customer_id": str(self.customer_id),
            "business_id": str(self.business_id),
            "stall_id": str(self.stall_id),
            "status": self.status,
            "scheduled_for": isoformat(self.scheduled_for),
            "subtotal_cents": pricing.subtotal_cents if pricing else 0,
            "delivery_fee_cents": pricing.delivery_fee_cents if pricing else 0,
            "tax_cents": pricing.tax_cents if pricing else 0,
            "total_cents": pricing.total_cents if pricing else 0,
            "currency": pricing.currency if pricing else "USD",
            "delivery_option": self.delivery_option,
            "delivery_address": self.delivery_address,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "item_count": self.item_count,
            "items": [
                {
                    "id": str(item.id),
                    "order_id": str(self.id),
                    "product_id": str(item.product_id),
                    "product_name": item.product_name,
                    "qty": item.quantity,
                    "unit_price_cents": item.unit_price_cents,
                    "total_price_cents": item.total_price_cents,
                    "notes": item.notes,
                }
                for item in self.items or []
            ],
            "status_history": [
                {
                    "status": entry.status,
                    "timestamp": isoformat(entry.timestamp),
                    "notes": entry.notes,
                }
                for entry in self.status_history or []
            ],
            "schedule_changes": [
                {
                    "previous_scheduled_for": isoformat(change.previous_scheduled_for),
                    "scheduled_for": isoformat(change.scheduled_for),
                    "reason": change.reason,
                    "changed_at": isoformat(change.changed_at),
                }
                for change in self.schedule_changes or []
            ],
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    # -------------------------------------------------------------------
    # @apply methods rebuild state during event replay
    # -------------------------------------------------------------------
    def _record_status(self, status, event):
        self.status = status.value
        self.updated_at = event.changed_at
        self.add_status_history(
            StatusEntry(
                status=status.value,
                timestamp=event.changed_at,
                notes=event.notes,
                actor_role=event.actor_role,
            )
        )

    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.customer_id = event.customer_id
        self.business_id = event.business_id
        self.stall_id = event.stall_id
        self.status = OrderStatus.PENDING.value
        self.scheduled_for = event.scheduled_for
        self.delivery_option = event.delivery_option
        self.delivery_address = event.delivery_address
        self.payment_method = event.payment_method
        self.payment_status = PaymentStatus.PENDING.value
        self.notes = event.notes
        self.created_at = event.placed_at
        self.updated_at = event.placed_at

        # Reconstruct items from JSON (includes IDs for deterministic replay)
        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderItem(**item_data) for item_data in items_data]

        self.pricing = OrderPricing(
            subtotal_cents=event.subtotal_cents,
            delivery_fee_cents=event.delivery_fee_cents or 0,
            tax_cents=event.tax_cents or 0,
            total_cents=event.total_cents,
            currency=event.currency or "USD",
        )
        self.status_history = [
            StatusEntry(
                status=OrderStatus.PENDING.value,
                timestamp=event.placed_at,
                notes="Order placed",
                actor_role=Role.CUSTOMER.value,
            )
        ]

    @apply
    def _on_order_confirmed(self, event: OrderConfirmed):
        self._record_status(OrderStatus.CONFIRMED, event)

    @apply
    def _on_order_preparing(self, event: OrderPreparing):
        self._record_status(OrderStatus.PREPARING, event)

    @apply
    def _on_order_ready(self, event: OrderReady):
        self._record_status(OrderStatus.READY, event)

    @apply
    def _on_order_fulfilled(self, event: OrderFulfilled):
        self._record_status(OrderStatus.FULFILLED, event)

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self._record_status(OrderStatus.CANCELLED, event)
        self.cancellation_reason = event.notes
        if event.payment_status:
            self.payment_status = event.payment_status

    @apply
    def _on_order_rescheduled(self, event: OrderRescheduled):
        self.scheduled_for = event.scheduled_for
        self.updated_at = event.rescheduled_at
        self.add_schedule_changes(
            ScheduleChange(
                previous_scheduled_for=event.previous_scheduled_for,
                scheduled_for=event.scheduled_for,
                reason=event.reason,
                actor_id=event.actor_id,
                changed_at=event.rescheduled_at,
            )
        )

    @apply
    def _on_payment_status_recorded(self, event: PaymentStatusRecorded):
        self.payment_status = event.payment_status
        self.updated_at = event.recorded_at


_TRANSITION_EVENTS = {
    OrderStatus.CONFIRMED: OrderConfirmed,
    OrderStatus.PREPARING: OrderPreparing,
    OrderStatus.READY: OrderReady,
    OrderStatus.FULFILLED: OrderFulfilled,
    OrderStatus.CANCELLED: OrderCancelled,
}
