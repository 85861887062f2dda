"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
Events are persisted to the event store and used for:
- Rebuilding aggregate state via @apply (event sourcing)
- Updating the order summary projection via its projector
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer committed a cart (or an explicit item list) as a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    business_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of priced line dicts
    scheduled_for = DateTime(required=True)
    subtotal_cents = Integer(required=True)
    delivery_fee_cents = Integer(default=0)
    tax_cents = Integer(default=0)
    total_cents = Integer(required=True)
    currency = String(max_length=3, default="USD")
    delivery_option = String(required=True, max_length=20)
    delivery_address = Text()
    payment_method = String(max_length=50)
    notes = Text()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderConfirmed:
    """The stall accepted the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)
    notes = Text()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPreparing:
    """The stall started preparing the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)
    notes = Text()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReady:
    """The order is ready for pickup or hand-off to delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)
    notes = Text()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderFulfilled:
    """The customer received the order. Terminal."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)
    notes = Text()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by the customer or the stall. Terminal."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)
    notes = Text()
    payment_status = String(max_length=20)  # Payment label after cancellation
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRescheduled:
    """The promised fulfillment time moved. Status is unaffected."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_scheduled_for = DateTime()
    scheduled_for = DateTime(required=True)
    reason = Text()
    actor_id = Identifier()
    rescheduled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentStatusRecorded:
    """Staff recorded a new payment label. No money moves through this system."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(max_length=20)
    payment_status = String(required=True, max_length=20)
    actor_id = Identifier()
    recorded_at = DateTime(required=True)
