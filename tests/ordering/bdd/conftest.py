"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import Cart
from ordering.cart.events import CartCleared, CartExpired, CartItemAdded, CartItemRemoved, CartQuantityUpdated
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
from ordering.order.order import Order
from protean.exceptions import ValidationError
from protean.testing import given as given_
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderConfirmed": OrderConfirmed,
    "OrderPreparing": OrderPreparing,
    "OrderReady": OrderReady,
    "OrderFulfilled": OrderFulfilled,
    "OrderCancelled": OrderCancelled,
    "OrderRescheduled": OrderRescheduled,
    "PaymentStatusRecorded": PaymentStatusRecorded,
}

_CART_EVENT_CLASSES = {
    "CartItemAdded": CartItemAdded,
    "CartQuantityUpdated": CartQuantityUpdated,
    "CartItemRemoved": CartItemRemoved,
    "CartCleared": CartCleared,
    "CartExpired": CartExpired,
}

PRICES = {"prod-dumplings": 500, "prod-noodles": 850, "prod-tacos": 400, "prod-sold-out": 700}
STALLS = {"prod-tacos": "stall-002"}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def order_id():
    return "ord-001"


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def staff_actor():
    return {"actor_id": "staff-001", "actor_role": "stall_staff", "actor_business_id": "biz-001"}


@pytest.fixture()
def customer_actor(customer_id):
    return {"actor_id": customer_id, "actor_role": "customer"}


@pytest.fixture()
def error():
    """Container for captured validation errors (used by cart tests)."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Event fixtures (past tense)
# ---------------------------------------------------------------------------
@pytest.fixture()
def order_placed(order_id, customer_id):
    now = datetime.now(UTC)
    return OrderPlaced(
        order_id=order_id,
        customer_id=customer_id,
        business_id="biz-001",
        stall_id="stall-001",
        items=json.dumps(
            [
                {
                    "id": "item-1",
                    "product_id": "prod-dumplings",
                    "product_name": "Pork Dumplings",
                    "quantity": 2,
                    "unit_price_cents": 500,
                    "total_price_cents": 1000,
                }
            ]
        ),
        scheduled_for=now + timedelta(hours=2),
        subtotal_cents=1000,
        delivery_fee_cents=0,
        tax_cents=80,
        total_cents=1080,
        currency="USD",
        delivery_option="pickup",
        payment_method="cash",
        placed_at=now,
    )


def _staff_event(event_cls, order_id, **extra):
    return event_cls(
        order_id=order_id,
        actor_id="staff-001",
        actor_role="stall_staff",
        changed_at=datetime.now(UTC),
        **extra,
    )


@pytest.fixture()
def order_confirmed(order_id):
    return _staff_event(OrderConfirmed, order_id)


@pytest.fixture()
def order_preparing(order_id):
    return _staff_event(OrderPreparing, order_id)


@pytest.fixture()
def order_ready(order_id):
    return _staff_event(OrderReady, order_id)


@pytest.fixture()
def order_fulfilled(order_id):
    return _staff_event(OrderFulfilled, order_id)


@pytest.fixture()
def payment_recorded(order_id):
    return PaymentStatusRecorded(
        order_id=order_id,
        previous_status="pending",
        payment_status="paid",
        actor_id="staff-001",
        recorded_at=datetime.now(UTC),
    )


# ---------------------------------------------------------------------------
# Given steps for orders (event sourcing via protean.testing)
# ---------------------------------------------------------------------------
@given("an order was placed", target_fixture="order")
def _(order_placed):
    return given_(Order, order_placed)


@given("the order was confirmed", target_fixture="order")
def _(order, order_confirmed):
    return order.after(order_confirmed)


@given("the order is being prepared", target_fixture="order")
def _(order, order_preparing):
    return order.after(order_preparing)


@given("the order is ready", target_fixture="order")
def _(order, order_ready):
    return order.after(order_ready)


@given("the order was fulfilled", target_fixture="order")
def _(order, order_fulfilled):
    return order.after(order_fulfilled)


@given("the order was paid", target_fixture="order")
def _(order, payment_recorded):
    return order.after(payment_recorded)


# ---------------------------------------------------------------------------
# Given steps for carts
# ---------------------------------------------------------------------------
@given("an empty cart", target_fixture="cart")
def empty_cart(customer_id):
    cart = Cart.create(customer_id=customer_id)
    cart._events.clear()
    return cart


@given(parsers.cfparse('the cart holds {qty:d} "{product_id}"'), target_fixture="cart")
def cart_holds(cart, qty, product_id):
    cart.add_item(product_id, STALLS.get(product_id, "stall-001"), qty, PRICES[product_id])
    cart._events.clear()
    return cart


@given(parsers.cfparse('stall "{stall_id}" also sold {qty:d} "{product_id}" into the cart'), target_fixture="cart")
def cart_holds_from_stall(cart, qty, product_id, stall_id):
    cart.add_item(product_id, stall_id, qty, PRICES[product_id])
    cart._events.clear()
    return cart


# ---------------------------------------------------------------------------
# Then steps for orders
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert order.status == status


@then(parsers.cfparse('the order payment status is "{status}"'))
def _(order, status):
    assert order.payment_status == status


@then("the order action fails with a validation error")
def _(order):
    assert order.rejected
    assert isinstance(order.rejection, ValidationError)


@then(parsers.cfparse("an {event_type} order event is raised"))
def _(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert event_cls in order.events


@then(parsers.cfparse("a {event_type} order event is raised"))
def _(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert event_cls in order.events


# ---------------------------------------------------------------------------
# Then steps for carts
# ---------------------------------------------------------------------------
@then("the cart action fails with a validation error")
def cart_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} cart event is raised"))
def cart_event_raised(cart, event_type):
    event_cls = _CART_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cart._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cart._events]}"
