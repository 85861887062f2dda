"""Order placement: turns a cart (or an explicit item list) into an order.

Validation runs in a fixed order and stops at the first failure:
items present, items well-formed, items orderable, schedule, address.
The order is created and the source cart emptied inside the same unit of
work, so either both are persisted or neither is.
"""

import json
from datetime import timedelta

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, coerce_quantity
from ordering.cart.items import load_or_open_cart
from ordering.catalog import get_catalog
from ordering.checkout.pricing import price_items
from ordering.domain import ordering
from ordering.errors import (
    EmptyCartError,
    InvalidScheduleError,
    ItemUnavailableError,
    MissingAddressError,
    backing_store,
)
from ordering.order.order import DeliveryOption, Order
from ordering.utils.settings import get_settings
from ordering.utils.timestamps import parse_timestamp, utcnow

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text()  # JSON: list of {product_id, stall_id?, quantity, notes?}; omit to check out the cart
    scheduled_for = String(max_length=64)  # ISO-8601
    delivery_option = String(default=DeliveryOption.PICKUP.value, max_length=20)
    delivery_address = Text()
    special_instructions = Text()
    payment_method = String(default="cash", max_length=50)
    clear_cart = Boolean(default=False)  # Also empty the cart when explicit items are given


def _items_from_cart(cart):
    return [
        {
            "product_id": str(line.product_id),
            "stall_id": str(line.stall_id),
            "quantity": line.quantity,
            "notes": line.special_instructions,
        }
        for line in cart.lines
    ]


def _parse_items(raw):
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError({"items": ["Items must be a JSON list"]}) from None
    if not isinstance(items, list):
        raise ValidationError({"items": ["Items must be a JSON list"]})
    return items


def _check_shape(items):
    checked = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict) or not item.get("product_id"):
            raise ValidationError({"items": [f"Item {position} is missing a product id"]})
        try:
            quantity = coerce_quantity(item.get("quantity"))
        except ValidationError:
            raise ValidationError({"items": [f"Item {position} needs a quantity of at least 1"]}) from None
        checked.append(
            {
                "product_id": str(item["product_id"]),
                "stall_id": str(item["stall_id"]) if item.get("stall_id") else None,
                "quantity": quantity,
                "notes": item.get("notes") or item.get("special_instructions"),
            }
        )
    return checked


def _check_available(items, catalog):
    """Resolve every product and the single stall that sells them all."""
    products = {}
    stall_ids = set()
    for item in items:
        product, reason = catalog.availability(item["product_id"])
        if reason:
            raise ItemUnavailableError(item["product_id"], reason)
        if item["stall_id"] and item["stall_id"] != str(product["stall_id"]):
            raise ItemUnavailableError(item["product_id"], f"is not sold by stall {item['stall_id']}")
        products[item["product_id"]] = product
        stall_ids.add(str(product["stall_id"]))

    if len(stall_ids) > 1:
        raise ValidationError({"items": ["All items in an order must come from the same stall"]})

    stall = catalog.get_stall(stall_ids.pop())
    return products, stall


def _check_schedule(value):
    try:
        scheduled_for = parse_timestamp(value)
    except (TypeError, ValueError):
        raise InvalidScheduleError("Scheduled time is not a valid timestamp") from None
    if scheduled_for is None:
        raise InvalidScheduleError("A scheduled time is required")

    now = utcnow()
    if scheduled_for <= now:
        raise InvalidScheduleError("Scheduled time must be in the future")
    max_days = get_settings().max_schedule_days
    if scheduled_for > now + timedelta(days=max_days):
        raise InvalidScheduleError(f"Orders cannot be scheduled more than {max_days} days ahead")
    return scheduled_for


def _check_delivery(option, address):
    try:
        option = DeliveryOption(str(option or DeliveryOption.PICKUP.value).strip().lower())
    except ValueError:
        raise ValidationError({"delivery_option": ["Delivery option must be pickup or delivery"]}) from None

    address = (address or "").strip() or None
    if option == DeliveryOption.DELIVERY:
        min_length = get_settings().min_address_length
        if address is None:
            raise MissingAddressError()
        if len(address) < min_length:
            raise MissingAddressError(f"Delivery address must be at least {min_length} characters")
    return option, address


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        catalog = get_catalog()

        with backing_store("order.place"):
            cart = None
            if command.items is None:
                cart = load_or_open_cart(command.customer_id)
                raw_items = _items_from_cart(cart)
            else:
                raw_items = _parse_items(command.items)
                if command.clear_cart:
                    cart = load_or_open_cart(command.customer_id)

            if not raw_items:
                raise EmptyCartError()

            items = _check_shape(raw_items)
            products, stall = _check_available(items, catalog)
            scheduled_for = _check_schedule(command.scheduled_for)
            delivery_option, delivery_address = _check_delivery(command.delivery_option, command.delivery_address)

            quote = price_items(items, products, delivery_option.value)

            order = Order.place(
                customer_id=command.customer_id,
                business_id=stall["business_id"],
                stall_id=stall["id"],
                quote=quote,
                scheduled_for=scheduled_for,
                delivery_option=delivery_option.value,
                delivery_address=delivery_address,
                payment_method=command.payment_method or "cash",
                notes=command.special_instructions,
            )
            current_domain.repository_for(Order).add(order)

            if cart is not None:
                cart.clear(reason="checkout")
                current_domain.repository_for(Cart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(command.customer_id),
            stall_id=str(stall["id"]),
            item_count=order.item_count,
            total_cents=quote.total_cents,
            from_cart=cart is not None,
        )
        return order.to_dict()
