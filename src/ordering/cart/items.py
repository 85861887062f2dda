"""Cart Store operations: commands and handler.

Every handler returns the cart summary ``{"cart", "item_count",
"total_cents"}`` so callers can refresh without a second round trip.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.domain import ordering
from ordering.errors import backing_store

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class OpenCart:
    """Fetch the customer's cart, creating an empty one on first access."""

    customer_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price_cents = Integer(required=True, min_value=0)
    scheduled_for = DateTime()
    special_instructions = Text()


@ordering.command(part_of="Cart")
class UpdateCartQuantity:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    quantity = Integer(required=True)  # <= 0 removes the line
    scheduled_for = DateTime()


@ordering.command(part_of="Cart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier()  # Omit to remove the product from every stall
    scheduled_for = DateTime()  # Omit to remove every scheduled line


@ordering.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


def load_or_open_cart(customer_id) -> Cart:
    """Load the customer's cart, creating it when missing and emptying it when expired.

    The caller is responsible for persisting the returned cart.
    """
    repo = current_domain.repository_for(Cart)
    cart = repo.find_for_customer(customer_id)
    if cart is None:
        logger.info("Opening cart", customer_id=str(customer_id))
        return Cart.create(customer_id=customer_id)
    if cart.is_expired():
        logger.info(
            "Cart expired on access",
            cart_id=str(cart.id),
            customer_id=str(customer_id),
            item_count=cart.item_count,
        )
        cart.expire()
    return cart


@ordering.command_handler(part_of=Cart)
class CartCommandHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        with backing_store("cart.open"):
            cart = load_or_open_cart(command.customer_id)
            current_domain.repository_for(Cart).add(cart)
        return cart.summary()

    @handle(AddToCart)
    def add_to_cart(self, command):
        with backing_store("cart.add"):
            cart = load_or_open_cart(command.customer_id)
            cart.add_item(
                product_id=command.product_id,
                stall_id=command.stall_id,
                quantity=command.quantity,
                unit_price_cents=command.unit_price_cents,
                scheduled_for=command.scheduled_for,
                special_instructions=command.special_instructions,
            )
            current_domain.repository_for(Cart).add(cart)

        logger.debug(
            "Cart item added",
            customer_id=str(command.customer_id),
            product_id=str(command.product_id),
            quantity=command.quantity,
            item_count=cart.item_count,
        )
        return cart.summary()

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        with backing_store("cart.update"):
            cart = load_or_open_cart(command.customer_id)
            cart.update_quantity(
                product_id=command.product_id,
                stall_id=command.stall_id,
                quantity=command.quantity,
                scheduled_for=command.scheduled_for,
            )
            current_domain.repository_for(Cart).add(cart)
        return cart.summary()

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        with backing_store("cart.remove"):
            cart = load_or_open_cart(command.customer_id)
            removed = cart.remove_item(
                product_id=command.product_id,
                stall_id=command.stall_id,
                scheduled_for=command.scheduled_for,
            )
            current_domain.repository_for(Cart).add(cart)

        logger.debug(
            "Cart lines removed",
            customer_id=str(command.customer_id),
            product_id=str(command.product_id),
            lines_removed=removed,
        )
        return cart.summary()

    @handle(ClearCart)
    def clear_cart(self, command):
        with backing_store("cart.clear"):
            cart = load_or_open_cart(command.customer_id)
            cart.clear()
            current_domain.repository_for(Cart).add(cart)
        return cart.summary()


def get_cart(customer_id) -> dict:
    """The customer's cart summary. Never fails for a valid customer id."""
    return current_domain.process(OpenCart(customer_id=str(customer_id)), asynchronous=False)
