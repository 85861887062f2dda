"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or an existing line was topped up."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    unit_price_cents = Integer(required=True)
    scheduled_for = DateTime()


@ordering.event(part_of="Cart")
class CartQuantityUpdated:
    """The quantity of a cart line was set to a new positive value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemRemoved:
    """One or more cart lines for a product were removed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier()  # Empty when every line for the product was removed
    lines_removed = Integer(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """Every line was removed, either by the customer or by checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(max_length=50, default="customer")
    lines_removed = Integer(default=0)


@ordering.event(part_of="Cart")
class CartExpired:
    """The cart went untouched past its expiry and was emptied."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    expired_at = DateTime(required=True)
    lines_removed = Integer(default=0)
