"""Cart aggregate (CQRS): the server-side, authoritative cart of one customer.

The cart is a standard CQRS aggregate (not event sourced). Lines merge on
the key (product_id, stall_id, scheduled_for); every mutation slides the
expiry window forward. The cart is emptied, never deleted, when an order
is assembled from it or when it expires.
"""

import math
from datetime import timedelta

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, Text

from ordering.cart.events import (
    CartCleared,
    CartExpired,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from ordering.domain import ordering
from ordering.utils.settings import get_settings
from ordering.utils.timestamps import isoformat, to_utc, utcnow


def coerce_quantity(value, allow_non_positive=False):
    """Return ``value`` as an int, rejecting bools, fractions and non-finite numbers."""
    if isinstance(value, bool):
        raise ValidationError({"quantity": ["Quantity must be a whole number"]})
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError({"quantity": ["Quantity must be a whole number"]})
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError({"quantity": ["Quantity must be a whole number"]})
    if value < 1 and not allow_non_positive:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})
    return value


def _same_id(left, right):
    return str(left) == str(right)


def _same_time(left, right):
    return to_utc(left) == to_utc(right)


@ordering.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)
    scheduled_for = DateTime()
    special_instructions = Text()
    added_at = DateTime()

    @property
    def line_total_cents(self):
        return self.unit_price_cents * self.quantity

    def has_key(self, product_id, stall_id, scheduled_for):
        """Exact match on the merge key."""
        return (
            _same_id(self.product_id, product_id)
            and _same_id(self.stall_id, stall_id)
            and _same_time(self.scheduled_for, scheduled_for)
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "stall_id": str(self.stall_id),
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "scheduled_for": isoformat(self.scheduled_for),
            "special_instructions": self.special_instructions,
        }


@ordering.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def every_line_has_a_positive_quantity(self):
        for item in self.items or []:
            if item.quantity is None or item.quantity < 1:
                raise ValidationError({"items": ["Every cart line must have a quantity of at least 1"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = utcnow()
        return cls(
            customer_id=str(customer_id),
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(hours=get_settings().cart_ttl_hours),
        )

    # -------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------
    @property
    def lines(self):
        """Cart lines in the order they were first added."""
        return sorted(self.items or [], key=lambda item: to_utc(item.added_at) or to_utc(self.created_at))

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items or [])

    @property
    def total_cents(self):
        return sum(item.line_total_cents for item in self.items or [])

    def quantity_of(self, product_id, stall_id=None):
        return sum(
            item.quantity
            for item in self.items or []
            if _same_id(item.product_id, product_id) and (stall_id is None or _same_id(item.stall_id, stall_id))
        )

    def is_expired(self, as_of=None):
        as_of = to_utc(as_of) or utcnow()
        return self.expires_at is not None and to_utc(self.expires_at) <= as_of

    def to_dict(self):
        return {
            "id": str(self.id),
            "customer_id": str(self.customer_id),
            "items": [item.to_dict() for item in self.lines],
            "expires_at": isoformat(self.expires_at),
            "updated_at": isoformat(self.updated_at),
        }

    def summary(self):
        """Cart plus the aggregate counts callers need after a mutation."""
        return {"cart": self.to_dict(), "item_count": self.item_count, "total_cents": self.total_cents}

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def _touch(self):
        now = utcnow()
        self.updated_at = now
        self.expires_at = now + timedelta(hours=get_settings().cart_ttl_hours)
        return now

    def _find(self, product_id, stall_id, scheduled_for):
        return next((i for i in self.items or [] if i.has_key(product_id, stall_id, scheduled_for)), None)

    def add_item(
        self,
        product_id,
        stall_id,
        quantity,
        unit_price_cents,
        scheduled_for=None,
        special_instructions=None,
    ):
        """Add a line, or top up the existing line with the same merge key."""
        quantity = coerce_quantity(quantity)
        if isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents < 0:
            raise ValidationError({"unit_price_cents": ["Unit price must be a non-negative whole number of cents"]})

        scheduled_for = to_utc(scheduled_for)
        now = self._touch()

        existing = self._find(product_id, stall_id, scheduled_for)
        if existing:
            existing.quantity += quantity
            existing.unit_price_cents = unit_price_cents
            if special_instructions is not None:
                existing.special_instructions = special_instructions
            item = existing
        else:
            item = CartItem(
                product_id=str(product_id),
                stall_id=str(stall_id),
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                scheduled_for=scheduled_for,
                special_instructions=special_instructions,
                added_at=now,
            )
            self.add_items(item)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                product_id=str(product_id),
                stall_id=str(stall_id),
                quantity=quantity,
                new_quantity=item.quantity,
                unit_price_cents=unit_price_cents,
                scheduled_for=scheduled_for,
            )
        )
        return item

    def update_quantity(self, product_id, stall_id, quantity, scheduled_for=None):
        """Set the quantity of one line. Zero or less removes the line.

        An unknown line leaves the cart as it was.
        """
        quantity = coerce_quantity(quantity, allow_non_positive=True)
        scheduled_for = to_utc(scheduled_for)

        item = self._find(product_id, stall_id, scheduled_for)
        if item is None:
            return None

        if quantity <= 0:
            self.remove_item(product_id, stall_id=stall_id, scheduled_for=scheduled_for, exact=True)
            return None

        previous_quantity = item.quantity
        item.quantity = quantity
        self._touch()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )
        return item

    def remove_item(self, product_id, stall_id=None, scheduled_for=None, exact=False):
        """Remove lines for a product.

        An omitted ``stall_id`` or ``scheduled_for`` matches any value, so
        "remove this dish entirely" is a single call. With ``exact=True``
        the full merge key must match.
        """
        scheduled_for = to_utc(scheduled_for)

        def _matches(item):
            if exact:
                return item.has_key(product_id, stall_id, scheduled_for)
            return (
                _same_id(item.product_id, product_id)
                and (stall_id is None or _same_id(item.stall_id, stall_id))
                and (scheduled_for is None or _same_time(item.scheduled_for, scheduled_for))
            )

        doomed = [item for item in self.items or [] if _matches(item)]
        if not doomed:
            return 0

        for item in doomed:
            self.remove_items(item)
        self._touch()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                stall_id=str(stall_id) if stall_id is not None else None,
                lines_removed=len(doomed),
            )
        )
        return len(doomed)

    def clear(self, reason="customer"):
        """Empty the cart."""
        lines = list(self.items or [])
        for item in lines:
            self.remove_items(item)
        self._touch()

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                lines_removed=len(lines),
            )
        )

    def expire(self, as_of=None):
        """Empty an expired cart and start a fresh expiry window."""
        as_of = to_utc(as_of) or utcnow()
        lines = list(self.items or [])
        for item in lines:
            self.remove_items(item)
        self._touch()

        self.raise_(
            CartExpired(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                expired_at=as_of,
                lines_removed=len(lines),
            )
        )
