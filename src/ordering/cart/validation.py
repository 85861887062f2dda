"""Cart validation against current reference data.

Lines are never removed here; the result only flags them so the customer
can decide. A product that no longer exists is *invalid*; one that exists
but cannot be ordered right now (inactive, out of service, stall closed,
schedule out of range) is *unavailable*.
"""

from datetime import timedelta

import structlog

from ordering.catalog import get_catalog
from ordering.errors import backing_store
from ordering.utils.settings import get_settings
from ordering.utils.timestamps import to_utc, utcnow

logger = structlog.get_logger(__name__)


def _stall_closed_on(stall, when):
    open_hours = stall.get("open_hours") or {}
    day = when.strftime("%A").lower()
    return str(open_hours.get(day, "")).lower() == "closed"


def validate_cart(cart) -> dict:
    """Flag cart lines referencing products that can no longer be ordered."""
    catalog = get_catalog()
    max_ahead = timedelta(days=get_settings().max_schedule_days)
    now = utcnow()

    invalid_items = []
    unavailable_items = []

    with backing_store("cart.validate"):
        for item in cart.lines:
            product_id = str(item.product_id)
            product = catalog.get_product(product_id)
            if product is None:
                invalid_items.append(product_id)
                continue

            if product.get("is_active") is False or product.get("is_available") is False:
                unavailable_items.append(product_id)
                continue

            stall = catalog.get_stall(str(item.stall_id))
            if stall is None or stall.get("is_active") is False:
                unavailable_items.append(product_id)
                continue

            scheduled_for = to_utc(item.scheduled_for)
            if scheduled_for is not None and (
                scheduled_for < now or scheduled_for > now + max_ahead or _stall_closed_on(stall, scheduled_for)
            ):
                unavailable_items.append(product_id)

    if invalid_items or unavailable_items:
        logger.info(
            "Cart has lines that cannot be ordered",
            cart_id=str(cart.id),
            invalid_items=invalid_items,
            unavailable_items=unavailable_items,
        )

    return {
        "valid": not invalid_items and not unavailable_items,
        "invalid_items": invalid_items,
        "unavailable_items": unavailable_items,
    }
