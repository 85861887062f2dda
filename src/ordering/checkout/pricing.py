"""Checkout pricing in whole cents.

Prices always come from the catalogue at the moment of checkout, never
from what the cart cached when the item was added.
"""

from decimal import ROUND_HALF_UP, Decimal

from ordering.order.order import DeliveryOption, PricedLine, PriceQuote
from ordering.utils.settings import get_settings


def compute_tax_cents(taxable_cents: int, rate: Decimal) -> int:
    """Tax on ``taxable_cents``, rounded half-up to a whole cent."""
    return int((Decimal(taxable_cents) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def delivery_fee_for(delivery_option, settings=None) -> int:
    settings = settings or get_settings()
    if DeliveryOption(delivery_option) == DeliveryOption.DELIVERY:
        return settings.delivery_fee_cents
    return 0


def price_items(items, products, delivery_option, settings=None) -> PriceQuote:
    """Price validated items against current product records.

    Args:
        items: dicts with product_id, quantity and optional notes.
        products: product dicts keyed by product id, as read from the catalogue.
        delivery_option: "pickup" or "delivery".
    """
    settings = settings or get_settings()

    lines = []
    for item in items:
        product = products[str(item["product_id"])]
        lines.append(
            PricedLine(
                product_id=str(item["product_id"]),
                product_name=product.get("name") or "",
                quantity=item["quantity"],
                unit_price_cents=int(product["price_cents"]),
                notes=item.get("notes"),
            )
        )

    subtotal = sum(line.total_price_cents for line in lines)
    fee = delivery_fee_for(delivery_option, settings)
    tax = compute_tax_cents(subtotal + fee, settings.tax_rate)

    return PriceQuote(
        lines=lines,
        subtotal_cents=subtotal,
        delivery_fee_cents=fee,
        tax_cents=tax,
        total_cents=subtotal + fee + tax,
        currency=settings.currency,
    )
