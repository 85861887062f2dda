"""Client cart mirror: an optimistic, locally persisted copy of the server cart.

Every mutation lands on the local copy first so the UI can update
immediately, then goes to the cart service. Whatever the service answers
replaces the local copy wholesale; local and remote changes are never
merged field by field. When the service is unreachable, the optimistic
copy is kept and the customer is told their change is saved locally.
"""

import copy
from datetime import UTC, datetime

import structlog

from storefront.errors import ServiceUnavailable, TransportError
from storefront.storage import empty_cart

logger = structlog.get_logger(__name__)

SAVED_LOCALLY = "Cart service is temporarily unavailable. Your items are saved locally."


def _timestamp(value):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        parsed = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
    return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed.astimezone(UTC)


def _iso(value):
    parsed = _timestamp(value)
    return parsed.isoformat() if parsed else None


def _same_key(line, product_id, stall_id, scheduled_for):
    return (
        str(line.get("product_id")) == str(product_id)
        and str(line.get("stall_id")) == str(stall_id)
        and _timestamp(line.get("scheduled_for")) == _timestamp(scheduled_for)
    )


class CartMirror:
    def __init__(self, transport, storage):
        self.transport = transport
        self.storage = storage
        self.cart = storage.load()
        self.notice = None
        self.error = None

    # -------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------
    @property
    def items(self):
        return list(self.cart.get("items") or [])

    @property
    def total_items(self):
        return sum(int(line.get("quantity", 0)) for line in self.items)

    @property
    def total_value_cents(self):
        return sum(int(line.get("unit_price_cents", 0)) * int(line.get("quantity", 0)) for line in self.items)

    def quantity_of(self, product_id, stall_id=None):
        return sum(
            int(line.get("quantity", 0))
            for line in self.items
            if str(line.get("product_id")) == str(product_id)
            and (stall_id is None or str(line.get("stall_id")) == str(stall_id))
        )

    # -------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------
    def _replace(self, response):
        """Adopt the server's cart wholesale."""
        cart = response.get("cart") if isinstance(response, dict) else None
        self.cart = copy.deepcopy(cart) if cart else empty_cart()
        self.storage.save(self.cart)

    def _apply_locally(self, change):
        change(self.cart.setdefault("items", []))
        self.storage.save(self.cart)

    def _sync(self, operation, remote_call, change=None):
        """Apply ``change`` optimistically, then reconcile with ``remote_call``.

        Returns True when the server acknowledged the change.
        """
        snapshot = copy.deepcopy(self.cart)
        self.notice = None
        self.error = None

        if change is not None:
            self._apply_locally(change)

        try:
            response = remote_call()
        except ServiceUnavailable as exc:
            logger.info("Cart service unavailable, keeping local cart", operation=operation, error=str(exc))
            self.notice = SAVED_LOCALLY
            return False
        except TransportError as exc:
            logger.warning(
                "Cart mutation rejected, resyncing",
                operation=operation,
                status_code=exc.status_code,
                detail=exc.detail,
            )
            self.error = exc.detail
            self._resync(snapshot)
            return False

        self._replace(response)
        return True

    def _resync(self, snapshot):
        """Discard the optimistic change by re-reading the server cart."""
        try:
            self._replace(self.transport.fetch())
        except (ServiceUnavailable, TransportError) as exc:
            logger.warning("Cart resync failed, restoring previous local cart", error=str(exc))
            self.cart = snapshot
            self.storage.save(self.cart)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def refresh(self):
        """Re-read the server cart. Keeps the local copy if the service is down."""
        return self._sync("refresh", self.transport.fetch)

    def add_item(
        self,
        product_id,
        stall_id,
        quantity,
        unit_price_cents,
        scheduled_for=None,
        special_instructions=None,
    ):
        scheduled_iso = _iso(scheduled_for)
        item = {
            "product_id": str(product_id),
            "stall_id": str(stall_id),
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
            "scheduled_for": scheduled_iso,
            "special_instructions": special_instructions,
        }

        def change(lines):
            for line in lines:
                if _same_key(line, product_id, stall_id, scheduled_iso):
                    line["quantity"] = int(line.get("quantity", 0)) + quantity
                    line["unit_price_cents"] = unit_price_cents
                    if special_instructions is not None:
                        line["special_instructions"] = special_instructions
                    return
            lines.append(dict(item))

        return self._sync("add", lambda: self.transport.add(item), change)

    def update_quantity(self, product_id, stall_id, quantity, scheduled_for=None):
        """Set one line's quantity. Zero or less removes the line."""
        scheduled_iso = _iso(scheduled_for)

        def change(lines):
            for line in list(lines):
                if _same_key(line, product_id, stall_id, scheduled_iso):
                    if quantity <= 0:
                        lines.remove(line)
                    else:
                        line["quantity"] = quantity

        return self._sync(
            "update",
            lambda: self.transport.update(str(product_id), str(stall_id), quantity, scheduled_iso),
            change,
        )

    def remove_item(self, product_id, stall_id=None, scheduled_for=None):
        """Remove lines for a product; omitted stall or schedule match anything."""
        scheduled_at = _timestamp(scheduled_for)

        def change(lines):
            lines[:] = [
                line
                for line in lines
                if not (
                    str(line.get("product_id")) == str(product_id)
                    and (stall_id is None or str(line.get("stall_id")) == str(stall_id))
                    and (scheduled_at is None or _timestamp(line.get("scheduled_for")) == scheduled_at)
                )
            ]

        return self._sync(
            "remove",
            lambda: self.transport.remove(
                str(product_id),
                str(stall_id) if stall_id is not None else None,
                _iso(scheduled_for),
            ),
            change,
        )

    def clear(self):
        def change(lines):
            lines.clear()

        return self._sync("clear", self.transport.clear, change)
