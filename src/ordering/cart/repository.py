"""Repository for the Cart aggregate."""

from ordering.cart.cart import Cart
from ordering.domain import ordering
from ordering.utils.timestamps import to_utc

SWEEP_BATCH_SIZE = 100


@ordering.repository(part_of=Cart)
class CartRepository:
    def find_for_customer(self, customer_id) -> Cart | None:
        """The customer's cart, or None if they never had one."""
        matches = self._dao.query.filter(customer_id=str(customer_id)).all().items
        if not matches:
            return None
        return self.get(matches[0].id)

    def find_expired(self, as_of) -> list[Cart]:
        """Carts whose expiry has passed and that still hold lines.

        Walks the candidates in batches so a sweep is not capped by the
        store's default page size.
        """
        query = self._dao.query.filter(expires_at__lte=to_utc(as_of)).order_by("id")
        expired = []
        offset = 0
        while True:
            batch = query.offset(offset).limit(SWEEP_BATCH_SIZE).all().items
            for row in batch:
                if not row.is_expired(as_of):
                    continue
                cart = self.get(row.id)
                if cart.items:
                    expired.append(cart)
            if len(batch) < SWEEP_BATCH_SIZE:
                return expired
            offset += SWEEP_BATCH_SIZE
