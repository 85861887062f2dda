"""Cart expiry sweep: command and handler for emptying stale carts.

Designed to be triggered periodically by an external scheduler (cron, K8s
CronJob) via the maintenance API endpoint. Carts are also expired lazily
whenever their owner next touches them, so the sweep only keeps storage
tidy.
"""

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.domain import ordering
from ordering.errors import backing_store
from ordering.utils.timestamps import to_utc, utcnow

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class ExpireCarts:
    """Empty every cart whose expiry has passed."""

    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=Cart)
class ExpireCartsHandler:
    @handle(ExpireCarts)
    def expire_carts(self, command):
        as_of = to_utc(command.as_of) or utcnow()
        repo = current_domain.repository_for(Cart)

        logger.info("Checking for expired carts", as_of=as_of.isoformat())

        with backing_store("cart.expire"):
            expired = repo.find_expired(as_of)

            if not expired:
                logger.info("No expired carts found")
                return 0

            expired_count = 0
            for cart in expired:
                try:
                    item_count = cart.item_count
                    cart.expire(as_of)
                    repo.add(cart)
                    expired_count += 1
                    logger.info(
                        "Expired cart",
                        cart_id=str(cart.id),
                        customer_id=str(cart.customer_id),
                        item_count=item_count,
                    )
                except (ValidationError, InvalidOperationError) as exc:
                    logger.warning(
                        "Failed to expire cart",
                        cart_id=str(cart.id),
                        error=str(exc),
                    )

        logger.info("Cart expiry sweep complete", expired_count=expired_count)
        return expired_count
