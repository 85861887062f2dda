"""Order cancellation: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import backing_store
from ordering.order.lifecycle import caller_from
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text()
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    actor_business_id = Identifier()


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        caller = caller_from(command)
        with backing_store("order.cancel"):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            if order.cancel(caller, reason=command.reason):
                repo.add(order)
                logger.info(
                    "Order cancelled",
                    order_id=str(command.order_id),
                    actor_role=caller.role.value,
                    payment_status=order.payment_status,
                )
        return order.to_dict()
