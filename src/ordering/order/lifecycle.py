"""Order status transitions: command and handler.

Staff move orders along the fulfillment path; customers may only cancel
while the order is pending. The rules themselves live on the aggregate.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.actors import Caller
from ordering.domain import ordering
from ordering.errors import backing_store
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    notes = Text()
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    actor_business_id = Identifier()


def caller_from(command) -> Caller:
    """The caller recorded on a lifecycle command."""
    return Caller.from_labels(command.actor_id, command.actor_role, command.actor_business_id)


@ordering.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        caller = caller_from(command)
        with backing_store("order.transition"):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            previous = order.status
            changed = order.transition(command.status, caller, notes=command.notes)
            if changed:
                repo.add(order)

        if changed:
            logger.info(
                "Order status changed",
                order_id=str(command.order_id),
                from_status=previous,
                to_status=order.status,
                actor_role=caller.role.value,
            )
        else:
            logger.info(
                "Order already in requested status",
                order_id=str(command.order_id),
                status=order.status,
            )
        return order.to_dict()
