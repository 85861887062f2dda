"""Order rescheduling: command and handler."""

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
class RescheduleOrder:
    order_id = Identifier(required=True)
    scheduled_for = String(required=True, max_length=64)  # ISO-8601, validated by the aggregate
    reason = Text()
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    actor_business_id = Identifier()


@ordering.command_handler(part_of=Order)
class RescheduleOrderHandler:
    @handle(RescheduleOrder)
    def reschedule_order(self, command):
        caller = caller_from(command)
        with backing_store("order.reschedule"):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            previous = order.scheduled_for
            order.reschedule(command.scheduled_for, caller, reason=command.reason)
            repo.add(order)

        logger.info(
            "Order rescheduled",
            order_id=str(command.order_id),
            previous_scheduled_for=str(previous),
            scheduled_for=str(order.scheduled_for),
        )
        return order.to_dict()
