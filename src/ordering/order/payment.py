"""Payment status labels: command and handler.

Only a label is recorded. No payment gateway is involved.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import backing_store
from ordering.order.lifecycle import caller_from
from ordering.order.order import Order


@ordering.command(part_of="Order")
class RecordPaymentStatus:
    order_id = Identifier(required=True)
    payment_status = String(required=True, max_length=20)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    actor_business_id = Identifier()


@ordering.command_handler(part_of=Order)
class RecordPaymentStatusHandler:
    @handle(RecordPaymentStatus)
    def record_payment_status(self, command):
        with backing_store("order.payment_status"):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            if order.record_payment_status(command.payment_status, caller_from(command)):
                repo.add(order)
        return order.to_dict()
