"""Order summary: lightweight listing view for customers and stall staff."""

import json

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderFulfilled,
    OrderPlaced,
    OrderPreparing,
    OrderReady,
    OrderRescheduled,
    PaymentStatusRecorded,
)
from ordering.order.order import Order, OrderStatus


@ordering.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier(required=True)
    business_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    status = String(required=True)
    item_count = Integer(default=0)
    total_cents = Integer(default=0)
    currency = String(default="USD")
    delivery_option = String()
    payment_status = String()
    scheduled_for = DateTime()
    created_at = DateTime()
    updated_at = DateTime()


@ordering.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                customer_id=event.customer_id,
                business_id=event.business_id,
                stall_id=event.stall_id,
                status=OrderStatus.PENDING.value,
                item_count=sum(int(item.get("quantity", 0)) for item in items),
                total_cents=event.total_cents,
                currency=event.currency or "USD",
                delivery_option=event.delivery_option,
                payment_status="pending",
                scheduled_for=event.scheduled_for,
                created_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    def _load(self, event):
        """The summary row for the event's order, or None if it was never projected."""
        try:
            return current_domain.repository_for(OrderSummary).get(str(event.order_id))
        except ObjectNotFoundError:
            return None

    def _set_status(self, event, status):
        repo = current_domain.repository_for(OrderSummary)
        summary = self._load(event)
        if summary is None:
            return None
        summary.status = status.value
        summary.updated_at = event.changed_at
        repo.add(summary)
        return summary

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        self._set_status(event, OrderStatus.CONFIRMED)

    @on(OrderPreparing)
    def on_order_preparing(self, event):
        self._set_status(event, OrderStatus.PREPARING)

    @on(OrderReady)
    def on_order_ready(self, event):
        self._set_status(event, OrderStatus.READY)

    @on(OrderFulfilled)
    def on_order_fulfilled(self, event):
        self._set_status(event, OrderStatus.FULFILLED)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        summary = self._set_status(event, OrderStatus.CANCELLED)
        if summary is not None and event.payment_status:
            summary.payment_status = event.payment_status
            current_domain.repository_for(OrderSummary).add(summary)

    @on(OrderRescheduled)
    def on_order_rescheduled(self, event):
        summary = self._load(event)
        if summary is None:
            return
        summary.scheduled_for = event.scheduled_for
        summary.updated_at = event.rescheduled_at
        current_domain.repository_for(OrderSummary).add(summary)

    @on(PaymentStatusRecorded)
    def on_payment_status_recorded(self, event):
        summary = self._load(event)
        if summary is None:
            return
        summary.payment_status = event.payment_status
        summary.updated_at = event.recorded_at
        current_domain.repository_for(OrderSummary).add(summary)
