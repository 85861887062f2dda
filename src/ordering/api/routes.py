"""FastAPI routes for the Ordering domain: cart, orders and maintenance."""

import json

from fastapi import APIRouter, Depends, Query
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.actors import Caller, Role
from ordering.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    ExpireCartsRequest,
    PlaceOrderRequest,
    RescheduleOrderRequest,
    UpdateCartQuantityRequest,
    UpdateOrderRequest,
)
from ordering.api.security import get_caller, require_customer, require_staff
from ordering.cart.cart import Cart
from ordering.cart.expiry import ExpireCarts
from ordering.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity, get_cart
from ordering.cart.validation import validate_cart
from ordering.checkout.placement import PlaceOrder
from ordering.errors import Forbidden, backing_store
from ordering.order.cancellation import CancelOrder
from ordering.order.lifecycle import TransitionOrder
from ordering.order.order import OrderStatus, PaymentStatus
from ordering.order.payment import RecordPaymentStatus
from ordering.order.queries import get_order_detail, list_orders
from ordering.order.rescheduling import RescheduleOrder


def _process(command, operation):
    with backing_store(operation):
        return current_domain.process(command, asynchronous=False)


def _actor_fields(caller: Caller) -> dict:
    return {
        "actor_id": caller.id,
        "actor_role": caller.role.value,
        "actor_business_id": caller.business_id,
    }


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def read_cart(caller: Caller = Depends(get_caller)) -> dict:
    """Current cart plus a validation block flagging lines that can no longer be ordered."""
    require_customer(caller)
    summary = get_cart(caller.id)
    with backing_store("cart.read"):
        cart = current_domain.repository_for(Cart).find_for_customer(caller.id)
    summary["validation"] = validate_cart(cart)
    return summary


@cart_router.post("")
async def add_to_cart(body: AddToCartRequest, caller: Caller = Depends(get_caller)) -> dict:
    require_customer(caller)
    command = AddToCart(
        customer_id=caller.id,
        product_id=body.product_id,
        stall_id=body.stall_id,
        quantity=body.quantity,
        unit_price_cents=body.unit_price_cents,
        scheduled_for=body.scheduled_for,
        special_instructions=body.special_instructions,
    )
    return _process(command, "cart.add")


@cart_router.put("")
async def update_cart_quantity(body: UpdateCartQuantityRequest, caller: Caller = Depends(get_caller)) -> dict:
    require_customer(caller)
    command = UpdateCartQuantity(
        customer_id=caller.id,
        product_id=body.product_id,
        stall_id=body.stall_id,
        quantity=body.quantity,
        scheduled_for=body.scheduled_for,
    )
    return _process(command, "cart.update")


@cart_router.delete("")
async def remove_from_cart(
    product_id: str | None = Query(default=None),
    stall_id: str | None = Query(default=None),
    scheduled_for: str | None = Query(default=None),
    clear_all: bool = Query(default=False),
    caller: Caller = Depends(get_caller),
) -> dict:
    """Remove lines for one product, or everything with ``clear_all=true``."""
    require_customer(caller)
    if clear_all:
        return _process(ClearCart(customer_id=caller.id), "cart.clear")
    if not product_id:
        raise ValidationError({"product_id": ["product_id is required unless clear_all is set"]})
    command = RemoveFromCart(
        customer_id=caller.id,
        product_id=product_id,
        stall_id=stall_id,
        scheduled_for=scheduled_for,
    )
    return _process(command, "cart.remove")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
async def place_order(body: PlaceOrderRequest, caller: Caller = Depends(get_caller)) -> dict:
    require_customer(caller)
    items = None
    if body.items is not None:
        items = json.dumps([item.model_dump() for item in body.items])
    command = PlaceOrder(
        customer_id=caller.id,
        items=items,
        scheduled_for=body.scheduled_for,
        delivery_option=body.delivery_option,
        delivery_address=body.delivery_address,
        special_instructions=body.special_instructions,
        payment_method=body.payment_method,
        clear_cart=body.clear_cart,
    )
    return _process(command, "order.place")


@order_router.get("")
async def get_orders(
    status: str | None = Query(default=None),
    sort: str = Query(default="newest"),
    page: int = Query(default=1),
    page_size: int = Query(default=20),
    caller: Caller = Depends(get_caller),
) -> dict:
    return list_orders(caller, status=status, sort=sort, page=page, page_size=page_size)


@order_router.get("/{order_id}")
async def get_order(order_id: str, caller: Caller = Depends(get_caller)) -> dict:
    return get_order_detail(order_id, caller)


@order_router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    caller: Caller = Depends(get_caller),
) -> dict:
    command = CancelOrder(
        order_id=order_id,
        reason=body.reason if body else None,
        **_actor_fields(caller),
    )
    return _process(command, "order.cancel")


@order_router.post("/{order_id}/reschedule")
async def reschedule_order(order_id: str, body: RescheduleOrderRequest, caller: Caller = Depends(get_caller)) -> dict:
    command = RescheduleOrder(
        order_id=order_id,
        scheduled_for=body.scheduled_for,
        reason=body.reason,
        **_actor_fields(caller),
    )
    return _process(command, "order.reschedule")


@order_router.patch("/{order_id}")
async def update_order(order_id: str, body: UpdateOrderRequest, caller: Caller = Depends(get_caller)) -> dict:
    """Staff-only: apply a lifecycle transition and/or record a payment label."""
    require_staff(caller)
    if body.status is None and body.payment_status is None:
        raise ValidationError({"status": ["Provide a status or a payment_status"]})
    # Both labels are checked before either change is saved
    if body.status is not None:
        OrderStatus.parse(body.status)
    if body.payment_status is not None:
        PaymentStatus.parse(body.payment_status)

    result = None
    if body.status is not None:
        command = TransitionOrder(
            order_id=order_id,
            status=body.status,
            notes=body.notes,
            **_actor_fields(caller),
        )
        result = _process(command, "order.transition")
    if body.payment_status is not None:
        command = RecordPaymentStatus(
            order_id=order_id,
            payment_status=body.payment_status,
            **_actor_fields(caller),
        )
        result = _process(command, "order.payment_status")
    return result


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/expire-carts")
async def expire_carts(body: ExpireCartsRequest | None = None, caller: Caller = Depends(get_caller)) -> dict:
    """Triggered by an external scheduler to empty stale carts."""
    if caller.role != Role.ADMIN:
        raise Forbidden("Admin access required")
    expired = _process(ExpireCarts(as_of=body.as_of if body else None), "cart.expire")
    return {"expired_count": expired}
