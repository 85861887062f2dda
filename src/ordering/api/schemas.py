"""Pydantic request schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Quantities are strict integers: ``true`` or
``2.5`` are rejected before a command is ever built.
"""

from datetime import datetime

from pydantic import BaseModel, Field, StrictInt


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    stall_id: str
    quantity: StrictInt = Field(ge=1, default=1)
    unit_price_cents: StrictInt = Field(ge=0)
    scheduled_for: datetime | None = None
    special_instructions: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-dumplings",
                    "stall_id": "stall-001",
                    "quantity": 2,
                    "unit_price_cents": 500,
                    "scheduled_for": "2026-05-01T12:30:00Z",
                    "special_instructions": "Extra chilli oil",
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    product_id: str
    stall_id: str
    quantity: StrictInt  # 0 or less removes the line
    scheduled_for: datetime | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_id: str
    stall_id: str | None = None
    quantity: StrictInt = Field(ge=1)
    notes: str | None = None


class PlaceOrderRequest(BaseModel):
    items: list[OrderLineSchema] | None = None  # Omit to check out the current cart
    scheduled_for: str | None = None
    delivery_option: str = "pickup"
    delivery_address: str | None = None
    special_instructions: str | None = None
    payment_method: str = "cash"
    clear_cart: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "scheduled_for": "2026-05-01T12:30:00Z",
                    "delivery_option": "delivery",
                    "delivery_address": "12 Harbour Street, Unit 4",
                    "special_instructions": "Ring the bell twice",
                    "payment_method": "card",
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RescheduleOrderRequest(BaseModel):
    scheduled_for: str
    reason: str | None = None


class UpdateOrderRequest(BaseModel):
    status: str | None = None
    notes: str | None = None
    payment_status: str | None = None


class ExpireCartsRequest(BaseModel):
    as_of: datetime | None = None
