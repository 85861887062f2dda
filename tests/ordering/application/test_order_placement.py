"""Application tests for order placement via domain.process()."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import Cart
from ordering.cart.items import AddToCart, get_cart
from ordering.cart.repository import CartRepository
from ordering.checkout.placement import PlaceOrder
from ordering.errors import (
    EmptyCartError,
    InvalidScheduleError,
    ItemUnavailableError,
    MissingAddressError,
    ServiceUnavailable,
)
from ordering.order.order import Order
from ordering.projections.order_summary import OrderSummary
from protean import current_domain
from protean.exceptions import ValidationError


def _soon(hours=2):
    return (datetime.now(UTC) + timedelta(hours=hours)).isoformat()


def _add_to_cart(product_id="prod-dumplings", stall_id="stall-001", quantity=2, price=500):
    current_domain.process(
        AddToCart(
            customer_id="cust-001",
            product_id=product_id,
            stall_id=stall_id,
            quantity=quantity,
            unit_price_cents=price,
        ),
        asynchronous=False,
    )


def _place(items=None, **overrides):
    values = {
        "customer_id": "cust-001",
        "scheduled_for": _soon(),
        "delivery_option": "pickup",
    }
    if items is not None:
        values["items"] = json.dumps(items)
    values.update(overrides)
    return current_domain.process(PlaceOrder(**values), asynchronous=False)


def _order_count():
    return len(current_domain.repository_for(OrderSummary)._dao.query.all().items)


class TestPlaceFromCart:
    def test_places_order_from_cart(self):
        _add_to_cart(quantity=2)
        _add_to_cart("prod-noodles", quantity=1, price=850)

        order = _place()

        assert order["status"] == "pending"
        assert order["stall_id"] == "stall-001"
        assert order["business_id"] == "biz-001"
        assert order["subtotal_cents"] == 1850
        assert order["tax_cents"] == 148
        assert order["total_cents"] == 1998
        assert sorted(item["qty"] for item in order["items"]) == [1, 2]

    def test_cart_is_emptied(self):
        _add_to_cart()
        _place()
        assert get_cart("cust-001")["item_count"] == 0

    def test_order_is_persisted(self):
        _add_to_cart()
        placed = _place()

        order = current_domain.repository_for(Order).get(placed["id"])
        assert order.status == "pending"
        assert order.item_count == 2

    def test_prices_are_re_read_from_the_catalogue(self, catalog):
        _add_to_cart(quantity=2, price=500)
        catalog.add_product("prod-dumplings", "stall-001", 650, name="Pork Dumplings")

        order = _place()

        assert order["items"][0]["unit_price_cents"] == 650
        assert order["subtotal_cents"] == 1300

    def test_delivery_adds_fee(self):
        _add_to_cart(quantity=2)
        order = _place(delivery_option="delivery", delivery_address="12 Harbour Street, Unit 4")

        assert order["delivery_fee_cents"] == 299
        assert order["delivery_option"] == "delivery"
        assert order["total_cents"] == order["subtotal_cents"] + 299 + order["tax_cents"]

    def test_summary_projection_is_written(self):
        _add_to_cart(quantity=2)
        placed = _place()

        summary = current_domain.repository_for(OrderSummary).get(placed["id"])
        assert summary.status == "pending"
        assert summary.item_count == 2
        assert summary.total_cents == placed["total_cents"]


class TestPlaceWithExplicitItems:
    def test_explicit_items_leave_cart_alone(self):
        _add_to_cart("prod-noodles", quantity=1, price=850)

        order = _place(items=[{"product_id": "prod-dumplings", "quantity": 3}])

        assert order["items"][0]["qty"] == 3
        assert get_cart("cust-001")["item_count"] == 1

    def test_clear_cart_flag_empties_cart(self):
        _add_to_cart("prod-noodles", quantity=1, price=850)
        _place(items=[{"product_id": "prod-dumplings", "quantity": 1}], clear_cart=True)
        assert get_cart("cust-001")["item_count"] == 0

    def test_notes_are_carried_to_items(self):
        order = _place(items=[{"product_id": "prod-dumplings", "quantity": 1, "notes": "Extra chilli"}])
        assert order["items"][0]["notes"] == "Extra chilli"


class TestValidation:
    def test_empty_cart_is_rejected(self):
        with pytest.raises(EmptyCartError):
            _place()
        assert _order_count() == 0

    def test_empty_item_list_is_rejected(self):
        with pytest.raises(EmptyCartError):
            _place(items=[])
        assert _order_count() == 0

    def test_items_must_be_a_list(self):
        with pytest.raises(ValidationError):
            _place(items={"product_id": "prod-dumplings"})

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two", None])
    def test_bad_quantity_is_rejected(self, quantity):
        with pytest.raises(ValidationError) as exc:
            _place(items=[{"product_id": "prod-dumplings", "quantity": quantity}])
        assert "items" in exc.value.messages
        assert not isinstance(exc.value, ItemUnavailableError)

    def test_missing_product_id_is_rejected(self):
        with pytest.raises(ValidationError):
            _place(items=[{"quantity": 1}])

    @pytest.mark.parametrize("product_id", ["prod-missing", "prod-sold-out", "prod-retired", "prod-orphan"])
    def test_unorderable_product_is_rejected(self, product_id):
        with pytest.raises(ItemUnavailableError) as exc:
            _place(items=[{"product_id": product_id, "quantity": 1}])
        assert exc.value.product_id == product_id
        assert _order_count() == 0

    def test_wrong_stall_is_rejected(self):
        with pytest.raises(ItemUnavailableError):
            _place(items=[{"product_id": "prod-dumplings", "stall_id": "stall-002", "quantity": 1}])

    def test_items_from_two_stalls_are_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _place(
                items=[
                    {"product_id": "prod-dumplings", "quantity": 1},
                    {"product_id": "prod-tacos", "quantity": 1},
                ]
            )
        assert "same stall" in exc.value.messages["items"][0]

    @pytest.mark.parametrize(
        "scheduled_for",
        [
            None,
            "not a time",
            (datetime.now(UTC) - timedelta(minutes=5)).isoformat(),
            (datetime.now(UTC) + timedelta(days=45)).isoformat(),
        ],
    )
    def test_bad_schedule_is_rejected(self, scheduled_for):
        _add_to_cart()
        with pytest.raises(InvalidScheduleError):
            _place(scheduled_for=scheduled_for)
        assert get_cart("cust-001")["item_count"] == 2

    def test_delivery_without_address_is_rejected(self):
        _add_to_cart()
        with pytest.raises(MissingAddressError):
            _place(delivery_option="delivery")

    def test_delivery_with_short_address_is_rejected(self):
        _add_to_cart()
        with pytest.raises(MissingAddressError):
            _place(delivery_option="delivery", delivery_address="  Unit 4  ")

    def test_unknown_delivery_option_is_rejected(self):
        _add_to_cart()
        with pytest.raises(ValidationError):
            _place(delivery_option="drone")

    def test_item_problems_are_reported_before_schedule_problems(self):
        with pytest.raises(ItemUnavailableError):
            _place(items=[{"product_id": "prod-sold-out", "quantity": 1}], scheduled_for="yesterday")

    def test_schedule_problems_are_reported_before_address_problems(self):
        _add_to_cart()
        with pytest.raises(InvalidScheduleError):
            _place(scheduled_for=None, delivery_option="delivery")


class TestAtomicity:
    def test_failed_cart_write_rolls_back_the_staged_order(self, monkeypatch):
        _add_to_cart(quantity=2)
        write = CartRepository.add

        def unreachable_when_cleared(self, cart):
            if not cart.items:
                raise ConnectionError("cart store is down")
            return write(self, cart)

        monkeypatch.setattr(CartRepository, "add", unreachable_when_cleared)

        with pytest.raises(ServiceUnavailable):
            _place()

        monkeypatch.undo()
        assert _order_count() == 0
        assert get_cart("cust-001")["item_count"] == 2
        assert len(current_domain.repository_for(Cart).find_for_customer("cust-001").items) == 1
