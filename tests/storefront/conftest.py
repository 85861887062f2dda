import pytest
from storefront.storage import LocalCartStorage, empty_cart
from storefront.transport import CartTransport


class FakeCartTransport(CartTransport):
    """Server cart kept in memory, with switchable failure modes."""

    def __init__(self):
        self.lines = []
        self.calls = []
        self.failure = None

    def _respond(self, operation):
        self.calls.append(operation)
        if self.failure is not None:
            raise self.failure
        cart = empty_cart()
        cart.update({"id": "cart-001", "customer_id": "cust-001", "items": [dict(line) for line in self.lines]})
        return {
            "cart": cart,
            "item_count": sum(line["quantity"] for line in self.lines),
            "total_cents": sum(line["quantity"] * line["unit_price_cents"] for line in self.lines),
        }

    def _key(self, line):
        return (line["product_id"], line["stall_id"], line.get("scheduled_for"))

    def fetch(self):
        return self._respond("fetch")

    def add(self, item):
        if self.failure is None:
            key = self._key(item)
            for line in self.lines:
                if self._key(line) == key:
                    line["quantity"] += item["quantity"]
                    break
            else:
                self.lines.append(
                    {
                        "product_id": item["product_id"],
                        "stall_id": item["stall_id"],
                        "quantity": item["quantity"],
                        "unit_price_cents": item["unit_price_cents"],
                        "scheduled_for": item.get("scheduled_for"),
                    }
                )
        return self._respond("add")

    def update(self, product_id, stall_id, quantity, scheduled_for=None):
        if self.failure is None:
            for line in list(self.lines):
                if self._key(line) == (product_id, stall_id, scheduled_for):
                    if quantity <= 0:
                        self.lines.remove(line)
                    else:
                        line["quantity"] = quantity
        return self._respond("update")

    def remove(self, product_id, stall_id=None, scheduled_for=None):
        if self.failure is None:
            self.lines = [
                line
                for line in self.lines
                if not (
                    line["product_id"] == product_id
                    and (stall_id is None or line["stall_id"] == stall_id)
                    and (scheduled_for is None or line.get("scheduled_for") == scheduled_for)
                )
            ]
        return self._respond("remove")

    def clear(self):
        if self.failure is None:
            self.lines = []
        return self._respond("clear")


@pytest.fixture()
def transport():
    return FakeCartTransport()


@pytest.fixture()
def storage(tmp_path):
    return LocalCartStorage(tmp_path / "cart.json")
