"""Integration tests for the client cart mirror talking to the Cart API."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import register_error_handlers
from ordering.api.routes import cart_router
from ordering.cart.cart import Cart
from protean import current_domain
from storefront.mirror import SAVED_LOCALLY, CartMirror
from storefront.storage import LocalCartStorage
from storefront.transport import HttpCartTransport


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def mirror(client, tmp_path):
    transport = HttpCartTransport(
        session=client,
        headers={"X-Caller-Id": "cust-001", "X-Caller-Role": "customer"},
        timeout=None,
    )
    return CartMirror(transport, LocalCartStorage(tmp_path / "cart.json"))


def _server_quantity(product_id):
    cart = current_domain.repository_for(Cart).find_for_customer("cust-001")
    return cart.quantity_of(product_id) if cart else 0


class TestMirrorAgainstApi:
    def test_add_reaches_the_server(self, mirror):
        assert mirror.add_item("prod-dumplings", "stall-001", 2, 500) is True
        assert mirror.add_item("prod-dumplings", "stall-001", 1, 500) is True

        assert mirror.quantity_of("prod-dumplings") == 3
        assert _server_quantity("prod-dumplings") == 3
        assert mirror.cart["id"] is not None

    def test_update_and_remove(self, mirror):
        mirror.add_item("prod-dumplings", "stall-001", 2, 500)
        mirror.add_item("prod-noodles", "stall-001", 1, 850)

        mirror.update_quantity("prod-dumplings", "stall-001", 0)
        mirror.remove_item("prod-noodles")

        assert mirror.items == []
        assert _server_quantity("prod-noodles") == 0

    def test_rejected_quantity_resyncs_from_server(self, mirror):
        mirror.add_item("prod-dumplings", "stall-001", 2, 500)

        assert mirror.add_item("prod-noodles", "stall-001", 0, 850) is False

        assert mirror.error is not None
        assert [line["product_id"] for line in mirror.items] == ["prod-dumplings"]

    def test_outage_keeps_local_change(self, mirror, monkeypatch):
        repo_cls = type(current_domain.repository_for(Cart))

        def unreachable(self, aggregate):
            raise ConnectionError("database is down")

        monkeypatch.setattr(repo_cls, "add", unreachable)

        assert mirror.add_item("prod-dumplings", "stall-001", 1, 500) is False

        assert mirror.notice == SAVED_LOCALLY
        assert mirror.quantity_of("prod-dumplings") == 1
