"""Tests for the optimistic client cart mirror."""

from storefront.errors import ServiceUnavailable, TransportError
from storefront.mirror import SAVED_LOCALLY, CartMirror
from storefront.transport import HttpCartTransport


def _mirror(transport, storage):
    return CartMirror(transport, storage)


class TestOptimisticUpdates:
    def test_add_is_visible_locally_and_confirmed(self, transport, storage):
        mirror = _mirror(transport, storage)

        assert mirror.add_item("prod-dumplings", "stall-001", 2, 500) is True

        assert mirror.total_items == 2
        assert mirror.total_value_cents == 1000
        assert mirror.notice is None
        assert transport.calls == ["add"]

    def test_add_merges_on_key(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 2, 500)
        mirror.add_item("prod-dumplings", "stall-001", 1, 500)

        assert len(mirror.items) == 1
        assert mirror.quantity_of("prod-dumplings") == 3

    def test_update_to_zero_removes(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 2, 500)

        mirror.update_quantity("prod-dumplings", "stall-001", 0)

        assert mirror.items == []
        assert transport.lines == []

    def test_remove_without_stall_removes_every_line(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 1, 500)
        mirror.add_item("prod-dumplings", "stall-002", 1, 500)
        mirror.add_item("prod-noodles", "stall-001", 1, 850)

        mirror.remove_item("prod-dumplings")

        assert [line["product_id"] for line in mirror.items] == ["prod-noodles"]

    def test_clear(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 1, 500)

        mirror.clear()

        assert mirror.total_items == 0

    def test_state_is_persisted(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 2, 500)

        reopened = _mirror(transport, storage)

        assert reopened.quantity_of("prod-dumplings") == 2


class TestServiceUnavailable:
    def test_change_is_kept_locally(self, transport, storage):
        mirror = _mirror(transport, storage)
        transport.failure = ServiceUnavailable("connection refused")

        assert mirror.add_item("prod-dumplings", "stall-001", 2, 500) is False

        assert mirror.quantity_of("prod-dumplings") == 2
        assert mirror.notice == SAVED_LOCALLY
        assert storage.load()["items"][0]["quantity"] == 2

    def test_refresh_keeps_local_cart(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 2, 500)
        transport.failure = ServiceUnavailable("timed out")

        assert mirror.refresh() is False
        assert mirror.quantity_of("prod-dumplings") == 2

    def test_notice_clears_when_service_returns(self, transport, storage):
        mirror = _mirror(transport, storage)
        transport.failure = ServiceUnavailable("down")
        mirror.add_item("prod-dumplings", "stall-001", 1, 500)
        transport.failure = None

        mirror.refresh()

        assert mirror.notice is None


class TestServerIsAuthoritative:
    def test_successful_response_replaces_local_state(self, transport, storage):
        mirror = _mirror(transport, storage)
        transport.lines.append(
            {"product_id": "prod-tacos", "stall_id": "stall-002", "quantity": 4, "unit_price_cents": 400}
        )

        mirror.add_item("prod-dumplings", "stall-001", 1, 500)

        assert {line["product_id"] for line in mirror.items} == {"prod-tacos", "prod-dumplings"}

    def test_rejected_change_is_rolled_back_from_server(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 1, 500)

        original_add = transport.add

        def reject(item):
            raise TransportError(400, "quantity: Quantity must be at least 1")

        transport.add = reject
        assert mirror.add_item("prod-noodles", "stall-001", 1, 850) is False
        transport.add = original_add

        assert mirror.error == "quantity: Quantity must be at least 1"
        assert [line["product_id"] for line in mirror.items] == ["prod-dumplings"]

    def test_rejected_change_restores_snapshot_when_resync_fails(self, transport, storage):
        mirror = _mirror(transport, storage)
        mirror.add_item("prod-dumplings", "stall-001", 1, 500)

        def reject(item):
            raise TransportError(409, "conflict")

        def unreachable():
            raise ServiceUnavailable("down")

        transport.add = reject
        transport.fetch = unreachable

        assert mirror.add_item("prod-noodles", "stall-001", 1, 850) is False
        assert [line["product_id"] for line in mirror.items] == ["prod-dumplings"]
        assert storage.load()["items"][0]["product_id"] == "prod-dumplings"


class TestUnreadableResponses:
    class HtmlOnWriteSession:
        """Answers reads with an empty cart and writes with an HTML error page."""

        class Response:
            def __init__(self, status_code, body=None, text=""):
                self.status_code = status_code
                self._body = body
                self.text = text

            def json(self):
                if self._body is None:
                    raise ValueError("Expecting value")
                return self._body

        def request(self, method, url, **kwargs):
            if method == "GET":
                return self.Response(200, {"cart": {"items": []}, "item_count": 0, "total_cents": 0})
            return self.Response(200, text="<html>Upstream error</html>")

    def test_unreadable_reply_resyncs_instead_of_raising(self, storage):
        transport = HttpCartTransport(session=self.HtmlOnWriteSession(), base_url="http://orders.local")
        mirror = _mirror(transport, storage)

        assert mirror.add_item("prod-dumplings", "stall-001", 1, 500) is False

        assert mirror.error == "Cart service returned an unreadable response"
        assert mirror.items == []
        assert storage.load()["items"] == []
