"""Catalog port: read-only lookups the ordering core depends on.

Every lookup returns a plain dict, or None when the record does not exist.
Adapters may raise ConnectionError/TimeoutError when their store is down;
callers wrap lookups in ``ordering.errors.backing_store``.
"""

from abc import ABC, abstractmethod


class CatalogPort(ABC):
    """Abstract interface for reference-data adapters."""

    @abstractmethod
    def get_product(self, product_id: str) -> dict | None:
        """Look up a product.

        Returns:
            dict with keys: id, stall_id, name, price_cents, is_active, is_available
        """
        ...

    @abstractmethod
    def get_stall(self, stall_id: str) -> dict | None:
        """Look up a stall.

        Returns:
            dict with keys: id, business_id, name, is_active
        """
        ...

    @abstractmethod
    def get_business(self, business_id: str) -> dict | None:
        """Look up a business.

        Returns:
            dict with keys: id, name, is_active
        """
        ...

    @abstractmethod
    def get_customer(self, customer_id: str) -> dict | None:
        """Look up a customer profile.

        Returns:
            dict with keys: id, name, email
        """
        ...

    def availability(self, product_id: str) -> tuple[dict | None, str | None]:
        """Resolve a product and say why it cannot be ordered, if it can't.

        Returns (product, None) when orderable, otherwise (product_or_None, reason).
        """
        product = self.get_product(str(product_id))
        if product is None or product.get("is_active") is False:
            return product, "is no longer available"
        if product.get("is_available") is False:
            return product, "is currently unavailable"
        stall = self.get_stall(str(product.get("stall_id")))
        if stall is None or stall.get("is_active") is False:
            return product, "belongs to a stall that is not taking orders"
        return product, None
