"""Reference data access: products, stalls, businesses and customers.

The ordering core only reads this data. Adapters are pluggable so the
catalogue can live in any store; the in-memory adapter is the default.
"""

_catalog_instance = None


def get_catalog():
    """Return the configured catalog adapter (singleton).

    Uses InMemoryCatalog by default. Configure via the CATALOG_ADAPTER
    environment variable.
    """
    global _catalog_instance
    if _catalog_instance is None:
        from ordering.utils.settings import get_settings

        adapter = get_settings().catalog_adapter
        if adapter == "memory":
            from ordering.catalog.memory_adapter import InMemoryCatalog

            _catalog_instance = InMemoryCatalog()
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _catalog_instance


def set_catalog(adapter):
    """Install a specific adapter instance (e.g. a test double)."""
    global _catalog_instance
    _catalog_instance = adapter


def reset_catalog():
    """Reset the catalog singleton (useful for testing)."""
    global _catalog_instance
    _catalog_instance = None
