"""In-memory catalog adapter for development and testing.

Records are stored as dicts keyed by id. Seeding helpers fill in the
defaults a real catalogue row would carry.
"""

from ordering.catalog.port import CatalogPort


class InMemoryCatalog(CatalogPort):
    def __init__(self):
        self.products = {}
        self.stalls = {}
        self.businesses = {}
        self.customers = {}

    def reset(self):
        self.products.clear()
        self.stalls.clear()
        self.businesses.clear()
        self.customers.clear()

    # Seeding
    def add_business(self, business_id, name="Business", is_active=True):
        self.businesses[str(business_id)] = {"id": str(business_id), "name": name, "is_active": is_active}
        return self.businesses[str(business_id)]

    def add_stall(self, stall_id, business_id, name="Stall", is_active=True):
        self.stalls[str(stall_id)] = {
            "id": str(stall_id),
            "business_id": str(business_id),
            "name": name,
            "is_active": is_active,
        }
        return self.stalls[str(stall_id)]

    def add_product(self, product_id, stall_id, price_cents, name="Product", is_active=True, is_available=True):
        self.products[str(product_id)] = {
            "id": str(product_id),
            "stall_id": str(stall_id),
            "name": name,
            "price_cents": int(price_cents),
            "is_active": is_active,
            "is_available": is_available,
        }
        return self.products[str(product_id)]

    def add_customer(self, customer_id, name="Customer", email=None):
        self.customers[str(customer_id)] = {"id": str(customer_id), "name": name, "email": email}
        return self.customers[str(customer_id)]

    # Lookups
    def get_product(self, product_id):
        product = self.products.get(str(product_id))
        return dict(product) if product else None

    def get_stall(self, stall_id):
        stall = self.stalls.get(str(stall_id))
        return dict(stall) if stall else None

    def get_business(self, business_id):
        business = self.businesses.get(str(business_id))
        return dict(business) if business else None

    def get_customer(self, customer_id):
        customer = self.customers.get(str(customer_id))
        return dict(customer) if customer else None


DEMO_CATALOG = {
    "businesses": [("biz-demo", "Night Market Collective")],
    "stalls": [
        ("stall-demo-noodles", "biz-demo", "Noodle Bar"),
        ("stall-demo-grill", "biz-demo", "Charcoal Grill"),
    ],
    "products": [
        ("prod-demo-ramen", "stall-demo-noodles", 1250, "Tonkotsu Ramen"),
        ("prod-demo-udon", "stall-demo-noodles", 1100, "Kitsune Udon"),
        ("prod-demo-gyoza", "stall-demo-noodles", 650, "Pan-fried Gyoza"),
        ("prod-demo-skewers", "stall-demo-grill", 900, "Chicken Skewers"),
        ("prod-demo-corn", "stall-demo-grill", 450, "Grilled Corn"),
    ],
}


def seed_demo_catalog(catalog):
    """Fill an in-memory catalog with a small demo market for local runs and load tests."""
    for business_id, name in DEMO_CATALOG["businesses"]:
        catalog.add_business(business_id, name=name)
    for stall_id, business_id, name in DEMO_CATALOG["stalls"]:
        catalog.add_stall(stall_id, business_id, name=name)
    for product_id, stall_id, price_cents, name in DEMO_CATALOG["products"]:
        catalog.add_product(product_id, stall_id, price_cents, name=name)
    return catalog
