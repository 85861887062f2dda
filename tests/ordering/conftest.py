import pytest
from ordering.actors import Caller, Role
from ordering.catalog import get_catalog, reset_catalog
from ordering.utils.settings import reset_settings
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def catalog():
    """A small marketplace: two businesses, three stalls, a handful of dishes."""
    reset_settings()
    reset_catalog()
    catalog = get_catalog()

    catalog.add_business("biz-001", name="Harbour Eats")
    catalog.add_business("biz-002", name="Taco Collective")
    catalog.add_stall("stall-001", "biz-001", name="Dumpling House")
    catalog.add_stall("stall-002", "biz-002", name="Taco Stand")
    catalog.add_stall("stall-closed", "biz-001", name="Closed Kiosk", is_active=False)

    catalog.add_product("prod-dumplings", "stall-001", 500, name="Pork Dumplings")
    catalog.add_product("prod-noodles", "stall-001", 850, name="Dan Dan Noodles")
    catalog.add_product("prod-sold-out", "stall-001", 700, name="Soup Buns", is_available=False)
    catalog.add_product("prod-retired", "stall-001", 300, name="Old Special", is_active=False)
    catalog.add_product("prod-tacos", "stall-002", 400, name="Al Pastor Tacos")
    catalog.add_product("prod-orphan", "stall-closed", 250, name="Kiosk Snack")

    catalog.add_customer("cust-001", name="Ada Lovelace", email="ada@example.com")
    catalog.add_customer("cust-002", name="Grace Hopper", email="grace@example.com")

    yield catalog

    reset_catalog()
    reset_settings()


@pytest.fixture()
def customer():
    return Caller(id="cust-001", role=Role.CUSTOMER)


@pytest.fixture()
def other_customer():
    return Caller(id="cust-002", role=Role.CUSTOMER)


@pytest.fixture()
def staff():
    return Caller(id="staff-001", role=Role.STALL_STAFF, business_id="biz-001")


@pytest.fixture()
def other_staff():
    return Caller(id="staff-002", role=Role.STALL_STAFF, business_id="biz-002")


@pytest.fixture()
def admin():
    return Caller(id="admin-001", role=Role.ADMIN)
