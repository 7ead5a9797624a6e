import pytest
from prebill.catalog import get_catalog
from prebill.store import get_store
from prebill.workflow.coordinator import PrebillService
from protean.integrations.pytest import DomainFixture

SESSION_ID = "sess-001"

@pytest.fixture(scope="session")
def prebill_bed():
    from prebill.domain import prebill

    bed = DomainFixture(prebill)
    bed.setup()
    yield bed
    bed.teardown()

@pytest.fixture(autouse=True)
def _ctx(prebill_bed):
    with prebill_bed.domain_context():
        yield


@pytest.fixture()
def catalog():
    catalog = get_catalog()
    catalog.add_shop("shop-1", "Green Grocer", address="12 Temple Rd")
    catalog.add_shop("shop-2", "Corner Bakery", address="3 Lake View")
    catalog.add_product("prod-x", "shop-1", "Red Rice", 100, unit="kg")
    catalog.add_product("prod-y", "shop-1", "Coconut", "45.50", unit="pcs")
    catalog.add_product("prod-z", "shop-2", "Sandwich Bread", 250, unit="loaf")
    return catalog

@pytest.fixture()
def store():
    return get_store()

@pytest.fixture()
def service(catalog, store):
    return PrebillService.for_session(SESSION_ID, store=store, catalog=catalog)

@pytest.fixture()
def reload(catalog, store):
    """Rebuild the session's service from what was persisted."""

    def _reload(session_id=SESSION_ID):
        return PrebillService.for_session(session_id, store=store, catalog=catalog)

    return _reload
