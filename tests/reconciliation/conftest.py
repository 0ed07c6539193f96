import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain
from reconciliation.gateway import reset_gateway


@pytest.fixture(scope="session")
def reconciliation_bed():
    from reconciliation.domain import reconciliation

    bed = DomainFixture(reconciliation)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(reconciliation_bed):
    with reconciliation_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _fresh_gateway():
    reset_gateway()
    yield
    reset_gateway()
