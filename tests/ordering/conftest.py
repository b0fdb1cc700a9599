import pytest
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


@pytest.fixture
def stock():
    from ordering.inventory.fake_adapter import FakeStockService

    return FakeStockService(latency=None)


@pytest.fixture
def payments():
    from ordering.payment.fake_adapter import FakePaymentGateway

    return FakePaymentGateway()


@pytest.fixture(autouse=True)
def _reset_adapters():
    from ordering.discount import reset_calculator
    from ordering.inventory import reset_stock_service
    from ordering.payment import reset_payment_gateway

    yield
    reset_stock_service()
    reset_payment_gateway()
    reset_calculator()
