import pytest

from checkout_service.config import CheckoutSettings
from checkout_service.workflow import CheckoutWorkflow
from tests.fakes import FakeCustomerRepository, FakeOrderRepository, FakePaymentClient


@pytest.fixture
def settings():
    return CheckoutSettings(
        store_url="https://store.example.com",
        currency="inr",
        allowed_countries=["US", "CA", "IN"],
        shipping_rate="shr_test_flat",
        stripe_secret_key="sk_test_123",
        mongodb_url="mongodb://store.test:27017",
        mongodb_db_name="store_test",
    )


@pytest.fixture
def customers():
    return FakeCustomerRepository()


@pytest.fixture
def orders():
    return FakeOrderRepository()


@pytest.fixture
def payments():
    return FakePaymentClient()


@pytest.fixture
def workflow(customers, orders, payments, settings):
    return CheckoutWorkflow(customers, orders, payments, settings)
