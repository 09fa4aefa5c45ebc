"""Tests for the MongoDB repositories, using an in-memory stand-in for pymongo."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from bson.decimal128 import Decimal128
from pymongo.errors import ConfigurationError, ServerSelectionTimeoutError

from checkout_service.exceptions import PersistenceError
from checkout_service.models import Customer, Order, OrderProduct
from checkout_service.repositories import (
    CUSTOMERS_COLLECTION,
    ORDERS_COLLECTION,
    MongoConnection,
    MongoCustomerRepository,
    MongoOrderRepository,
    order_to_document,
)
from tests.fakes import FakeMongoClient

NOW = datetime(2026, 1, 2, tzinfo=timezone.utc)


@pytest.fixture
def connection():
    return MongoConnection("mongodb://store.test:27017", "store_test", client_factory=FakeMongoClient)


def make_customer(clerk_id="u1", email="a@b.com"):
    return Customer(clerkId=clerk_id, email=email, name="Ann", createdAt=NOW)


def make_order():
    return Order(
        customerClerkId="u1",
        customerName="Ann",
        products=[
            OrderProduct(product="p1", quantity=2, size="M"),
            OrderProduct(product="p2", quantity=1, color="red"),
        ],
        totalAmount=Decimal("52.50"),
        currency="inr",
        stripeSessionId="cs_1",
        createdAt=NOW,
    )


class TestMongoConnection:

    def test_client_created_lazily_and_reused(self):
        created = []

        def factory(url):
            created.append(url)
            return FakeMongoClient(url)

        connection = MongoConnection("mongodb://store.test", "store_test", client_factory=factory)
        assert created == []

        MongoCustomerRepository(connection).get_by_clerk_id("u1")
        MongoOrderRepository(connection).add(make_order())

        assert created == ["mongodb://store.test"]

    def test_close_resets_client(self, connection):
        connection.collection(CUSTOMERS_COLLECTION)
        client = connection._client
        connection.close()
        assert client.closed
        assert connection._client is None

    def test_bad_configuration_is_persistence_error(self):
        def factory(url):
            raise ConfigurationError("bad uri")

        connection = MongoConnection("nope://", "store_test", client_factory=factory)
        with pytest.raises(PersistenceError):
            connection.collection(CUSTOMERS_COLLECTION)


class TestMongoCustomerRepository:

    def test_missing_customer(self, connection):
        assert MongoCustomerRepository(connection).get_by_clerk_id("u1") is None

    def test_add_then_get(self, connection):
        repo = MongoCustomerRepository(connection)
        repo.add(make_customer())
        assert repo.get_by_clerk_id("u1") == make_customer()
        assert connection.collection(CUSTOMERS_COLLECTION).documents == [{
            "clerkId": "u1", "email": "a@b.com", "name": "Ann", "createdAt": NOW,
        }]

    def test_duplicate_insert_keeps_first_record(self, connection):
        repo = MongoCustomerRepository(connection)
        repo.ensure_indexes()
        repo.add(make_customer())
        repo.add(make_customer(email="second@b.com"))

        documents = connection.collection(CUSTOMERS_COLLECTION).documents
        assert len(documents) == 1
        assert documents[0]["email"] == "a@b.com"

    def test_ensure_indexes_makes_clerk_id_unique(self, connection):
        MongoCustomerRepository(connection).ensure_indexes()
        assert connection.collection(CUSTOMERS_COLLECTION).unique_keys == ["clerkId"]

    def test_lookup_failure(self, connection):
        connection.collection(CUSTOMERS_COLLECTION).error = ServerSelectionTimeoutError("no servers")
        with pytest.raises(PersistenceError):
            MongoCustomerRepository(connection).get_by_clerk_id("u1")

    def test_write_failure(self, connection):
        connection.collection(CUSTOMERS_COLLECTION).error = ServerSelectionTimeoutError("no servers")
        with pytest.raises(PersistenceError):
            MongoCustomerRepository(connection).add(make_customer())


class TestMongoOrderRepository:

    def test_add_stores_document(self, connection):
        MongoOrderRepository(connection).add(make_order())
        documents = connection.collection(ORDERS_COLLECTION).documents
        assert documents == [order_to_document(make_order())]

    def test_write_failure(self, connection):
        connection.collection(ORDERS_COLLECTION).error = ServerSelectionTimeoutError("no servers")
        with pytest.raises(PersistenceError):
            MongoOrderRepository(connection).add(make_order())


class TestOrderDocument:

    def test_shape(self):
        document = order_to_document(make_order())
        assert document == {
            "customerClerkId": "u1",
            "customerName": "Ann",
            "currency": "inr",
            "stripeSessionId": "cs_1",
            "createdAt": NOW,
            "products": [
                {"product": "p1", "quantity": 2, "size": "M"},
                {"product": "p2", "quantity": 1, "color": "red"},
            ],
            "totalAmount": Decimal128("52.50"),
        }

    def test_total_is_exact_decimal(self):
        assert order_to_document(make_order())["totalAmount"].to_decimal() == Decimal("52.50")


class TestEnsureIndexesFailure:

    def test_index_failure_is_persistence_error(self, connection):
        connection.collection(CUSTOMERS_COLLECTION).error = ServerSelectionTimeoutError("no servers")
        with pytest.raises(PersistenceError):
            MongoCustomerRepository(connection).ensure_indexes()
