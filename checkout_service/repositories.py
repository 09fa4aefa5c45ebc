"""
repositories.py — Persistence for Customer and Order Records

Repository interfaces used by the checkout workflow plus their MongoDB
implementations. Both MongoDB repositories share one `MongoConnection`, a
lazily-established client handle that is opened on first use and reused for
the lifetime of the process.

All pymongo failures are translated into `PersistenceError`.
"""

from abc import ABC, abstractmethod
from typing import Optional

from bson.decimal128 import Decimal128
from pymongo import ASCENDING, MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from .exceptions import PersistenceError
from .logging_config import get_logger
from .models import Customer, Order

log = get_logger(__name__)

CUSTOMERS_COLLECTION = "customers"
ORDERS_COLLECTION = "orders"


class CustomerRepository(ABC):

    @abstractmethod
    def get_by_clerk_id(self, clerk_id: str) -> Optional[Customer]:
        """Return the customer with this external identity id, or None."""

    @abstractmethod
    def add(self, customer: Customer) -> None:
        """Persist a new customer."""


class OrderRepository(ABC):

    @abstractmethod
    def add(self, order: Order) -> None:
        """Persist a new order."""


class MongoConnection:
    """
    Shared, lazily-established handle to the document store.

    The underlying `MongoClient` is thread-safe and pools its own sockets, so a
    single instance serves every request handled by the process.
    """

    def __init__(self, url: str, db_name: str, client_factory=MongoClient):
        self.url = url
        self.db_name = db_name
        self._client_factory = client_factory
        self._client = None

    @property
    def database(self):
        if self._client is None:
            log.info(f"Connecting to document store (database: {self.db_name}).")
            try:
                self._client = self._client_factory(self.url)
            except PyMongoError as e:
                log.critical(f"Cannot connect to document store: {e}")
                raise PersistenceError("document store unavailable") from e
        return self._client[self.db_name]

    def collection(self, name: str):
        return self.database[name]

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None


class MongoCustomerRepository(CustomerRepository):

    def __init__(self, connection: MongoConnection):
        self.connection = connection

    @property
    def collection(self):
        return self.connection.collection(CUSTOMERS_COLLECTION)

    def ensure_indexes(self):
        """Creates the unique index on `clerkId` that backs the one-customer-per-identity rule."""
        try:
            self.collection.create_index([("clerkId", ASCENDING)], unique=True)
        except PyMongoError as e:
            raise PersistenceError("could not create customer index") from e

    def get_by_clerk_id(self, clerk_id: str) -> Optional[Customer]:
        try:
            document = self.collection.find_one({"clerkId": clerk_id})
        except PyMongoError as e:
            raise PersistenceError("customer lookup failed") from e
        if document is None:
            return None
        return Customer(
            clerkId=document["clerkId"],
            email=document["email"],
            name=document["name"],
            createdAt=document["createdAt"],
        )

    def add(self, customer: Customer) -> None:
        try:
            self.collection.insert_one(customer.model_dump())
        except DuplicateKeyError:
            # Concurrent first checkout by the same identity won the insert.
            log.warning(f"[Checkout: {customer.clerkId}] Customer was created concurrently; keeping existing record.")
        except PyMongoError as e:
            raise PersistenceError("customer write failed") from e


class MongoOrderRepository(OrderRepository):

    def __init__(self, connection: MongoConnection):
        self.connection = connection

    @property
    def collection(self):
        return self.connection.collection(ORDERS_COLLECTION)

    def add(self, order: Order) -> None:
        try:
            self.collection.insert_one(order_to_document(order))
        except PyMongoError as e:
            raise PersistenceError("order write failed") from e


def order_to_document(order: Order) -> dict:
    """
    Maps an order to its stored shape: exact `Decimal128` total, and size/color
    keys left out of a product entry when absent.
    """
    document = order.model_dump(exclude={"products", "totalAmount"})
    document["products"] = [product.model_dump(exclude_none=True) for product in order.products]
    document["totalAmount"] = Decimal128(order.totalAmount)
    return document
