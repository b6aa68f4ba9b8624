"""
storage.py — Order Persistence

Orders are written once by the order committer and read back for the confirmation
lookup. Two stores share the same interface:
    • InMemoryOrderStore — process-local dict (default, tests)
    • MongoOrderStore    — one document per order in a MongoDB collection (pymongo)

Writing an order is a single insert, so a reader never sees a half-written order.
"""

import logging
import threading
import uuid
from typing import Dict, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient

from .models import Order

log = logging.getLogger(__name__)


class OrderStore(Protocol):
    def add(self, order: Order) -> Order:
        ...

    def get(self, order_id: str) -> Optional[Order]:
        ...


class InMemoryOrderStore:
    """Keeps orders in a dict keyed by a generated hex id."""

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def add(self, order: Order) -> Order:
        stored = order.model_copy(update={"id": uuid.uuid4().hex})
        with self._lock:
            self._orders[stored.id] = stored
        return stored

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def __len__(self):
        return len(self._orders)


class MongoOrderStore:
    """
    Stores orders in a MongoDB collection.
    The document's ObjectId is exposed as the order id.
    """

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_uri(cls, uri: str, database: str = "order_intake", collection: str = "orders"):
        """
        Connects to MongoDB and returns a store for the given collection.
        Args:
            uri (str): MongoDB connection string (MONGODB_URI).
            database (str): Database used when the URI names none.
            collection (str): Collection holding the orders.
        """
        client = MongoClient(uri)
        db = client.get_default_database(default=database)
        log.info(f"Order store connected to MongoDB database '{db.name}'.")
        return cls(db[collection])

    def add(self, order: Order) -> Order:
        document = order.model_dump(exclude={"id"})
        result = self.collection.insert_one(document)
        return order.model_copy(update={"id": str(result.inserted_id)})

    def get(self, order_id: str) -> Optional[Order]:
        try:
            document = self.collection.find_one({"_id": ObjectId(order_id)})
        except InvalidId:
            return None
        if document is None:
            return None
        document["id"] = str(document.pop("_id"))
        return Order(**document)
