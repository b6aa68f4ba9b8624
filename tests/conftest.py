import asyncio

import pytest
from fastapi.testclient import TestClient

from order_intake.clients import InMemoryCatalog
from order_intake.main import create_app
from order_intake.storage import InMemoryOrderStore


class FailingCatalog:
    """Catalog whose backend is down."""

    def __init__(self):
        self.calls = 0

    async def find_by_id(self, product_id):
        self.calls += 1
        raise ConnectionError("catalog backend unreachable")


def run(coro):
    return asyncio.run(coro)


@pytest.fixture()
def catalog():
    catalog = InMemoryCatalog()
    catalog.put("P1", "New Name", 15)
    catalog.put("P2", "Santorini Getaway", 229)
    catalog.put("P3", "Peru Trek", 7500)
    return catalog


@pytest.fixture()
def failing_catalog():
    return FailingCatalog()


@pytest.fixture()
def order_store():
    return InMemoryOrderStore()


@pytest.fixture()
def client(catalog, order_store):
    app = create_app(catalog=catalog, order_store=order_store)
    with TestClient(app) as test_client:
        yield test_client
