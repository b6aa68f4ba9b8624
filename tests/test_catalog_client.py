"""Tests for the Catalog Service client, driven through httpx.MockTransport."""

import httpx
import pytest

from conftest import run
from order_intake.clients import CatalogClient, InMemoryCatalog
from order_intake.models import CatalogProduct


def _catalog_handler(request: httpx.Request) -> httpx.Response:
    product_id = request.url.path.rsplit("/", 1)[-1]
    if product_id == "p-cairo":
        return httpx.Response(200, json={"id": "p-cairo", "name": "Cairo Adventure", "price": 854})
    if product_id == "p-broken":
        return httpx.Response(503, json={"detail": "Catalog backend unavailable"})
    if product_id == "p-slow":
        raise httpx.ReadTimeout("timed out", request=request)
    return httpx.Response(404, json={"detail": "Product not found"})


def _lookup(product_id):
    async def lookup():
        client = CatalogClient(base_url="http://catalog.test", transport=httpx.MockTransport(_catalog_handler))
        try:
            return await client.find_by_id(product_id)
        finally:
            await client.aclose()

    return run(lookup())


class TestCatalogClient:
    def test_known_product(self):
        assert _lookup("p-cairo") == CatalogProduct(name="Cairo Adventure", price=854)

    def test_unknown_product_returns_none(self):
        assert _lookup("p-atlantis") is None

    def test_server_error_raises(self):
        with pytest.raises(httpx.HTTPStatusError):
            _lookup("p-broken")

    def test_timeout_raises(self):
        with pytest.raises(httpx.TimeoutException):
            _lookup("p-slow")


class TestInMemoryCatalog:
    def test_put_find_remove(self):
        catalog = InMemoryCatalog()
        catalog.put("P9", "Ibiza Party", 5800)
        assert run(catalog.find_by_id("P9")) == CatalogProduct(name="Ibiza Party", price=5800)

        catalog.remove("P9")
        assert run(catalog.find_by_id("P9")) is None


class TestAgainstMockCatalogService:
    """The client talking to the bundled mock Catalog Service in-process."""

    def _lookup(self, product_id):
        from mock_services.mock_catalog_service import app as mock_catalog_app

        async def lookup():
            client = CatalogClient(base_url="http://catalog.test",
                                   transport=httpx.ASGITransport(app=mock_catalog_app))
            try:
                return await client.find_by_id(product_id)
            finally:
                await client.aclose()

        return run(lookup())

    def test_seed_product(self):
        assert self._lookup("p-peru") == CatalogProduct(name="Peru Trek", price=7500)

    def test_unknown_product(self):
        assert self._lookup("p-atlantis") is None

    def test_simulated_outage(self):
        with pytest.raises(httpx.HTTPStatusError):
            self._lookup("p-FAIL-1")
