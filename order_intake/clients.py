"""
This module provides the catalog lookup used by the cart validator:
- CatalogLookup: the capability the validator depends on (find a product by id)
- CatalogClient: lookup against the Catalog Service (REST API)
- InMemoryCatalog: lookup against a fixed product table (local runs and tests)
A lookup returns None for an unknown product and raises only for transport or backend faults.
"""

import logging
import os
from typing import Dict, Optional, Protocol

import httpx

from .models import CatalogProduct

# Catalog Service (aus Env Vars)
CATALOG_SERVICE_URL = os.environ.get("CATALOG_SERVICE_URL", "http://catalog_service:8002")
CATALOG_TIMEOUT_SECONDS = float(os.environ.get("CATALOG_TIMEOUT_SECONDS", "5.0"))

log = logging.getLogger(__name__)


class CatalogLookup(Protocol):
    async def find_by_id(self, product_id: str) -> Optional[CatalogProduct]:
        ...


# --- Catalog Client (REST) ---
class CatalogClient:
    """
    Client for the Catalog Service (REST API).
    Resolves product references to their current canonical name and price.
    """
    def __init__(self, base_url: str = CATALOG_SERVICE_URL, timeout: float = CATALOG_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initializes the async HTTP client with proper timeout configuration.
        Args:
            base_url (str): Root URL of the Catalog Service.
            timeout (float): Connect/read timeout in seconds for every lookup.
            transport (httpx.AsyncBaseTransport, optional): Custom transport, e.g. for tests.
        """
        timeout_config = httpx.Timeout(timeout)
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout_config, transport=transport)

    async def aclose(self):
        """Closes the HTTP client session."""
        await self.client.aclose()

    async def find_by_id(self, product_id: str) -> Optional[CatalogProduct]:
        """
        Fetches a product from the Catalog Service.
        Args:
            product_id (str): Catalog identifier of the product.
        Returns:
            CatalogProduct | None: Canonical name and price, or None if the catalog does not know the id.
        Raises:
            httpx.TimeoutException: If the service does not respond within the timeout.
            httpx.HTTPStatusError: If the service returns an error status other than 404.
            httpx.TransportError: If the service is unreachable.
        """
        try:
            response = await self.client.get(f"/products/{product_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()  # Löst HTTPStatusError bei 4xx/5xx aus
            data = response.json()
            return CatalogProduct(name=data["name"], price=data["price"])
        except httpx.TimeoutException:
            log.error(f"[Product: {product_id}] Catalog Service Timeout.")
            raise
        except httpx.HTTPStatusError as e:
            log.error(f"[Product: {product_id}] HTTP error from Catalog Service: {e.response.status_code}")
            raise
        except httpx.TransportError as e:
            log.error(f"[Product: {product_id}] Catalog Service unreachable: {e}")
            raise


# --- In-Memory Catalog ---
class InMemoryCatalog:
    """
    Catalog lookup backed by a dict of product id -> CatalogProduct.
    Used when no Catalog Service is configured and as the fake catalog in tests.
    """
    def __init__(self, products: Optional[Dict[str, CatalogProduct]] = None):
        self.products = dict(products or {})

    def put(self, product_id: str, name: str, price: float):
        self.products[product_id] = CatalogProduct(name=name, price=price)

    def remove(self, product_id: str):
        self.products.pop(product_id, None)

    async def find_by_id(self, product_id: str) -> Optional[CatalogProduct]:
        return self.products.get(str(product_id))
