"""
mock_catalog_service.py — Mock Implementation of the Catalog Service (REST API)

This module provides a simulated Catalog Service for running the order intake locally.
It exposes a simple FastAPI application serving the storefront's seed products.

Simulation Scenarios:
    • Known product id → canonical name and price
    • Unknown product id → HTTP 404 (treated as "product no longer available")
    • Product id containing "FAIL" → HTTP 503 (simulates a backend fault)

Endpoints:
    GET /products           — Lists all products.
    GET /products/{id}      — Returns a single product.

Port:
    Default: 8002 (HTTP)
"""

import logging

from fastapi import FastAPI, HTTPException

app = FastAPI(title="Mock Catalog Service")
logging.basicConfig(level=logging.INFO)

PRODUCTS = {
    "p-phuket": {"name": "Phuket Escape", "price": 299, "category": "beach"},
    "p-cairo": {"name": "Cairo Adventure", "price": 854, "category": "historical"},
    "p-santorini": {"name": "Santorini Getaway", "price": 229, "category": "island"},
    "p-dubai": {"name": "Dubai Deluxe", "price": 1299, "category": "city"},
    "p-srilanka": {"name": "Sri Lanka Special", "price": 499, "category": "beach"},
    "p-turkey": {"name": "Turkey Highlights", "price": 900, "category": "historical"},
    "p-ibiza": {"name": "Ibiza Party", "price": 5800, "category": "party"},
    "p-maldives": {"name": "Maledives Retreat", "price": 300, "category": "island"},
    "p-peru": {"name": "Peru Trek", "price": 7500, "category": "adventure"},
    "p-newyork": {"name": "New York Highlights", "price": 2300, "category": "city"},
}


@app.get("/products")
def list_products():
    return [{"id": product_id, **product} for product_id, product in PRODUCTS.items()]


@app.get("/products/{product_id}")
def get_product(product_id: str):
    """
    Returns the canonical data of one product.

    Raises:
        HTTPException(404): If the product id is unknown.
        HTTPException(503): If the product id contains "FAIL" (simulated outage).
    """
    if "FAIL" in product_id:
        logging.error(f"[CS] Simulating backend fault for {product_id}.")
        raise HTTPException(status_code=503, detail="Catalog backend unavailable")

    product = PRODUCTS.get(product_id)
    if product is None:
        logging.warning(f"[CS] Product {product_id} not found.")
        raise HTTPException(status_code=404, detail="Product not found")

    logging.info(f"[CS] Product {product_id} served.")
    return {"id": product_id, **product}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
