"""
main.py — FastAPI Entry Point for the Order Intake Service

This module provides the REST API of the storefront's order intake.
It connects the checkout page to the cart pipeline and the order committer.

Responsibilities:
    • Keep the session's working cart clean (cart sync)
    • Report price and availability changes before submission (cart validate)
    • Accept orders only with server-validated lines and totals (orders)
    • Provide order lookup for the confirmation page and system health information
"""

import os
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from .cart import diff_cart, normalize_cart, validate_cart
from .clients import CatalogClient, CatalogLookup
from .errors import CartError, OrderError, OrderErrorKind
from .logging_config import setup_logging, get_logger
from .models import CartPayload, OrderCreated, OrderRequest
from .storage import InMemoryOrderStore, MongoOrderStore, OrderStore
from .workflow import commit_order, ensure_cart_not_empty

SESSION_SECRET = os.environ.get("SESSION_SECRET", "dev-session-secret")
SESSION_MAX_AGE = 60 * 60 * 24  # 1 day
MONGODB_URI = os.environ.get("MONGODB_URI")

CART_EMPTY_PAGE = "/cart-empty"

# Initialization
setup_logging()
log = get_logger(__name__)

router = APIRouter()


def save_working_cart(session: dict, lines: list):
    """
    Stores the cleaned cart as the session's working cart.

    The session travels as a signed cookie (browsers cap it at about 4 KB), so only each
    line's identity and quantity are kept. Names and prices are resubmitted with the order
    and re-validated there.
    """
    session["cart"] = [
        {"product": line["product"], "quantity": line["quantity"]} if line.get("product")
        else {"name": line["name"], "quantity": line["quantity"]}
        for line in lines
    ]


def clear_working_cart(session: dict):
    session["cart"] = []


def order_error_response(error: OrderError) -> JSONResponse:
    """
    Maps a rejected order to its HTTP response.

    Client-correctable and trust-boundary errors are returned with their message (400).
    Infrastructure failures are answered with a generic message only (500).
    """
    if not error.is_client_error:
        log.critical(f"Order rejected due to backend failure: {error.message}", exc_info=error)
        return JSONResponse(status_code=500, content={"error": "Could not create order"})

    if error.kind == OrderErrorKind.FORM_VALIDATION:
        content = {"error": error.message, "details": error.details}
    elif error.kind == OrderErrorKind.TOTAL_MISMATCH:
        content = {
            "error": error.message,
            "clientTotal": error.client_total,
            "serverTotal": error.server_total,
            "message": "Cart total has been recalculated. Please refresh and try again.",
        }
    else:
        content = {"error": error.message}
    return JSONResponse(status_code=400, content=content)


# API Endpoint: Cart Sync
@router.post("/api/cart/sync")
async def sync_cart(payload: CartPayload, request: Request):
    """
    Cleans the client's cart and stores it as the session's working cart.

    Duplicates are merged and malformed lines dropped. The returned total is the audited
    (catalog-priced) total when the cleaned cart passes strict validation, otherwise the
    client's own total as a fallback; the sync itself does not fail on cart defects.

    Returns:
        dict: ok (bool), cart (list), total (float), and message (str) if lines were merged or dropped.
    """
    if not isinstance(payload.cart, list):
        return JSONResponse(status_code=400, content={"error": "cart must be an array"})

    try:
        normalized = normalize_cart(payload.cart)
        save_working_cart(request.session, normalized.lines)

        total = 0.0
        if normalized.lines:
            try:
                validation = await validate_cart(normalized.lines, request.app.state.catalog)
                total = validation.recalculatedTotal
            except CartError as e:
                log.warning(f"[Cart] Validation warning during sync ({e.kind.value}): {e.message}")
                total = normalized.total

        body = {"ok": True, "cart": normalized.lines, "total": total}
        if len(normalized.lines) != len(payload.cart):
            body["message"] = "Cart cleaned: duplicates merged"
        return body

    except Exception as e:
        log.critical(f"Cart sync failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Could not sync cart"})


# API Endpoint: Pre-submit Cart Check
@router.post("/api/cart/validate")
async def validate_cart_changes(payload: CartPayload, request: Request):
    """
    Checks the client's cart against the catalog and reports what changed.

    Returns:
        dict: validatedCart, recalculatedTotal, removedItems, updatedItems, hasChanges.
    """
    if not isinstance(payload.cart, list):
        return JSONResponse(status_code=400, content={"error": "cart must be an array"})

    try:
        diff = await diff_cart(payload.cart, request.app.state.catalog)
    except Exception as e:
        log.critical(f"Cart validation failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Could not validate cart"})
    return diff.model_dump()


# API Endpoint: Checkout → Order
@router.post("/api/orders", status_code=201)
async def create_order(order: OrderRequest, request: Request):
    """
    Creates an order from a submitted checkout.

    The cart must not be empty: the request items if present (an empty list counts as empty),
    otherwise the session's working cart.
    Browser clients asking for HTML are redirected to the empty-cart page instead.

    Returns:
        OrderCreated: orderId and the server-computed total (HTTP 201).

    Error responses:
        400: {error, details?} for payload, form and cart errors;
             {error, clientTotal, serverTotal, message} for a total mismatch.
        500: {error} for backend and persistence faults (no internal detail).
    """
    try:
        ensure_cart_not_empty(order.items if order.items is not None else request.session.get("cart"))
    except OrderError as e:
        if "text/html" in request.headers.get("accept", ""):
            return RedirectResponse(url=CART_EMPTY_PAGE, status_code=303)
        return JSONResponse(status_code=400, content={"error": e.message})

    try:
        created = await commit_order(
            order,
            catalog=request.app.state.catalog,
            store=request.app.state.order_store,
            clear_cart=lambda: clear_working_cart(request.session),
        )
    except OrderError as e:
        return order_error_response(e)
    except Exception as e:
        log.critical(f"Unexpected error while creating order: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Could not create order"})

    return OrderCreated(orderId=created.id, total=created.totalAmount)


# API Endpoint: Order Confirmation Lookup
@router.get("/api/orders/{order_id}")
def get_order(order_id: str, request: Request):
    order = request.app.state.order_store.get(order_id)
    if order is None:
        return JSONResponse(status_code=404, content={"error": "Order not found"})
    return order.model_dump(mode="json")


# Health Check Endpoint
@router.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}


def default_order_store() -> OrderStore:
    if MONGODB_URI:
        return MongoOrderStore.from_uri(MONGODB_URI)
    log.info("MONGODB_URI not set, orders are kept in memory.")
    return InMemoryOrderStore()


def create_app(catalog: Optional[CatalogLookup] = None, order_store: Optional[OrderStore] = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        catalog (CatalogLookup, optional): Catalog used for pricing. Defaults to the Catalog Service client.
        order_store (OrderStore, optional): Order persistence. Defaults to MongoDB if MONGODB_URI
            is set, otherwise an in-memory store.
    """
    app = FastAPI(title="Order Intake Service")
    app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET, max_age=SESSION_MAX_AGE)
    app.state.catalog = catalog if catalog is not None else CatalogClient()
    app.state.order_store = order_store if order_store is not None else default_order_store()
    app.include_router(router)

    @app.on_event("shutdown")
    async def on_shutdown():
        """Closes the Catalog Service client when the app stops."""
        if isinstance(app.state.catalog, CatalogClient):
            await app.state.catalog.aclose()

    log.info("Order Intake Service configured.")
    return app


app = create_app()
