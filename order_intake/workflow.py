"""
workflow.py — Order Commit Logic

This module contains the workflow that turns a submitted checkout into a persisted order.
It is the trust boundary for money: the persisted order only ever contains server-validated
lines and the server-computed total.

Workflow Overview:
1. Check the payload shape (customer name, email, non-empty items, declared total)
2. Validate all form fields (every violation is reported)
3. Strictly validate the cart against the catalog and recalculate the total
4. Reconcile the recalculated total with the total the client declared
5. Persist the order
6. Signal that the working cart can be cleared (failure here does not fail the order)
"""

import logging
from typing import Callable, Optional

from .cart import PRICE_TOLERANCE, is_number, validate_cart
from .clients import CatalogLookup
from .errors import CartError, OrderError, OrderErrorKind
from .forms import validate_order_form
from .models import Order, OrderRequest
from .storage import OrderStore

log = logging.getLogger(__name__)


def totals_match(server_total: float, client_total: float) -> bool:
    """True if the two totals differ by at most PRICE_TOLERANCE."""
    # Rounded so that a difference of exactly one cent is not lost to float noise
    return round(abs(server_total - client_total), 6) <= PRICE_TOLERANCE


def ensure_cart_not_empty(items) -> None:
    """
    Precondition gate run before an order is committed.

    Raises:
        OrderError: EMPTY_CART if there is no cart or it has no lines.
    """
    if not isinstance(items, list) or len(items) == 0:
        raise OrderError(OrderErrorKind.EMPTY_CART, "Cart is empty. Add items before checking out.")


async def commit_order(
        order_request: OrderRequest,
        catalog: CatalogLookup,
        store: OrderStore,
        clear_cart: Optional[Callable[[], None]] = None,
) -> Order:
    """
    Validates a submitted checkout and persists it as a new order.

    Args:
        order_request (OrderRequest): The submitted checkout.
        catalog (CatalogLookup): Source of canonical product names and prices.
        store (OrderStore): Where the order is persisted.
        clear_cart (Callable, optional): Called after the order is persisted to empty the
            customer's working cart.

    Returns:
        Order: The persisted order, including its id and the server-computed total.

    Raises:
        OrderError: MALFORMED_PAYLOAD, FORM_VALIDATION, CART_VALIDATION or TOTAL_MISMATCH.
            Nothing is persisted when an OrderError is raised.
        Exception: Persistence faults are propagated unchanged.

    Workflow Steps:
        Step 1 – Payload:
            - customerName, email, a non-empty items list and a finite numeric totalAmount are required.

        Step 2 – Form:
            - All field violations are collected and reported together.

        Step 3 – Cart:
            - Strict validation; referenced lines are re-priced from the catalog.

        Step 4 – Totals:
            - The client total may differ from the server total by at most PRICE_TOLERANCE.

        Step 5 – Persistence:
            - Validated lines and the server total are stored, never the client's values.

        Step 6 – Cart clear:
            - Failures are logged only, the order already exists.
    """
    log_prefix = f"[Checkout: {order_request.email}]"

    # --- 1. Payload ---
    items = order_request.items
    if not order_request.customerName or not order_request.email \
            or not isinstance(items, list) or len(items) == 0:
        log.warning(f"{log_prefix} Rejected: malformed payload.")
        raise OrderError(OrderErrorKind.MALFORMED_PAYLOAD, "Invalid order payload")

    client_total = order_request.totalAmount
    if not is_number(client_total):
        log.warning(f"{log_prefix} Rejected: declared total missing, not a number or not finite.")
        raise OrderError(OrderErrorKind.MALFORMED_PAYLOAD, "Invalid order payload")

    # --- 2. Form ---
    validation_errors = validate_order_form(order_request)
    if validation_errors:
        log.info(f"{log_prefix} Rejected: {len(validation_errors)} form error(s).")
        raise OrderError(OrderErrorKind.FORM_VALIDATION, "Validation failed", details=validation_errors)

    # --- 3. Cart ---
    try:
        cart = await validate_cart(items, catalog)
    except CartError as e:
        log.warning(f"{log_prefix} Rejected: cart validation failed ({e.kind.value}): {e.message}")
        raise OrderError(OrderErrorKind.CART_VALIDATION, e.message, cart_error=e) from e

    # --- 4. Totals ---
    server_total = cart.recalculatedTotal
    if not totals_match(server_total, client_total):
        log.warning(f"{log_prefix} Rejected: total mismatch (client {client_total}, server {server_total}).")
        raise OrderError(
            OrderErrorKind.TOTAL_MISMATCH,
            "Total amount mismatch",
            client_total=client_total,
            server_total=server_total,
        )

    # --- 5. Persistence ---
    order = store.add(Order(
        customerName=order_request.customerName.strip(),
        email=order_request.email.strip().lower(),
        items=cart.validatedLines,
        totalAmount=server_total,
    ))
    log.info(f"[Order: {order.id}] Order persisted ({len(order.items)} line(s), total {order.totalAmount}).")

    # --- 6. Cart clear ---
    if clear_cart is not None:
        try:
            clear_cart()
        except Exception as e:
            log.error(f"[Order: {order.id}] Order persisted but working cart could not be cleared: {e}",
                      exc_info=True)

    return order
