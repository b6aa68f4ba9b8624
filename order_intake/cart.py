"""
cart.py — Cart Cleanup, Validation and Recalculation

This module implements the three cart stages of the order intake pipeline:

1. normalize_cart() — best-effort hygiene for the working cart (never fails)
2. validate_cart()  — strict validation used when an order is committed (fails on the first defect)
3. diff_cart()      — collect-all check used before submitting, reports what changed

Lines are plain dicts as received from the client:
    {"product": <catalog id, optional>, "name": str, "quantity": int, "price": float}

Lines with a product reference are always re-priced from the catalog; the name and
price sent by the client for such lines are never trusted.
"""

import logging
import math
from numbers import Real
from typing import Any, Iterable, List, Mapping, Optional

from .clients import CatalogLookup
from .errors import CartError, CartErrorKind
from .models import CartDiff, CartValidation, ManualLine, NormalizedCart, ReferencedLine

log = logging.getLogger(__name__)

# Upper bound for the unit price of lines without a catalog reference
MAX_MANUAL_PRICE = 10000
# Price differences up to this amount are treated as rounding noise
PRICE_TOLERANCE = 0.01
CURRENCY_PRECISION = 2

REASON_INVALID = "Invalid item data"
REASON_UNAVAILABLE = "Product no longer available"
REASON_PRICE_UPDATED = "Price updated"


def is_number(value: Any) -> bool:
    """True for finite real numbers. Booleans and integers too large for a float are not numbers."""
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def line_amount(price: Any, quantity: Any) -> Optional[float]:
    """price × quantity as a float, or None if the product is out of float range."""
    try:
        amount = float(price) * float(quantity)
    except OverflowError:
        return None
    return amount if math.isfinite(amount) else None


def _has_required_fields(line: Any) -> bool:
    return isinstance(line, Mapping) and bool(line.get("name")) and bool(line.get("quantity")) \
        and bool(line.get("price"))


def identity_key(line: Mapping) -> str:
    """Returns the key used for duplicate detection: the product reference if present, else the exact name."""
    product = line.get("product")
    return str(product) if product else str(line.get("name"))


def cart_total(lines: Iterable[Any]) -> float:
    """Σ price × quantity, rounded to currency precision. Accepts dicts or models."""
    total = 0.0
    for line in lines:
        if isinstance(line, Mapping):
            total += line["price"] * line["quantity"]
        else:
            total += line.price * line.quantity
    return round(total, CURRENCY_PRECISION)


def normalize_cart(raw_cart: List[Any]) -> NormalizedCart:
    """
    Cleans a raw client cart so it can be stored as the session's working cart.

    - Lines missing name, quantity or price, or with a non-numeric quantity or price, are dropped.
    - Lines sharing an identity key are merged by summing quantities; the first line's
      other fields are kept.
    - Every quantity is forced to max(1, floor(quantity)).
    - Lines whose amount would make the total overflow are dropped.

    This is hygiene, not a trust boundary: prices stay as the client sent them.

    Args:
        raw_cart (list): Cart lines as received from the client.

    Returns:
        NormalizedCart: Cleaned lines, their (unaudited) total and the dropped raw lines.
    """
    cleaned = []
    by_key = {}
    dropped = []
    running_total = 0.0

    for line in raw_cart:
        if not _has_required_fields(line) or not is_number(line["quantity"]) or not is_number(line["price"]):
            dropped.append(line)
            continue

        quantity = max(1, math.floor(line["quantity"]))
        key = identity_key(line)
        existing = by_key.get(key)

        # Lines that would push a quantity or the total out of float range are dropped
        price = existing["price"] if existing is not None else line["price"]
        merged_quantity = existing["quantity"] + quantity if existing is not None else quantity
        amount = line_amount(price, quantity)
        if amount is None or not is_number(merged_quantity) or not math.isfinite(running_total + amount):
            dropped.append(line)
            continue
        running_total += amount

        if existing is not None:
            existing["quantity"] += quantity
            continue

        item = dict(line)
        item["quantity"] = quantity
        by_key[key] = item
        cleaned.append(item)

    if dropped:
        log.info(f"[Cart] Normalizer dropped {len(dropped)} malformed line(s).")

    return NormalizedCart(lines=cleaned, total=cart_total(cleaned), dropped=dropped)


def _checked_quantity(line: Mapping) -> int:
    quantity = line["quantity"]
    if not is_number(quantity) or quantity <= 0 or quantity != int(quantity):
        raise CartError(
            CartErrorKind.INVALID_QUANTITY,
            f"Invalid quantity for {line['name']}: must be a positive integer",
        )
    return int(quantity)


async def validate_cart(cart: List[Any], catalog: CatalogLookup) -> CartValidation:
    """
    Strictly validates a cart and recalculates its total from authoritative prices.

    Lines are checked in cart order and the first defect aborts validation:
        1. name, quantity and price must be present (MissingField)
        2. the identity key must not repeat (DuplicateProduct)
        3. quantity must be a positive integer (InvalidQuantity)
        4. referenced products must exist in the catalog (ProductNotFound);
           their name and price are replaced by the catalog's values
        5. manual lines must have 0 < price <= MAX_MANUAL_PRICE (InvalidPrice)
        6. the line amount must keep the total within float range (InvalidQuantity)

    Args:
        cart (list): Cart lines as received from the client.
        catalog (CatalogLookup): Source of canonical names and prices.

    Returns:
        CartValidation: The validated lines and their recalculated total.

    Raises:
        CartError: With the kind of the first defect found. Any fault of the catalog lookup
            other than "not found" is raised as BACKEND_FAILURE, chained to the original error.
    """
    validated = []
    seen = set()
    running_total = 0.0

    for line in cart:
        if not _has_required_fields(line):
            raise CartError(CartErrorKind.MISSING_FIELD, "Invalid cart item: missing required fields")

        key = identity_key(line)
        if key in seen:
            raise CartError(CartErrorKind.DUPLICATE_PRODUCT, f"Duplicate product in cart: {line['name']}")
        seen.add(key)

        quantity = _checked_quantity(line)

        if line.get("product"):
            referenced = ReferencedLine(
                product=str(line["product"]),
                quantity=quantity,
                client_claims={"name": line["name"], "price": line["price"]},
            )
            try:
                product = await catalog.find_by_id(referenced.product)
            except Exception as e:
                log.error(f"[Product: {referenced.product}] Catalog lookup failed: {e}")
                raise CartError(
                    CartErrorKind.BACKEND_FAILURE,
                    f"Database error validating product {line['name']}",
                ) from e
            if product is None:
                raise CartError(CartErrorKind.PRODUCT_NOT_FOUND, f"Product not found: {line['name']}")
            resolved = referenced.resolve(product)
        else:
            price = line["price"]
            if not is_number(price) or price <= 0 or price > MAX_MANUAL_PRICE:
                raise CartError(CartErrorKind.INVALID_PRICE, f"Invalid price for {line['name']}: {price}")
            resolved = ManualLine(name=str(line["name"]), quantity=quantity, price=price).to_validated()

        amount = line_amount(resolved.price, resolved.quantity)
        if amount is None or not math.isfinite(running_total + amount):
            raise CartError(
                CartErrorKind.INVALID_QUANTITY,
                f"Invalid quantity for {line['name']}: line total out of range",
            )
        running_total += amount
        validated.append(resolved)

    return CartValidation(validatedLines=validated, recalculatedTotal=cart_total(validated))


async def diff_cart(cart: List[Any], catalog: CatalogLookup) -> CartDiff:
    """
    Checks a cart against the catalog without failing, reporting every change.

    - Malformed lines are removed with reason "Invalid item data".
    - Lines whose product no longer exists are removed with reason "Product no longer available".
    - Lines whose catalog price differs by more than PRICE_TOLERANCE are kept with the catalog
      price and reported as updated ("Price updated", with oldPrice and newPrice).
    - Lines whose catalog name differs are renamed without being reported.
    - Lines whose amount would make the total overflow are removed as "Invalid item data".

    Duplicates are not detected here; merging them is the normalizer's job.

    Args:
        cart (list): Cart lines as held by the client.
        catalog (CatalogLookup): Source of canonical names and prices.

    Returns:
        CartDiff: The corrected cart, its total, and the removed and updated lines.

    Raises:
        CartError: BACKEND_FAILURE if the catalog itself cannot be consulted.
    """
    validated_cart = []
    removed_items = []
    updated_items = []
    running_total = 0.0

    for line in cart:
        if not _has_required_fields(line) or not is_number(line["quantity"]) or not is_number(line["price"]):
            removed = dict(line) if isinstance(line, Mapping) else {"item": line}
            removed["reason"] = REASON_INVALID
            removed_items.append(removed)
            continue

        item = dict(line)
        price_update = None

        if item.get("product"):
            product_id = str(item["product"])
            try:
                product = await catalog.find_by_id(product_id)
            except Exception as e:
                log.error(f"[Product: {product_id}] Catalog lookup failed during cart diff: {e}")
                raise CartError(
                    CartErrorKind.BACKEND_FAILURE,
                    f"Database error validating product {item['name']}",
                ) from e

            if product is None:
                removed_items.append({**item, "reason": REASON_UNAVAILABLE})
                continue

            if abs(product.price - item["price"]) > PRICE_TOLERANCE:
                price_update = {
                    **item,
                    "oldPrice": item["price"],
                    "newPrice": product.price,
                    "reason": REASON_PRICE_UPDATED,
                }
                item["price"] = product.price

            if product.name != item["name"]:
                item["name"] = product.name

        amount = line_amount(item["price"], item["quantity"])
        if amount is None or not math.isfinite(running_total + amount):
            removed_items.append({**line, "reason": REASON_INVALID})
            continue
        running_total += amount

        if price_update is not None:
            updated_items.append(price_update)
        validated_cart.append(item)

    return CartDiff(
        validatedCart=validated_cart,
        recalculatedTotal=cart_total(validated_cart),
        removedItems=removed_items,
        updatedItems=updated_items,
        hasChanges=bool(removed_items or updated_items),
    )
