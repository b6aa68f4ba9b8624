"""
models.py — Data Models for Order Intake

This module defines the data structures used for cart validation and order creation.
It uses Pydantic models for everything that crosses the service boundary or is persisted.

Client payloads (CartPayload, OrderRequest) are deliberately loose: malformed cart lines
must reach the cart validator so that they can be reported with a precise error kind
instead of being rejected wholesale by request parsing.

Models:
    - OrderStatus: Lifecycle states of a persisted order.
    - CatalogProduct: Canonical name and price returned by the catalog.
    - ValidatedLine: A cart line whose name and price the server vouches for.
    - ReferencedLine / ManualLine: The two kinds of incoming client lines.
    - NormalizedCart, CartValidation, CartDiff: Results of the cart pipeline stages.
    - CartPayload, OrderRequest: Incoming request bodies.
    - Order, OrderCreated: The persisted order and the creation response.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class CatalogProduct(BaseModel):
    """
    Canonical product data as returned by the catalog.

    Attributes:
        name (str): The product's current display name.
        price (float): The product's current unit price.
    """
    name: str
    price: float = Field(..., ge=0)


class ValidatedLine(BaseModel):
    """
    A cart line whose name and price the server has verified.

    For lines with a product reference both values come from the catalog,
    never from the client.
    """
    model_config = ConfigDict(frozen=True)

    product: Optional[str] = None
    name: str
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)


class ReferencedLine(BaseModel):
    """
    A client line pointing at a catalog product.

    Name and price supplied by the client are kept only as unverified claims;
    the only way to obtain a ValidatedLine is to resolve it against the catalog.
    """
    product: str
    quantity: int
    client_claims: Dict[str, Any] = {}

    def resolve(self, catalog_product: CatalogProduct) -> ValidatedLine:
        return ValidatedLine(
            product=self.product,
            name=catalog_product.name,
            quantity=self.quantity,
            price=catalog_product.price,
        )


class ManualLine(BaseModel):
    """A client line without a catalog reference; name and price are taken as given."""
    name: str
    quantity: int
    price: float

    def to_validated(self) -> ValidatedLine:
        return ValidatedLine(name=self.name, quantity=self.quantity, price=self.price)


class NormalizedCart(BaseModel):
    """
    Result of the best-effort cart cleanup.

    Attributes:
        lines (List[dict]): Cleaned lines, duplicates merged, quantities floored.
        total (float): Σ price × quantity over the cleaned lines (client prices, unaudited).
        dropped (List[Any]): Raw lines that were discarded as malformed.
    """
    lines: List[Dict[str, Any]]
    total: float
    dropped: List[Any] = []


class CartValidation(BaseModel):
    validatedLines: List[ValidatedLine]
    recalculatedTotal: float


class CartDiff(BaseModel):
    """
    Result of the pre-submit diff check.

    Attributes:
        validatedCart (List[dict]): Lines that survived, with catalog names and prices applied.
        recalculatedTotal (float): Σ price × quantity over validatedCart.
        removedItems (List[dict]): Dropped lines, each with a 'reason'.
        updatedItems (List[dict]): Lines whose price was corrected ('oldPrice', 'newPrice', 'reason').
        hasChanges (bool): True iff anything was removed or updated.
    """
    validatedCart: List[Dict[str, Any]]
    recalculatedTotal: float
    removedItems: List[Dict[str, Any]]
    updatedItems: List[Dict[str, Any]]
    hasChanges: bool


class CartPayload(BaseModel):
    """Request body of the cart sync and validate endpoints. 'cart' is checked to be a list by the route."""
    cart: Any = None


class OrderRequest(BaseModel):
    """
    Represents an order submitted from the checkout page.

    Field types are not enforced here (a numeric postal code is ordinary input);
    the order form validation decides what is acceptable and reports it as a 400.

    Attributes:
        customerName (str): Customer's full name.
        email (str): Customer's email address.
        phone, address, city, postalCode, country (str, optional): Delivery details.
        paymentMethod (str, optional): One of 'card', 'paypal', 'bank'.
        cardName, cardNumber, cardExpiry, cardCVV (str, optional): Card details, format-checked only.
        items (list): The cart lines as claimed by the client.
        totalAmount (float): The total the client displayed; reconciled against the server total.
    """
    customerName: Any = None
    email: Any = None
    phone: Any = None
    address: Any = None
    city: Any = None
    postalCode: Any = None
    country: Any = None
    paymentMethod: Any = None
    cardName: Any = None
    cardNumber: Any = None
    cardExpiry: Any = None
    cardCVV: Any = None
    items: Any = None
    totalAmount: Any = None


class Order(BaseModel):
    """
    A persisted order. Built only from validated lines and the server-computed total.

    Instances are immutable; the store returns a copy carrying the assigned id.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: Optional[str] = None
    customerName: str
    email: str
    items: List[ValidatedLine]
    totalAmount: float = Field(..., ge=0)
    status: OrderStatus = Field(default=OrderStatus.PENDING, validate_default=True)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OrderCreated(BaseModel):
    orderId: str
    total: float
