"""
errors.py — Error Types for Cart Validation and Order Creation

Every failure of the cart pipeline or the order committer is raised as one of two
exceptions carrying an explicit `kind`. The API layer maps kinds to HTTP responses;
nothing dispatches on message text.
"""

from enum import Enum
from typing import List, Optional


class CartErrorKind(str, Enum):
    MISSING_FIELD = "MissingField"
    DUPLICATE_PRODUCT = "DuplicateProduct"
    INVALID_QUANTITY = "InvalidQuantity"
    PRODUCT_NOT_FOUND = "ProductNotFound"
    INVALID_PRICE = "InvalidPrice"
    BACKEND_FAILURE = "BackendFailure"


class OrderErrorKind(str, Enum):
    EMPTY_CART = "EmptyCart"
    MALFORMED_PAYLOAD = "MalformedPayload"
    FORM_VALIDATION = "FormValidation"
    CART_VALIDATION = "CartValidation"
    TOTAL_MISMATCH = "TotalMismatch"


class CartError(Exception):
    """A cart line failed strict validation, or the catalog could not be consulted."""

    def __init__(self, kind: CartErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def is_client_error(self) -> bool:
        return self.kind != CartErrorKind.BACKEND_FAILURE


class OrderError(Exception):
    """
    The order could not be committed. Nothing has been persisted when this is raised.

    Attributes:
        kind (OrderErrorKind): What went wrong.
        details (List[str]): Every form violation, for FORM_VALIDATION.
        cart_error (CartError): The underlying cart failure, for CART_VALIDATION.
        client_total, server_total (float): Both totals, for TOTAL_MISMATCH.
    """

    def __init__(
            self,
            kind: OrderErrorKind,
            message: str,
            details: Optional[List[str]] = None,
            cart_error: Optional[CartError] = None,
            client_total: Optional[float] = None,
            server_total: Optional[float] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or []
        self.cart_error = cart_error
        self.client_total = client_total
        self.server_total = server_total

    @property
    def is_client_error(self) -> bool:
        if self.kind == OrderErrorKind.CART_VALIDATION and self.cart_error is not None:
            return self.cart_error.is_client_error
        return True
