"""
forms.py — Server-side Checkout Form Validation

Re-checks every customer and payment field of an order request. All violations are
collected so the client can fix the whole form in one round trip.

Card fields are only format-checked; no payment is verified or charged.
"""

import re
from typing import List

from .models import OrderRequest

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\d{10,}$")
POSTAL_CODE_RE = re.compile(r"^\d{4,6}$")
CARD_NUMBER_RE = re.compile(r"^\d{16}$")
CARD_EXPIRY_RE = re.compile(r"^\d{2}/\d{2}$")
CARD_CVV_RE = re.compile(r"^\d{3}$")

PAYMENT_METHODS = ("card", "paypal", "bank")


def _text(value) -> str:
    """Optional fields may arrive as numbers (e.g. a postal code); they are checked as text."""
    return value if isinstance(value, str) else str(value)


def validate_order_form(order: OrderRequest) -> List[str]:
    """
    Validates the customer and payment fields of an order request.

    Name and email must be strings. Optional fields of any other JSON type are
    checked against their string form, so `54000` is a valid postal code.

    Args:
        order (OrderRequest): The submitted order.

    Returns:
        List[str]: One message per violation; empty if the form is valid.
    """
    errors = []

    if not isinstance(order.customerName, str) or len(order.customerName.strip()) < 3:
        errors.append("Customer name is required and must be at least 3 characters")

    if not isinstance(order.email, str) or not EMAIL_RE.fullmatch(order.email):
        errors.append("Valid email address is required")

    # Optional delivery fields are only checked when non-empty
    if order.phone and not PHONE_RE.fullmatch(re.sub(r"\D", "", _text(order.phone))):
        errors.append("Phone must contain at least 10 digits")

    if order.address and not _text(order.address).strip():
        errors.append("Address cannot be empty if provided")

    if order.city and not _text(order.city).strip():
        errors.append("City cannot be empty if provided")

    if order.postalCode and not POSTAL_CODE_RE.fullmatch(_text(order.postalCode)):
        errors.append("Postal code must be 4-6 digits")

    if order.paymentMethod and order.paymentMethod not in PAYMENT_METHODS:
        errors.append("Invalid payment method")

    if order.paymentMethod == "card":
        errors.extend(_validate_card(order))

    return errors


def _validate_card(order: OrderRequest) -> List[str]:
    errors = []
    if not order.cardName or not _text(order.cardName).strip():
        errors.append("Cardholder name is required for card payments")
    if not order.cardNumber or not CARD_NUMBER_RE.fullmatch(re.sub(r"\s", "", _text(order.cardNumber))):
        errors.append("Card number must be 16 digits")
    if not order.cardExpiry or not CARD_EXPIRY_RE.fullmatch(_text(order.cardExpiry)):
        errors.append("Card expiry must be in MM/YY format")
    if not order.cardCVV or not CARD_CVV_RE.fullmatch(_text(order.cardCVV)):
        errors.append("CVV must be 3 digits")
    return errors
