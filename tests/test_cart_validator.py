"""Tests for strict cart validation (order commit mode)."""

import pytest

from conftest import run
from order_intake.cart import validate_cart
from order_intake.errors import CartError, CartErrorKind


def _validate(cart, catalog):
    return run(validate_cart(cart, catalog))


def _kind_of_failure(cart, catalog):
    with pytest.raises(CartError) as exc_info:
        _validate(cart, catalog)
    return exc_info.value.kind


class TestAuthoritativePricing:
    def test_referenced_line_takes_catalog_price_and_name(self, catalog):
        result = _validate([{"product": "P1", "name": "Old Name", "price": 0.01, "quantity": 2}], catalog)
        line = result.validatedLines[0]
        assert line.product == "P1"
        assert line.name == "New Name"
        assert line.price == 15
        assert result.recalculatedTotal == 30

    @pytest.mark.parametrize("claimed_price", [0.5, 15, 999, 10001, "free"])
    def test_claimed_price_never_matters_for_referenced_lines(self, catalog, claimed_price):
        result = _validate([{"product": "P2", "name": "x", "price": claimed_price, "quantity": 1}], catalog)
        assert result.validatedLines[0].price == 229

    def test_manual_line_keeps_given_price(self, catalog):
        result = _validate([{"name": "Gift wrap", "price": 4.5, "quantity": 2}], catalog)
        line = result.validatedLines[0]
        assert line.product is None
        assert line.price == 4.5
        assert result.recalculatedTotal == 9

    def test_total_is_sum_of_validated_lines(self, catalog):
        result = _validate([
            {"product": "P1", "name": "a", "price": 1, "quantity": 3},
            {"product": "P2", "name": "b", "price": 1, "quantity": 1},
            {"name": "Gift wrap", "price": 2.25, "quantity": 2},
        ], catalog)
        expected = sum(line.price * line.quantity for line in result.validatedLines)
        assert result.recalculatedTotal == pytest.approx(expected)
        assert result.recalculatedTotal == 278.5

    def test_total_is_rounded_to_cents(self, catalog):
        result = _validate([{"name": "Tea", "price": 0.1, "quantity": 3}], catalog)
        assert result.recalculatedTotal == 0.3


class TestMissingField:
    @pytest.mark.parametrize("line", [
        {"price": 5, "quantity": 1},
        {"name": "A", "quantity": 1},
        {"name": "A", "price": 5},
        {"name": "A", "price": 5, "quantity": 0},
        {"name": "A", "price": 0, "quantity": 1},
    ])
    def test_missing_or_falsy_fields(self, catalog, line):
        assert _kind_of_failure([line], catalog) == CartErrorKind.MISSING_FIELD


class TestDuplicates:
    def test_duplicate_names_without_reference(self, catalog):
        cart = [{"name": "A", "price": 5, "quantity": 1}, {"name": "A", "price": 5, "quantity": 1}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.DUPLICATE_PRODUCT

    def test_duplicate_reported_before_quantity_and_price_of_second_line(self, catalog):
        cart = [{"name": "A", "price": 5, "quantity": 1}, {"name": "A", "price": 99999, "quantity": -1}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.DUPLICATE_PRODUCT

    def test_duplicate_product_reference_with_different_names(self, catalog):
        cart = [
            {"product": "P1", "name": "A", "price": 15, "quantity": 1},
            {"product": "P1", "name": "B", "price": 15, "quantity": 1},
        ]
        with pytest.raises(CartError) as exc_info:
            _validate(cart, catalog)
        assert exc_info.value.kind == CartErrorKind.DUPLICATE_PRODUCT
        assert "B" in exc_info.value.message

    def test_same_name_different_references_is_not_a_duplicate(self, catalog):
        cart = [
            {"product": "P1", "name": "A", "price": 15, "quantity": 1},
            {"product": "P2", "name": "A", "price": 229, "quantity": 1},
        ]
        assert len(_validate(cart, catalog).validatedLines) == 2


class TestQuantity:
    @pytest.mark.parametrize("quantity", [-1, 1.5, "2", True])
    def test_invalid_quantity(self, catalog, quantity):
        cart = [{"name": "A", "price": 5, "quantity": quantity}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.INVALID_QUANTITY

    @pytest.mark.parametrize("quantity", [10 ** 400, float("inf"), float("nan")])
    def test_quantity_out_of_float_range(self, catalog, quantity):
        cart = [{"name": "A", "price": 5, "quantity": quantity}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.INVALID_QUANTITY

    def test_line_total_overflow(self, catalog):
        cart = [{"name": "A", "price": 10000, "quantity": 10 ** 305}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.INVALID_QUANTITY

    def test_cart_total_overflow(self, catalog):
        cart = [
            {"name": "A", "price": 10000, "quantity": 10 ** 304},
            {"name": "B", "price": 10000, "quantity": 10 ** 304},
        ]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.INVALID_QUANTITY

    def test_integral_float_is_accepted(self, catalog):
        result = _validate([{"name": "A", "price": 5, "quantity": 2.0}], catalog)
        assert result.validatedLines[0].quantity == 2
        assert isinstance(result.validatedLines[0].quantity, int)


class TestCatalogLookup:
    def test_unknown_product(self, catalog):
        cart = [{"product": "GONE", "name": "Old trip", "price": 10, "quantity": 1}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.PRODUCT_NOT_FOUND

    def test_backend_fault_is_wrapped(self, failing_catalog):
        cart = [{"product": "P1", "name": "A", "price": 10, "quantity": 1}]
        with pytest.raises(CartError) as exc_info:
            _validate(cart, failing_catalog)
        error = exc_info.value
        assert error.kind == CartErrorKind.BACKEND_FAILURE
        assert not error.is_client_error
        assert isinstance(error.__cause__, ConnectionError)

    def test_first_error_wins_and_stops_lookups(self, failing_catalog):
        cart = [
            {"name": "A", "price": 5, "quantity": -1},
            {"product": "P1", "name": "B", "price": 10, "quantity": 1},
        ]
        assert _kind_of_failure(cart, failing_catalog) == CartErrorKind.INVALID_QUANTITY
        assert failing_catalog.calls == 0


class TestManualPrice:
    @pytest.mark.parametrize("price", [-5, 10000.01, "5"])
    def test_invalid_manual_price(self, catalog, price):
        cart = [{"name": "Custom", "price": price, "quantity": 1}]
        assert _kind_of_failure(cart, catalog) == CartErrorKind.INVALID_PRICE

    def test_price_ceiling_is_inclusive(self, catalog):
        result = _validate([{"name": "Custom", "price": 10000, "quantity": 1}], catalog)
        assert result.recalculatedTotal == 10000
