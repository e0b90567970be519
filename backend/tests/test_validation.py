"""
Sale request parsing tests.
"""

from decimal import Decimal

import pytest

from bigdrip.errors import ValidationError
from bigdrip.validation import MAX_QUANTITY, coerce_int, parse_commit_sale_request


def test_parse_full_request():
    request = parse_commit_sale_request(
        {
            "customer_id": "7",
            "lines": [{"product_id": 1, "quantity": 2}, {"product_id": "3", "quantity": "1"}],
            "discount": {"type": "percentage", "value": "12.5"},
            "payment_method": "cash",
            "amount_paid_cents": 50000,
            "notes": "gift wrap",
        },
        default_cashier_id=4,
    )

    assert request.cashier_id == 4
    assert request.customer_id == 7
    assert [(l.product_id, l.quantity) for l in request.lines] == [(1, 2), (3, 1)]
    assert request.discount.type == "percentage"
    assert request.discount.value == Decimal("12.5")
    assert request.amount_paid_cents == 50000


def test_explicit_cashier_overrides_actor():
    request = parse_commit_sale_request(
        {"cashier_id": 9, "lines": [], "payment_method": "card"},
        default_cashier_id=4,
    )

    assert request.cashier_id == 9


def test_client_totals_are_dropped():
    request = parse_commit_sale_request(
        {"lines": [], "payment_method": "cash", "total_amount_cents": 1, "tax_amount_cents": 0},
        default_cashier_id=1,
    )

    assert not hasattr(request, "total_amount_cents")


def test_unknown_fields_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_commit_sale_request(
            {"lines": [], "payment_method": "cash", "unit_price_cents": 1},
            default_cashier_id=1,
        )

    assert exc_info.value.details == {"field": "unit_price_cents"}


def test_negative_quantity_passes_parsing():
    # Sign is enforced by the cart calculator as InvalidQuantity
    request = parse_commit_sale_request(
        {"lines": [{"product_id": 1, "quantity": -2}], "payment_method": "cash"},
        default_cashier_id=1,
    )

    assert request.lines[0].quantity == -2


@pytest.mark.parametrize("value", [1.5, "2.0", "1e3", "", True, [1]])
def test_coerce_int_is_strict(value):
    with pytest.raises(ValidationError):
        coerce_int("quantity", value)


def test_coerce_int_accepts_plain_integers():
    assert coerce_int("quantity", " 12 ") == 12
    assert coerce_int("customer_id", None, allow_none=True) is None


@pytest.mark.parametrize(
    "discount",
    [
        {"type": "percentage", "value": -5},
        {"type": "percentage", "value": "ten"},
        {"type": "coupon", "value": 5},
        "10%",
    ],
)
def test_bad_discounts_rejected(discount):
    with pytest.raises(ValidationError) as exc_info:
        parse_commit_sale_request(
            {"lines": [], "payment_method": "cash", "discount": discount},
            default_cashier_id=1,
        )

    assert exc_info.value.code == "INVALID_DISCOUNT"


def test_missing_payment_method_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_commit_sale_request({"lines": []}, default_cashier_id=1)

    assert exc_info.value.code == "INVALID_PAYMENT_METHOD"


def test_non_object_payload_rejected():
    with pytest.raises(ValidationError):
        parse_commit_sale_request(["not", "an", "object"], default_cashier_id=1)


@pytest.mark.parametrize("value", [10**19, -(10**19), str(10**30)])
def test_coerce_int_rejects_values_beyond_database_range(value):
    with pytest.raises(ValidationError) as exc_info:
        coerce_int("customer_id", value)

    assert "out of range" in str(exc_info.value)


@pytest.mark.parametrize(
    "quantity,code",
    [(MAX_QUANTITY + 1, "INVALID_QUANTITY"), (10**19, "VALIDATION_ERROR")],
)
def test_oversized_line_quantity_rejected(quantity, code):
    with pytest.raises(ValidationError) as exc_info:
        parse_commit_sale_request(
            {"lines": [{"product_id": 1, "quantity": quantity}], "payment_method": "cash"},
            default_cashier_id=1,
        )

    assert exc_info.value.code == code


def test_line_quantity_at_limit_accepted():
    request = parse_commit_sale_request(
        {"lines": [{"product_id": 1, "quantity": MAX_QUANTITY}], "payment_method": "cash"},
        default_cashier_id=1,
    )

    assert request.lines[0].quantity == MAX_QUANTITY


@pytest.mark.parametrize("value", [10**20, "1e30"])
def test_oversized_flat_discount_rejected(value):
    with pytest.raises(ValidationError) as exc_info:
        parse_commit_sale_request(
            {"lines": [], "payment_method": "cash", "discount": {"type": "flat", "value": value}},
            default_cashier_id=1,
        )

    assert exc_info.value.code == "INVALID_DISCOUNT"
