"""
Cart calculator tests.

Pure arithmetic: no app context or database needed.
"""

from decimal import Decimal

import pytest

from bigdrip.errors import (
    EmptyCart,
    InsufficientPayment,
    InvalidQuantity,
    NegativeTotal,
    ValidationError,
)
from bigdrip.services.cart_service import (
    CartLine,
    CartLineRequest,
    CommitSaleRequest,
    Discount,
    discount_amount,
    price_cart,
    tax_amount,
)

TAX = Decimal("0.075")


def _lines(*pairs):
    return [
        CartLine(product_id=i + 1, quantity=qty, unit_price_cents=price)
        for i, (qty, price) in enumerate(pairs)
    ]


def test_two_pairs_with_percentage_discount_and_cash_change():
    totals = price_cart(
        _lines((2, 10000)),
        discount=Discount("percentage", Decimal("10")),
        tax_rate=TAX,
        payment_method="cash",
        amount_paid_cents=20000,
    )

    assert totals.subtotal_cents == 20000
    assert totals.discount_amount_cents == 2000
    assert totals.tax_amount_cents == 1350
    assert totals.total_cents == 19350
    assert totals.amount_paid_cents == 20000
    assert totals.change_due_cents == 650
    assert totals.discount_type == "percentage"
    assert totals.discount_value == 1000  # basis points
    assert totals.tax_rate_bps == 750


def test_total_balances_for_mixed_cart():
    totals = price_cart(
        _lines((1, 1999), (3, 450), (2, 12500)),
        discount=Discount("flat", Decimal("1000")),
        tax_rate=TAX,
        payment_method="card",
    )

    assert totals.subtotal_cents == 1999 + 1350 + 25000
    assert totals.total_cents == (
        totals.subtotal_cents - totals.discount_amount_cents + totals.tax_amount_cents
    )
    assert totals.total_cents >= 0


def test_tax_rounds_half_up_to_the_cent():
    # 1999 * 0.075 = 149.925
    assert tax_amount(1999, 0, TAX) == 150
    # 1990 * 0.075 = 149.25
    assert tax_amount(1990, 0, TAX) == 149


def test_exact_cash_payment_when_amount_omitted():
    totals = price_cart(_lines((1, 10000)), tax_rate=TAX, payment_method="cash")

    assert totals.total_cents == 10750
    assert totals.amount_paid_cents == 10750
    assert totals.change_due_cents == 0


def test_non_cash_payment_has_no_change():
    totals = price_cart(
        _lines((1, 10000)),
        tax_rate=TAX,
        payment_method="orange_money",
        amount_paid_cents=50000,
    )

    assert totals.amount_paid_cents is None
    assert totals.change_due_cents == 0


def test_percentage_above_hundred_is_clamped():
    totals = price_cart(
        _lines((1, 3000)),
        discount=Discount("percentage", Decimal("150")),
        tax_rate=TAX,
        payment_method="card",
    )

    assert totals.discount_amount_cents == 3000
    assert totals.tax_amount_cents == 0
    assert totals.total_cents == 0
    assert totals.discount_value == 10000


def test_flat_discount_clamped_to_subtotal():
    assert discount_amount(3000, Discount("flat", Decimal("5000"))) == 3000


def test_flat_discount_above_subtotal_rejected_when_not_clamped():
    with pytest.raises(NegativeTotal) as exc_info:
        price_cart(
            _lines((1, 3000)),
            discount=Discount("flat", Decimal("5000")),
            tax_rate=TAX,
            payment_method="card",
            clamp_flat=False,
        )

    assert exc_info.value.details["total_cents"] < 0


def test_zero_discount_is_stored_as_none():
    totals = price_cart(
        _lines((1, 1000)),
        discount=Discount("percentage", Decimal("0")),
        payment_method="card",
    )

    assert totals.discount_type == "none"
    assert totals.discount_value == 0


def test_empty_cart_rejected():
    with pytest.raises(EmptyCart):
        price_cart([], tax_rate=TAX)


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_rejected(quantity):
    with pytest.raises(InvalidQuantity) as exc_info:
        price_cart(_lines((quantity, 1000)), tax_rate=TAX)

    assert exc_info.value.code == "INVALID_QUANTITY"
    assert exc_info.value.details["quantity"] == quantity


def test_insufficient_cash_rejected_with_shortfall():
    with pytest.raises(InsufficientPayment) as exc_info:
        price_cart(
            _lines((1, 10000)),
            tax_rate=TAX,
            payment_method="cash",
            amount_paid_cents=10000,
        )

    assert exc_info.value.details["short_by_cents"] == 750


def test_unknown_payment_method_rejected():
    with pytest.raises(ValidationError) as exc_info:
        price_cart(_lines((1, 1000)), payment_method="bitcoin")

    assert exc_info.value.code == "INVALID_PAYMENT_METHOD"


def test_unknown_discount_type_rejected():
    with pytest.raises(ValidationError) as exc_info:
        Discount("bogo", Decimal("1"))

    assert exc_info.value.code == "INVALID_DISCOUNT"


def test_commit_request_freezes_lines():
    request = CommitSaleRequest(
        cashier_id=1,
        lines=[CartLineRequest(product_id=1, quantity=2)],
        payment_method="cash",
    )

    assert isinstance(request.lines, tuple)
    with pytest.raises(AttributeError):
        request.payment_method = "card"
