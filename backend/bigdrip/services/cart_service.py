"""
Cart calculator: pure arithmetic over cart lines, discount and tax.

No database access and no Flask context; every function here is safe to call
from anywhere (including the client-facing preview of a cart). All money is
integer cents; rates and percentages are Decimals; rounding is half-up to
the cent.

The cart itself is an explicit immutable value (CommitSaleRequest) handed to
sales_service.commit_sale, never ambient mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from ..errors import EmptyCart, InsufficientPayment, InvalidQuantity, NegativeTotal, ValidationError
from ..models.sales import (
    DISCOUNT_FLAT,
    DISCOUNT_NONE,
    DISCOUNT_PERCENTAGE,
    PAYMENT_CASH,
    VALID_PAYMENT_METHODS,
)

VALID_DISCOUNT_TYPES = (DISCOUNT_NONE, DISCOUNT_FLAT, DISCOUNT_PERCENTAGE)

_HUNDRED = Decimal("100")
_BPS = Decimal("10000")


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Discount:
    """
    Entered discount.

    value is a percent (10 == 10%) for percentage discounts and an amount in
    cents for flat discounts.
    """
    type: str = DISCOUNT_NONE
    value: Decimal = Decimal("0")

    def __post_init__(self):
        if self.type not in VALID_DISCOUNT_TYPES:
            raise ValidationError(
                f"Invalid discount type: {self.type}",
                details={"allowed": list(VALID_DISCOUNT_TYPES)},
                code="INVALID_DISCOUNT",
            )
        if not isinstance(self.value, Decimal):
            object.__setattr__(self, "value", Decimal(str(self.value)))

    @property
    def is_none(self) -> bool:
        return self.type == DISCOUNT_NONE or self.value == 0

    @property
    def stored_value(self) -> int:
        """Integer form persisted on Sale.discount_value (bps or cents)."""
        if self.type == DISCOUNT_PERCENTAGE:
            return _round_cents(_clamp_percent(self.value) * _HUNDRED)
        if self.type == DISCOUNT_FLAT:
            return max(0, _round_cents(self.value))
        return 0


NO_DISCOUNT = Discount()


@dataclass(frozen=True)
class CartLine:
    """A priced cart line; unit_price_cents is the server-side snapshot."""
    product_id: int
    quantity: int
    unit_price_cents: int

    @property
    def total_price_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass(frozen=True)
class CartLineRequest:
    """A line as submitted by the POS client (no prices)."""
    product_id: int
    quantity: int


@dataclass(frozen=True)
class CommitSaleRequest:
    cashier_id: int
    lines: tuple[CartLineRequest, ...]
    payment_method: str
    customer_id: Optional[int] = None
    discount: Discount = NO_DISCOUNT
    amount_paid_cents: Optional[int] = None
    notes: Optional[str] = None

    def __post_init__(self):
        # Accept any iterable of lines but freeze it
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int
    discount_type: str
    discount_value: int
    discount_amount_cents: int
    tax_rate_bps: int
    tax_amount_cents: int
    total_cents: int
    amount_paid_cents: Optional[int]
    change_due_cents: int
    lines: tuple[CartLine, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "discount_amount_cents": self.discount_amount_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_amount_cents": self.tax_amount_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "change_due_cents": self.change_due_cents,
        }


def _clamp_percent(value: Decimal) -> Decimal:
    return min(max(value, Decimal("0")), _HUNDRED)


def subtotal(lines: Iterable[CartLine]) -> int:
    return sum(line.total_price_cents for line in lines)


def discount_amount(subtotal_cents: int, discount: Discount, *, clamp_flat: bool = True) -> int:
    """
    Percentage: subtotal * value / 100 with value clamped to [0, 100].
    Flat: value clamped at 0, and to the subtotal when clamp_flat is set.
    """
    if discount.type == DISCOUNT_PERCENTAGE:
        return _round_cents(Decimal(subtotal_cents) * _clamp_percent(discount.value) / _HUNDRED)
    if discount.type == DISCOUNT_FLAT:
        amount = max(0, _round_cents(discount.value))
        if clamp_flat:
            amount = min(amount, max(subtotal_cents, 0))
        return amount
    return 0


def tax_amount(subtotal_cents: int, discount_cents: int, rate: Decimal) -> int:
    return _round_cents(Decimal(subtotal_cents - discount_cents) * rate)


def total(subtotal_cents: int, discount_cents: int, tax_cents: int) -> int:
    return subtotal_cents - discount_cents + tax_cents


def change_due(amount_paid_cents: int, total_cents: int) -> int:
    return max(0, amount_paid_cents - total_cents)


def rate_to_bps(rate: Decimal) -> int:
    return _round_cents(rate * _BPS)


def price_cart(
    lines: Iterable[CartLine],
    *,
    discount: Discount = NO_DISCOUNT,
    tax_rate: Decimal = Decimal("0"),
    payment_method: str = PAYMENT_CASH,
    amount_paid_cents: Optional[int] = None,
    clamp_flat: bool = True,
) -> CartTotals:
    """
    Compute the full set of totals for a priced cart.

    Raises EmptyCart, InvalidQuantity, NegativeTotal, InsufficientPayment,
    or ValidationError (unknown payment method, negative amount paid).

    Cash: an omitted amount paid means exact payment (change 0).
    Non-cash: amount paid is not collected and change is 0.
    """
    lines = tuple(lines)
    if not lines:
        raise EmptyCart()

    for line in lines:
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise InvalidQuantity(line.product_id, line.quantity)

    if payment_method not in VALID_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method: {payment_method}",
            details={"allowed": list(VALID_PAYMENT_METHODS)},
            code="INVALID_PAYMENT_METHOD",
        )

    sub = subtotal(lines)
    disc = discount_amount(sub, discount, clamp_flat=clamp_flat)
    tax = tax_amount(sub, disc, tax_rate)
    grand_total = total(sub, disc, tax)

    if grand_total < 0:
        raise NegativeTotal(grand_total)

    paid: Optional[int] = None
    change = 0
    if payment_method == PAYMENT_CASH:
        if amount_paid_cents is None:
            paid = grand_total
        else:
            if amount_paid_cents < 0:
                raise ValidationError(
                    "amount_paid_cents cannot be negative",
                    details={"amount_paid_cents": amount_paid_cents},
                )
            if amount_paid_cents < grand_total:
                raise InsufficientPayment(amount_paid_cents, grand_total)
            paid = amount_paid_cents
        change = change_due(paid, grand_total)

    return CartTotals(
        subtotal_cents=sub,
        discount_type=DISCOUNT_NONE if discount.is_none else discount.type,
        discount_value=0 if discount.is_none else discount.stored_value,
        discount_amount_cents=disc,
        tax_rate_bps=rate_to_bps(tax_rate),
        tax_amount_cents=tax,
        total_cents=grand_total,
        amount_paid_cents=paid,
        change_due_cents=change,
        lines=lines,
    )
