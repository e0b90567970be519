"""
Request body parsing for the sale endpoints.

Turns untrusted JSON into the immutable CommitSaleRequest handed to the
transaction coordinator. Only shape and type are checked here; business
rules (stock, prices, payment) live in the services.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .services.cart_service import (
    NO_DISCOUNT,
    CartLineRequest,
    CommitSaleRequest,
    Discount,
)

# 9,999,999.99 in cents; guards against nonsensical amounts and overflow
MAX_AMOUNT_CENTS = 999_999_999

# Per line and per restock
MAX_QUANTITY = 99_999

# SQLite INTEGER is a signed 64-bit value
_MAX_DB_INTEGER = 2**63 - 1

_COMMIT_FIELDS = {
    "cashier_id",
    "customer_id",
    "lines",
    "discount",
    "payment_method",
    "amount_paid_cents",
    "notes",
}

# Amounts the POS screen computes for display; the server always recomputes them
_CLIENT_TOTAL_FIELDS = {
    "subtotal_cents",
    "discount_amount_cents",
    "tax_amount_cents",
    "total_amount_cents",
    "change_due_cents",
}

_LINE_FIELDS = {"product_id", "quantity"}
_CLIENT_LINE_PRICE_FIELDS = {"unit_price_cents", "total_price_cents"}


def coerce_int(name: str, value: Any, *, allow_none: bool = False) -> int | None:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{name} is required", details={"field": name})

    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer", details={"field": name})
        if "e" in stripped.lower():
            raise ValidationError(
                f"{name} must be a plain integer (scientific notation not allowed)",
                details={"field": name},
            )
        if "." in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)", details={"field": name})
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer", details={"field": name})
    elif isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal", details={"field": name})
    else:
        raise ValidationError(f"{name} must be an integer", details={"field": name})

    if abs(result) > _MAX_DB_INTEGER:
        raise ValidationError(f"{name} is out of range", details={"field": name})
    return result


def check_quantity_bound(name: str, quantity: int) -> int:
    if quantity > MAX_QUANTITY:
        raise ValidationError(
            f"{name} cannot exceed {MAX_QUANTITY}",
            details={"field": name, "max": MAX_QUANTITY},
            code="INVALID_QUANTITY",
        )
    return quantity


def _parse_discount(raw: Any) -> Discount:
    if raw is None:
        return NO_DISCOUNT
    if not isinstance(raw, dict):
        raise ValidationError("discount must be an object with type and value", code="INVALID_DISCOUNT")

    discount_type = raw.get("type") or "none"
    value = raw.get("value", 0)
    if value is None:
        value = 0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError("discount value must be a number", code="INVALID_DISCOUNT")
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("discount value must be a number", code="INVALID_DISCOUNT")
    if not parsed.is_finite() or parsed < 0:
        raise ValidationError(
            "discount value must be a non-negative number",
            details={"value": str(value)},
            code="INVALID_DISCOUNT",
        )
    if parsed > MAX_AMOUNT_CENTS:
        raise ValidationError(
            f"discount value cannot exceed {MAX_AMOUNT_CENTS}",
            details={"value": str(value)},
            code="INVALID_DISCOUNT",
        )
    return Discount(type=str(discount_type), value=parsed)


def _parse_lines(raw: Any) -> list[CartLineRequest]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("lines must be a list", details={"field": "lines"})

    lines = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError("each line must be an object", details={"line": index})
        for key in item.keys():
            if key not in _LINE_FIELDS and key not in _CLIENT_LINE_PRICE_FIELDS:
                raise ValidationError(f"Field not allowed: {key}", details={"field": key, "line": index})
        product_id = coerce_int("product_id", item.get("product_id"))
        # Quantity sign is a business rule (InvalidQuantity), only the type is checked here
        quantity = check_quantity_bound("quantity", coerce_int("quantity", item.get("quantity")))
        lines.append(CartLineRequest(product_id=product_id, quantity=quantity))
    return lines


def parse_commit_sale_request(payload: Any, *, default_cashier_id: int) -> CommitSaleRequest:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for key in payload.keys():
        if key not in _COMMIT_FIELDS and key not in _CLIENT_TOTAL_FIELDS:
            raise ValidationError(f"Field not allowed: {key}", details={"field": key})

    amount_paid = coerce_int("amount_paid_cents", payload.get("amount_paid_cents"), allow_none=True)
    if amount_paid is not None and amount_paid > MAX_AMOUNT_CENTS:
        raise ValidationError(
            f"amount_paid_cents cannot exceed {MAX_AMOUNT_CENTS}",
            details={"amount_paid_cents": amount_paid},
        )

    payment_method = payload.get("payment_method")
    if not payment_method or not isinstance(payment_method, str):
        raise ValidationError("payment_method is required", code="INVALID_PAYMENT_METHOD")

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string", details={"field": "notes"})

    cashier_id = coerce_int("cashier_id", payload.get("cashier_id"), allow_none=True)

    return CommitSaleRequest(
        cashier_id=cashier_id if cashier_id is not None else default_cashier_id,
        customer_id=coerce_int("customer_id", payload.get("customer_id"), allow_none=True),
        lines=_parse_lines(payload.get("lines")),
        discount=_parse_discount(payload.get("discount")),
        payment_method=payment_method.strip(),
        amount_paid_cents=amount_paid,
        notes=notes,
    )
