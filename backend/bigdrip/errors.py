"""
Typed failures raised by the sale transaction engine.

Every error carries a machine-readable ``code`` and a ``details`` dict so the
POS client can render a specific message ("insufficient stock for X") instead
of a generic failure. Routes map each family to an HTTP status.
"""

from __future__ import annotations


class SaleError(Exception):
    """Base class for sale engine errors."""

    code = "SALE_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None, *, code: str | None = None):
        super().__init__(message)
        self.details = details or {}
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


# =============================================================================
# VALIDATION (rejected before any write)
# =============================================================================

class ValidationError(SaleError):
    """Input problem; the client corrects the cart and resubmits."""

    code = "VALIDATION_ERROR"
    http_status = 400


class EmptyCart(ValidationError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cart has no lines")


class InvalidQuantity(ValidationError):
    code = "INVALID_QUANTITY"

    def __init__(self, product_id, quantity):
        super().__init__(
            "Line quantity must be a positive integer",
            details={"product_id": product_id, "quantity": quantity},
        )


class NegativeTotal(ValidationError):
    code = "NEGATIVE_TOTAL"

    def __init__(self, total_cents: int):
        super().__init__("Total cannot be negative", details={"total_cents": total_cents})


class InsufficientPayment(ValidationError):
    code = "INSUFFICIENT_PAYMENT"

    def __init__(self, amount_paid_cents: int, total_cents: int):
        super().__init__(
            "Insufficient payment amount",
            details={
                "amount_paid_cents": amount_paid_cents,
                "total_cents": total_cents,
                "short_by_cents": total_cents - amount_paid_cents,
            },
        )


# =============================================================================
# COMMIT-TIME FAILURES
# =============================================================================

class InsufficientStock(SaleError):
    """Requested quantity exceeds the product's stock; the commit rolls back."""

    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(
        self,
        *,
        product_id: int,
        requested: int,
        available: int | None,
        sku: str | None = None,
        name: str | None = None,
    ):
        label = name or sku or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}",
            details={
                "product_id": product_id,
                "sku": sku,
                "name": name,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ConflictError(SaleError):
    """Concurrent modification or sale-number collision; safe to retry."""

    code = "CONFLICT"
    http_status = 409


class PersistenceError(SaleError):
    """Underlying store unavailable; surfaced as a retryable failure."""

    code = "PERSISTENCE_ERROR"
    http_status = 503


# =============================================================================
# ALERTS
# =============================================================================

class AlertError(Exception):
    """Raised for low-stock alert operation errors."""

    code = "ALERT_ERROR"
    http_status = 400


class AlertNotFound(AlertError):
    code = "ALERT_NOT_FOUND"
    http_status = 404

    def __init__(self, alert_id: int):
        super().__init__(f"Alert {alert_id} not found")
        self.alert_id = alert_id


class StockError(ValueError):
    """Raised for invalid stock ledger requests outside a sale (e.g. restock)."""

    code = "STOCK_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class StockProductNotFound(StockError):
    code = "PRODUCT_NOT_FOUND"
    http_status = 404

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})
        self.product_id = product_id
