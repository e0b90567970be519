"""
Sale transaction coordinator.

Turns an immutable cart (CommitSaleRequest) into a committed Sale with all of
its side effects, in one database transaction:

    BUILDING -> VALIDATING -> COMMITTING -> COMMITTED
                    |              |
                    +--------------+--> REJECTED

COMMITTING, in order:
    1. allocate the sale number
    2. insert the Sale with server-computed totals
    3. per line: stock ledger decrement (-> audit + alert monitor),
       then insert the SaleItem
    4. audit entries for the Sale and every SaleItem

Any failure rolls the whole transaction back: no Sale, no stock change, no
alert change, no audit entry. There is no automatic retry of business
rejections; transient DB conflicts are retried from the top.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import joinedload

from ..errors import EmptyCart, InvalidQuantity, SaleError, ValidationError
from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem, User
from . import sequence_service, stock_service
from .audit_service import record_create
from .cart_service import CartLine, CartTotals, CommitSaleRequest, price_cart
from .concurrency import begin_write_transaction, run_with_retry

STATE_BUILDING = "BUILDING"
STATE_VALIDATING = "VALIDATING"
STATE_COMMITTING = "COMMITTING"
STATE_COMMITTED = "COMMITTED"
STATE_REJECTED = "REJECTED"

_TRANSITIONS = {
    STATE_BUILDING: {STATE_VALIDATING},
    STATE_VALIDATING: {STATE_COMMITTING, STATE_REJECTED},
    STATE_COMMITTING: {STATE_COMMITTED, STATE_REJECTED},
    STATE_COMMITTED: set(),
    STATE_REJECTED: set(),
}


class CommitAttempt:
    """Tracks one commit_sale call through its states (logged, never persisted)."""

    def __init__(self):
        self.state = STATE_BUILDING
        self.history = [STATE_BUILDING]

    def restart(self) -> None:
        # A retried attempt starts over from the cart
        self.state = STATE_BUILDING
        self.history.append(STATE_BUILDING)

    def transition(self, new_state: str) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal sale state transition {self.state} -> {new_state}")
        current_app.logger.debug("Sale commit %s -> %s", self.state, new_state)
        self.state = new_state
        self.history.append(new_state)


# =============================================================================
# VALIDATING
# =============================================================================

def _price_request(request: CommitSaleRequest) -> CartTotals:
    """
    Validate the request and price it from server-side catalog prices.
    Read-only; client-supplied totals are never consulted.
    """
    # Shape checks first so a malformed cart never touches the database
    if not request.lines:
        raise EmptyCart()
    for line in request.lines:
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise InvalidQuantity(line.product_id, line.quantity)

    cashier = db.session.get(User, request.cashier_id) if request.cashier_id else None
    if cashier is None:
        raise ValidationError(
            "Cashier not found",
            details={"cashier_id": request.cashier_id},
            code="CASHIER_NOT_FOUND",
        )
    if not cashier.is_active:
        raise ValidationError(
            "Cashier account is inactive",
            details={"cashier_id": request.cashier_id},
            code="CASHIER_INACTIVE",
        )

    if request.customer_id is not None and db.session.get(Customer, request.customer_id) is None:
        raise ValidationError(
            "Customer not found",
            details={"customer_id": request.customer_id},
            code="CUSTOMER_NOT_FOUND",
        )

    product_ids = {line.product_id for line in request.lines}
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }

    priced: list[CartLine] = []
    for line in request.lines:
        product = products.get(line.product_id)
        if product is None:
            raise ValidationError(
                "Product not found",
                details={"product_id": line.product_id},
                code="PRODUCT_NOT_FOUND",
            )
        if not product.is_active:
            raise ValidationError(
                f"Product {product.name} is not available for sale",
                details={"product_id": product.id, "sku": product.sku},
                code="PRODUCT_INACTIVE",
            )
        priced.append(
            CartLine(
                product_id=product.id,
                quantity=line.quantity,
                unit_price_cents=product.selling_price_cents,
            )
        )

    return price_cart(
        priced,
        discount=request.discount,
        tax_rate=current_app.config["TAX_RATE"],
        payment_method=request.payment_method,
        amount_paid_cents=request.amount_paid_cents,
        clamp_flat=current_app.config.get("CLAMP_FLAT_DISCOUNT", True),
    )


def quote_sale(request: CommitSaleRequest) -> CartTotals:
    """Price a cart exactly as commit_sale would, without writing anything."""
    try:
        return _price_request(request)
    finally:
        db.session.rollback()


# =============================================================================
# COMMITTING
# =============================================================================

def _commit_locked(request: CommitSaleRequest, totals: CartTotals, actor_user_id: int) -> Sale:
    sale = Sale(
        sale_number=sequence_service.next_sale_number(),
        customer_id=request.customer_id,
        cashier_id=request.cashier_id,
        subtotal_cents=totals.subtotal_cents,
        discount_type=totals.discount_type,
        discount_value=totals.discount_value,
        discount_amount_cents=totals.discount_amount_cents,
        tax_rate_bps=totals.tax_rate_bps,
        tax_amount_cents=totals.tax_amount_cents,
        total_amount_cents=totals.total_cents,
        payment_method=request.payment_method,
        amount_paid_cents=totals.amount_paid_cents,
        change_due_cents=totals.change_due_cents,
        notes=(request.notes or "").strip() or None,
    )
    db.session.add(sale)
    db.session.flush()
    record_create(sale, "sale", actor_user_id)

    for line in totals.lines:
        stock_service.reserve_and_decrement(
            line.product_id,
            line.quantity,
            actor_user_id=actor_user_id,
        )
        item = SaleItem(
            sale_id=sale.id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            total_price_cents=line.total_price_cents,
        )
        db.session.add(item)
        db.session.flush()
        record_create(item, "sale_item", actor_user_id)

    return sale


def commit_sale(request: CommitSaleRequest, *, actor_user_id: int | None = None) -> Sale:
    """
    Validate and atomically persist a sale.

    Returns the committed Sale (sale number, server totals, change due).

    Raises:
        ValidationError (EmptyCart, InvalidQuantity, NegativeTotal,
            InsufficientPayment, ...): nothing was written
        InsufficientStock: a line exceeded stock; everything rolled back
        ConflictError / PersistenceError: transient DB failure after retries
    """
    actor_user_id = actor_user_id or request.cashier_id
    attempt = CommitAttempt()

    def _op():
        if attempt.state != STATE_BUILDING:
            attempt.restart()
        begin_write_transaction()
        try:
            attempt.transition(STATE_VALIDATING)
            totals = _price_request(request)

            attempt.transition(STATE_COMMITTING)
            sale = _commit_locked(request, totals, actor_user_id)
        except SaleError as exc:
            db.session.rollback()
            attempt.transition(STATE_REJECTED)
            current_app.logger.warning("Sale rejected (%s): %s %s", exc.code, exc, exc.details)
            raise
        except Exception:
            db.session.rollback()
            raise

        sale_number = sale.sale_number
        total_cents = sale.total_amount_cents
        db.session.commit()
        attempt.transition(STATE_COMMITTED)
        current_app.logger.info(
            "Sale %s committed: %d line(s), total_cents=%d, cashier=%s",
            sale_number, len(totals.lines), total_cents, request.cashier_id,
        )
        return sale

    return run_with_retry(_op)


# =============================================================================
# READS
# =============================================================================

def _with_receipt_relations(query):
    return query.options(
        joinedload(Sale.customer),
        joinedload(Sale.cashier),
        joinedload(Sale.items).joinedload(SaleItem.product),
    )


def get_sale(sale_id: int) -> Sale | None:
    return _with_receipt_relations(db.session.query(Sale)).filter(Sale.id == sale_id).first()


def get_sale_by_number(sale_number: str) -> Sale | None:
    return (
        _with_receipt_relations(db.session.query(Sale))
        .filter(Sale.sale_number == sale_number)
        .first()
    )


def list_recent_sales(limit: int | None = None) -> list[Sale]:
    if limit is None:
        limit = current_app.config.get("RECENT_SALES_LIMIT", 5)
    limit = max(1, min(limit, 100))
    return (
        db.session.query(Sale)
        .options(joinedload(Sale.customer), joinedload(Sale.cashier))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def build_receipt(sale: Sale) -> dict:
    """Structured receipt data; rendering (HTML/print) happens elsewhere."""
    customer = sale.customer
    cashier = sale.cashier
    return {
        **sale.to_dict(),
        "customer": {"name": customer.name, "phone": customer.phone} if customer else None,
        "cashier": {"id": cashier.id, "full_name": cashier.full_name} if cashier else None,
        "items": [
            {
                **item.to_dict(),
                "product": {"name": item.product.name, "sku": item.product.sku},
            }
            for item in sale.items
        ],
    }
