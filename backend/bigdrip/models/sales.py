from __future__ import annotations

from ..extensions import db
from bigdrip.time_utils import to_utc_z, utcnow

DISCOUNT_NONE = "none"
DISCOUNT_FLAT = "flat"
DISCOUNT_PERCENTAGE = "percentage"

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_ORANGE_MONEY = "orange_money"
PAYMENT_MTN_MONEY = "mtn_money"
PAYMENT_BANK = "bank"

VALID_PAYMENT_METHODS = (
    PAYMENT_CASH,
    PAYMENT_CARD,
    PAYMENT_ORANGE_MONEY,
    PAYMENT_MTN_MONEY,
    PAYMENT_BANK,
)


class Sale(db.Model):
    """
    Committed sale record.

    Written once by the transaction coordinator (sales_service.commit_sale)
    and never updated afterwards; ORM listeners in db.immutability reject
    UPDATE and DELETE. Totals are always server-computed.

    discount_value holds the entered discount: basis points for percentage
    discounts (1000 == 10%), cents for flat discounts.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_sales_total_non_negative"),
        db.CheckConstraint(
            "total_amount_cents = subtotal_cents - discount_amount_cents + tax_amount_cents",
            name="ck_sales_total_balances",
        ),
        db.CheckConstraint(
            "discount_type IN ('none', 'flat', 'percentage')", name="ck_sales_discount_type"
        ),
        db.CheckConstraint(
            "payment_method IN ('cash', 'card', 'orange_money', 'mtn_money', 'bank')",
            name="ck_sales_payment_method",
        ),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "BD-000123"), unique and immutable
    sale_number = db.Column(db.String(32), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_type = db.Column(db.String(16), nullable=False, default=DISCOUNT_NONE)
    discount_value = db.Column(db.Integer, nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="completed")
    amount_paid_cents = db.Column(db.Integer, nullable=True)  # cash only
    change_due_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    cashier = db.relationship("User", backref=db.backref("sales", lazy=True))

    def __repr__(self) -> str:
        return f"<Sale id={self.id} sale_number={self.sale_number!r} total={self.total_amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "discount_amount_cents": self.discount_amount_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_amount_cents": self.tax_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "amount_paid_cents": self.amount_paid_cents,
            "change_due_cents": self.change_due_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """Individual line on a committed sale; created only by the commit."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint(
            "total_price_cents = quantity * unit_price_cents", name="ck_sale_items_total"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, order_by="SaleItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "created_at": to_utc_z(self.created_at),
        }


class SaleSequence(db.Model):
    """
    Named counter backing sale numbers.

    next_number is only ever advanced by a single UPDATE ... SET
    next_number = next_number + 1 inside the committing transaction.
    """
    __tablename__ = "sale_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
