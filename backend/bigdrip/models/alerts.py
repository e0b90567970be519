from __future__ import annotations

from ..extensions import db
from bigdrip.time_utils import to_utc_z, utcnow


class LowStockAlert(db.Model):
    """
    Low-stock notification for a product.

    An alert is ACTIVE while it is neither acknowledged nor resolved. The
    partial unique index keeps at most one active alert per product; older
    acknowledged or resolved rows stay as history.

    Written only by alert_service.
    """
    __tablename__ = "low_stock_alerts"
    __table_args__ = (
        db.Index(
            "uq_low_stock_alerts_active_product",
            "product_id",
            unique=True,
            sqlite_where=db.text("is_acknowledged = 0 AND resolved_at IS NULL"),
            postgresql_where=db.text("is_acknowledged = false AND resolved_at IS NULL"),
        ),
        db.Index("ix_low_stock_alerts_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    current_stock = db.Column(db.Integer, nullable=False)
    threshold = db.Column(db.Integer, nullable=False)

    is_acknowledged = db.Column(db.Boolean, nullable=False, default=False)
    acknowledged_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Set when stock climbs back above the threshold
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", backref=db.backref("low_stock_alerts", lazy=True))
    acknowledged_by = db.relationship("User", foreign_keys=[acknowledged_by_user_id])

    @property
    def is_active(self) -> bool:
        return not self.is_acknowledged and self.resolved_at is None

    def to_dict(self) -> dict:
        product = self.product
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {"name": product.name, "sku": product.sku} if product else None,
            "current_stock": self.current_stock,
            "threshold": self.threshold,
            "is_acknowledged": self.is_acknowledged,
            "acknowledged_by_user_id": self.acknowledged_by_user_id,
            "acknowledged_at": to_utc_z(self.acknowledged_at) if self.acknowledged_at else None,
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
