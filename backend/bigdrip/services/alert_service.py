# Overview: Low-stock alert monitor; derives alerts from stock level changes.

"""
Alert Monitor

Fed by the stock ledger after every successful stock mutation, inside the
same transaction as the mutation.

STATE RULES:
- new_stock <= threshold: refresh the product's active alert, or open a new
  unacknowledged one when none is active.
- new_stock > threshold: resolve every unresolved alert of the product,
  acknowledged ones included (resolved_at = now). Stock
  climbing back above the threshold is what clears an alert; acknowledgment
  only records that staff have seen it.
- acknowledge_alert() is idempotent.

ACTIVE = not acknowledged and not resolved; at most one per product
(uq_low_stock_alerts_active_product).
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import joinedload

from ..errors import AlertNotFound
from ..extensions import db
from ..models import LowStockAlert, Product
from bigdrip.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


def _active_alert_query(product_id: int):
    return db.session.query(LowStockAlert).filter(
        LowStockAlert.product_id == product_id,
        LowStockAlert.is_acknowledged.is_(False),
        LowStockAlert.resolved_at.is_(None),
    )


def get_active_alert(product_id: int, *, lock: bool = False) -> LowStockAlert | None:
    query = _active_alert_query(product_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def on_stock_changed(product: Product, new_stock: int) -> LowStockAlert | None:
    """
    React to a product's new stock level.

    Returns the alert that was created, refreshed or resolved, or None when
    nothing changed. Flushes; never commits.
    """
    threshold = product.low_stock_threshold
    alert = get_active_alert(product.id, lock=True)

    if new_stock <= threshold:
        if alert is None:
            alert = LowStockAlert(
                product_id=product.id,
                current_stock=new_stock,
                threshold=threshold,
                is_acknowledged=False,
            )
            db.session.add(alert)
            current_app.logger.info(
                "Low stock alert opened for product %s (%s <= %s)",
                product.sku, new_stock, threshold,
            )
        else:
            alert.current_stock = new_stock
            alert.threshold = threshold
        db.session.flush()
        return alert

    # Acknowledged alerts stay open until stock recovers too
    unresolved = (
        db.session.query(LowStockAlert)
        .filter(
            LowStockAlert.product_id == product.id,
            LowStockAlert.resolved_at.is_(None),
        )
        .order_by(LowStockAlert.id.desc())
        .all()
    )
    if not unresolved:
        return None

    now = utcnow()
    for stale in unresolved:
        stale.current_stock = new_stock
        stale.threshold = threshold
        stale.resolved_at = now
        current_app.logger.info(
            "Low stock alert %s resolved for product %s (%s > %s)",
            stale.id, product.sku, new_stock, threshold,
        )
    db.session.flush()
    return alert if alert is not None else unresolved[0]


def acknowledge_alert(alert_id: int, actor_user_id: int) -> LowStockAlert:
    """
    Mark an alert as seen.

    Idempotent: acknowledging an already-acknowledged alert returns it
    unchanged (original actor and timestamp are kept).
    """
    def _op():
        alert = lock_for_update(
            db.session.query(LowStockAlert).filter_by(id=alert_id)
        ).first()
        if alert is None:
            raise AlertNotFound(alert_id)

        if alert.is_acknowledged:
            return alert

        alert.is_acknowledged = True
        alert.acknowledged_by_user_id = actor_user_id
        alert.acknowledged_at = utcnow()
        db.session.commit()
        current_app.logger.info("Low stock alert %s acknowledged by user %s", alert_id, actor_user_id)
        return alert

    return run_with_retry(_op)


def list_unacknowledged_alerts() -> list[LowStockAlert]:
    """Active alerts, newest first, with their products loaded."""
    return (
        db.session.query(LowStockAlert)
        .options(joinedload(LowStockAlert.product))
        .filter(
            LowStockAlert.is_acknowledged.is_(False),
            LowStockAlert.resolved_at.is_(None),
        )
        .order_by(LowStockAlert.created_at.desc(), LowStockAlert.id.desc())
        .all()
    )


def list_alerts(*, include_resolved: bool = False, limit: int = 200) -> list[LowStockAlert]:
    """Alert history (acknowledged included), newest first."""
    q = db.session.query(LowStockAlert).options(joinedload(LowStockAlert.product))
    if not include_resolved:
        q = q.filter(LowStockAlert.resolved_at.is_(None))
    limit = max(1, min(limit, 500))
    return (
        q.order_by(LowStockAlert.created_at.desc(), LowStockAlert.id.desc())
        .limit(limit)
        .all()
    )


def count_unacknowledged_alerts() -> int:
    return (
        db.session.query(LowStockAlert)
        .filter(
            LowStockAlert.is_acknowledged.is_(False),
            LowStockAlert.resolved_at.is_(None),
        )
        .count()
    )
