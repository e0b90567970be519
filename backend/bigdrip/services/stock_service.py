# Overview: Stock ledger; the only writer of Product.stock_quantity.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStock, StockError, StockProductNotFound
from ..extensions import db
from ..models import Product
from . import alert_service
from .audit_service import ACTION_UPDATE, record_audit, snapshot
from .concurrency import begin_write_transaction, run_with_retry
"""
Stock Ledger Invariants (authoritative)

- stock_quantity >= 0 at all times (conditional UPDATE + DB check constraint).
- Check-and-decrement is ONE statement:
    UPDATE products SET stock_quantity = stock_quantity - :q
    WHERE id = :id AND stock_quantity >= :q
  A zero rowcount means insufficient stock; no separate read-then-write.
- Every successful mutation, inside the caller's transaction:
    1. writes one 'update' audit entry with old/new snapshots
    2. notifies the alert monitor with the new level
- The ledger never decides to restock on its own; restock() is called by
  catalog management.
"""

_STOCK_ATTRS = ["stock_quantity", "version_id", "updated_at"]


def get_stock_level(product_id: int) -> int:
    level = (
        db.session.query(Product.stock_quantity)
        .filter(Product.id == product_id)
        .scalar()
    )
    if level is None:
        raise StockProductNotFound(product_id)
    return int(level)


def _refreshed_product(product_id: int) -> Product | None:
    product = db.session.get(Product, product_id)
    if product is not None:
        db.session.refresh(product, attribute_names=_STOCK_ATTRS)
    return product


def _after_mutation(
    product: Product,
    *,
    old_stock: int,
    actor_user_id: int | None,
) -> None:
    new_values = snapshot(product)
    old_values = dict(new_values, stock_quantity=old_stock, version_id=product.version_id - 1)
    record_audit(
        actor_user_id=actor_user_id,
        action=ACTION_UPDATE,
        entity_type="product",
        entity_id=product.id,
        old_values=old_values,
        new_values=new_values,
    )
    alert_service.on_stock_changed(product, product.stock_quantity)


def reserve_and_decrement(
    product_id: int,
    quantity: int,
    *,
    actor_user_id: int | None,
) -> int:
    """
    Atomically take ``quantity`` units out of stock.

    Runs inside the caller's transaction (flushes, never commits) and returns
    the post-decrement stock level.

    Raises:
        InsufficientStock: quantity exceeds current stock (or product missing)
        StockError: quantity is not positive
    """
    if quantity <= 0:
        raise StockError("quantity must be positive")

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    product = _refreshed_product(product_id)

    if not result.rowcount:
        raise InsufficientStock(
            product_id=product_id,
            requested=quantity,
            available=product.stock_quantity if product else None,
            sku=product.sku if product else None,
            name=product.name if product else None,
        )

    new_stock = product.stock_quantity
    _after_mutation(product, old_stock=new_stock + quantity, actor_user_id=actor_user_id)
    return new_stock


def restock(
    product_id: int,
    quantity: int,
    *,
    actor_user_id: int | None,
) -> Product:
    """
    Add received units to stock and commit.

    Called by catalog management; resolves the product's low-stock alert
    when the new level is above its threshold.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise StockError("quantity must be a positive integer")

    def _op():
        begin_write_transaction()
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(
                stock_quantity=Product.stock_quantity + quantity,
                version_id=Product.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        if not result.rowcount:
            db.session.rollback()
            raise StockProductNotFound(product_id)

        product = _refreshed_product(product_id)
        _after_mutation(
            product,
            old_stock=product.stock_quantity - quantity,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        current_app.logger.info(
            "Restocked product %s by %s (now %s)", product.sku, quantity, product.stock_quantity
        )
        return product

    return run_with_retry(_op)


def set_low_stock_threshold(
    product_id: int,
    threshold: int,
    *,
    actor_user_id: int | None,
) -> Product:
    """
    Change a product's alert threshold and re-evaluate its alert immediately,
    so a raised threshold opens an alert and a lowered one resolves it.
    """
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise StockError("threshold must be a non-negative integer")

    def _op():
        begin_write_transaction()
        product = db.session.get(Product, product_id)
        if product is None:
            db.session.rollback()
            raise StockProductNotFound(product_id)

        old_values = snapshot(product)
        product.low_stock_threshold = threshold
        db.session.flush()

        record_audit(
            actor_user_id=actor_user_id,
            action=ACTION_UPDATE,
            entity_type="product",
            entity_id=product.id,
            old_values=old_values,
            new_values=snapshot(product),
        )
        alert_service.on_stock_changed(product, product.stock_quantity)
        db.session.commit()
        return product

    return run_with_retry(_op)
