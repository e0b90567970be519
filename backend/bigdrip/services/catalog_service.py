# backend/bigdrip/services/catalog_service.py
"""
Read-only product catalog for the POS.

Feeds the cart with authoritative unit prices. Writes to products happen
in catalog management (external) and, for stock, in stock_service.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_

from ..extensions import db
from ..models import Product


@dataclass(frozen=True)
class CatalogFilter:
    search: str | None = None
    category_id: int | None = None
    brand_id: int | None = None
    in_stock_only: bool = False
    include_inactive: bool = False


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_product_catalog(
    catalog_filter: CatalogFilter | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional search and pagination.

    search matches name, SKU or barcode (case-insensitive substring).
    Inactive products are hidden unless include_inactive is set.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    f = catalog_filter or CatalogFilter()

    base_query = db.session.query(Product)
    if not f.include_inactive:
        base_query = base_query.filter(Product.is_active.is_(True))
    if f.in_stock_only:
        base_query = base_query.filter(Product.stock_quantity > 0)
    if f.category_id is not None:
        base_query = base_query.filter(Product.category_id == f.category_id)
    if f.brand_id is not None:
        base_query = base_query.filter(Product.brand_id == f.brand_id)
    if f.search:
        pattern = f"%{_escape_like(f.search.strip())}%"
        base_query = base_query.filter(
            or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.sku.ilike(pattern, escape="\\"),
                Product.barcode.ilike(pattern, escape="\\"),
            )
        )
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def lookup_product(code: str) -> Product | None:
    """Resolve a scanned code: exact barcode first, then exact SKU. Active products only."""
    code = (code or "").strip()
    if not code:
        return None

    base = db.session.query(Product).filter(Product.is_active.is_(True))
    product = base.filter(Product.barcode == code).first()
    if product is None:
        product = base.filter(Product.sku == code).first()
    return product
