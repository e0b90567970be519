# Overview: Flask API routes for the read-only POS product catalog.

from flask import Blueprint, jsonify, request

from ..decorators import require_actor
from ..services.catalog_service import CatalogFilter, get_product_catalog, lookup_product

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(name: str) -> bool:
    return request.args.get(name, "").strip().lower() in {"1", "true", "yes"}


@products_bp.get("")
@require_actor
def list_products_route():
    """
    List sellable products.

    Query params:
        q: search name, SKU or barcode
        category_id, brand_id: exact filters
        in_stock: 1 to hide products with no stock
        include_inactive: 1 to include deactivated products
        page, per_page: optional pagination (per_page max 100)
    """
    catalog_filter = CatalogFilter(
        search=request.args.get("q") or None,
        category_id=request.args.get("category_id", type=int),
        brand_id=request.args.get("brand_id", type=int),
        in_stock_only=_flag("in_stock"),
        include_inactive=_flag("include_inactive"),
    )
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    return jsonify(get_product_catalog(catalog_filter, page=page, per_page=per_page)), 200


@products_bp.get("/lookup")
@require_actor
def lookup_product_route():
    """Resolve a scanned barcode or typed SKU to a single active product."""
    code = (request.args.get("code") or "").strip()
    if not code:
        return jsonify({"error": "code is required", "code": "VALIDATION_ERROR"}), 400

    product = lookup_product(code)
    if product is None:
        return jsonify({"error": "Product not found", "code": "PRODUCT_NOT_FOUND"}), 404
    return jsonify({"product": product.to_dict()}), 200
