# Overview: Flask API routes for stock changes outside of sales.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor, require_role
from ..errors import SaleError, StockError
from ..models.users import ROLE_ADMIN, ROLE_STAFF
from ..services import stock_service
from ..validation import check_quantity_bound, coerce_int

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/restock")
@require_actor
@require_role(ROLE_ADMIN, ROLE_STAFF)
def restock_route():
    """
    Add received units to a product.

    Body: product_id, quantity (> 0).
    Resolves the product's low-stock alert when stock rises above threshold.
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = coerce_int("product_id", data.get("product_id"))
        quantity = check_quantity_bound("quantity", coerce_int("quantity", data.get("quantity")))

        product = stock_service.restock(product_id, quantity, actor_user_id=g.current_user.id)
        return jsonify({"product": product.to_dict()}), 200

    except (StockError, SaleError) as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/<int:product_id>/threshold")
@require_actor
@require_role(ROLE_ADMIN, ROLE_STAFF)
def set_threshold_route(product_id: int):
    """Body: low_stock_threshold (>= 0). Re-evaluates the product's alert."""
    try:
        data = request.get_json(silent=True) or {}
        threshold = coerce_int("low_stock_threshold", data.get("low_stock_threshold"))

        product = stock_service.set_low_stock_threshold(
            product_id, threshold, actor_user_id=g.current_user.id
        )
        return jsonify({"product": product.to_dict()}), 200

    except (StockError, SaleError) as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update low stock threshold")
        return jsonify({"error": "Internal server error"}), 500
