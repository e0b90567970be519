# Overview: Flask API routes for committing and reading sales.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor
from ..errors import SaleError
from ..services import sales_service
from ..validation import parse_commit_sale_request

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_actor
def commit_sale_route():
    """
    Commit a cart as a sale.

    Body: cashier_id (defaults to the actor), customer_id,
    lines [{product_id, quantity}], discount {type, value}, payment_method,
    amount_paid_cents (cash only), notes. Client totals are ignored.

    Returns 201 with the sale and its receipt data.
    """
    try:
        sale_request = parse_commit_sale_request(
            request.get_json(silent=True),
            default_cashier_id=g.current_user.id,
        )
        sale = sales_service.commit_sale(sale_request, actor_user_id=g.current_user.id)
        sale = sales_service.get_sale(sale.id)
        return jsonify({"sale": sale.to_dict(), "receipt": sales_service.build_receipt(sale)}), 201

    except SaleError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/quote")
@require_actor
def quote_sale_route():
    """Price a cart with server prices without committing anything."""
    try:
        sale_request = parse_commit_sale_request(
            request.get_json(silent=True),
            default_cashier_id=g.current_user.id,
        )
        totals = sales_service.quote_sale(sale_request)
        return jsonify({"totals": totals.to_dict()}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to quote sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_actor
def list_recent_sales_route():
    limit = request.args.get("limit", type=int)
    sales = sales_service.list_recent_sales(limit)
    return jsonify({
        "items": [
            {
                **sale.to_dict(),
                "customer_name": sale.customer.name if sale.customer else None,
                "cashier_name": sale.cashier.full_name if sale.cashier else None,
            }
            for sale in sales
        ],
        "count": len(sales),
    }), 200


@sales_bp.get("/<int:sale_id>")
@require_actor
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found", "code": "SALE_NOT_FOUND"}), 404
    return jsonify({"sale": sale.to_dict(), "receipt": sales_service.build_receipt(sale)}), 200


@sales_bp.get("/by-number/<sale_number>")
@require_actor
def get_sale_by_number_route(sale_number: str):
    sale = sales_service.get_sale_by_number(sale_number.strip().upper())
    if not sale:
        return jsonify({"error": "Sale not found", "code": "SALE_NOT_FOUND"}), 404
    return jsonify({"sale": sale.to_dict(), "receipt": sales_service.build_receipt(sale)}), 200
