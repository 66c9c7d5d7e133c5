# Overview: Flask API routes for quoting and submitting orders; parses input and returns JSON responses.

# backend/portal/routes/orders.py
"""Order API routes. Business identity is passed explicitly in each request."""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service, usage_ledger_service
from ..services.cart_service import UnknownProductError
from ..services.order_service import OrderError, OrderNotFoundError, OrderPersistenceError
from ..validation import ValidationError, coerce_int, parse_cart_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api")


@orders_bp.post("/orders/quote")
def quote_order_route():
    """
    Promotion preview for a cart: free boxes, free product, cap usage.

    Body: {"business_number": "...", "cart": [{"product_id", "quantity"}]}
    """
    try:
        data = request.get_json() or {}
        business_number = data.get("business_number")
        if not business_number:
            return jsonify({"error": "business_number required"}), 400

        cart = parse_cart_payload(data.get("cart"))
        promotion = order_service.quote_for_business(business_number, cart)
        return jsonify({"promotion": promotion.to_dict()}), 200

    except UnknownProductError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to quote order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/orders")
def submit_order_route():
    """
    Submit an order.

    Body: {"business_id": 1, "delivery_address": "...", "cart": [...]}

    A 201 means the order exists. Usage-ledger or apron bookkeeping that
    failed afterwards is logged server-side and does not change the status.
    A 500 carries "order_saved": false only when the order write itself
    failed; any other 500 leaves the outcome unknown.
    """
    try:
        data = request.get_json() or {}
        if "business_id" not in data:
            return jsonify({"error": "business_id required"}), 400

        business_id = coerce_int(data["business_id"], "business_id")
        cart = parse_cart_payload(data.get("cart"))

        result = order_service.submit_order(business_id, cart, data.get("delivery_address") or "")
        return jsonify(result.to_dict()), 201

    except UnknownProductError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except OrderPersistenceError as e:
        return jsonify({"error": str(e), "details": e.details, "order_saved": False}), 500
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to submit order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/orders/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.get("/businesses/<int:business_id>/orders")
def list_business_orders_route(business_id: int):
    """Order history for one business, newest first."""
    try:
        orders = order_service.list_orders(business_id)
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.get("/usage/<business_number>")
def get_usage_route(business_number: str):
    """Free boxes used and remaining for a month (default: current month)."""
    try:
        year_month = request.args.get("month") or usage_ledger_service.current_year_month()
        summary = usage_ledger_service.usage_summary(
            business_number,
            year_month,
            current_app.config["MONTHLY_FREE_BOX_CAP"],
        )
        return jsonify(summary), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to read usage")
        return jsonify({"error": "Internal server error"}), 500
