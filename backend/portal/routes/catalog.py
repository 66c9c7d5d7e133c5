# Overview: Flask API routes for the product catalog and cart edits.

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service, cart_service
from ..validation import ValidationError, coerce_int, parse_cart_payload, cart_to_payload


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/products")
def list_products_route():
    products = catalog_service.list_products()
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@catalog_bp.post("/cart/lines")
def add_cart_line_route():
    """
    Apply a +/- delta to a cart snapshot and return the new cart with totals.

    The cart lives with the caller; this endpoint only transforms it.
    """
    try:
        data = request.get_json() or {}
        if "product_id" not in data or "delta" not in data:
            return jsonify({"error": "product_id and delta required"}), 400

        cart = parse_cart_payload(data.get("cart"))
        product_id = coerce_int(data["product_id"], "product_id")
        delta = coerce_int(data["delta"], "delta")

        catalog = catalog_service.load_catalog()
        cart_service.lookup(catalog, product_id)

        updated = cart_service.add_to_cart(cart, product_id, delta)
        totals = cart_service.compute_totals(updated, catalog)

        return jsonify({"cart": cart_to_payload(updated), "totals": totals.to_dict()}), 200

    except cart_service.UnknownProductError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update cart")
        return jsonify({"error": "Internal server error"}), 500
