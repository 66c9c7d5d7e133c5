# Overview: Flask API routes for the manager workflow (verification, aprons, logistics, settlement).

from flask import Blueprint, request, jsonify, current_app

from ..services import entitlement_service, order_service, verification_service
from ..services.entitlement_service import EntitlementError, EntitlementNotFoundError
from ..services.order_service import OrderError, OrderNotFoundError
from ..services.verification_service import VerificationError
from ..validation import ValidationError, coerce_int


manager_bp = Blueprint("manager", __name__, url_prefix="/api/manager")


@manager_bp.post("/orders/<int:order_id>/verification")
def verify_business_route(order_id: int):
    """
    Approve the ordering business as existing or new, or block it.

    Body: {"decision": "existing" | "new" | "block"}
    """
    try:
        data = request.get_json() or {}
        decision = data.get("decision")
        if not decision:
            return jsonify({"error": "decision required"}), 400

        result = verification_service.verify_business(order_id, decision)
        return jsonify(result.to_dict()), 200

    except (VerificationError, EntitlementError) as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to verify business")
        return jsonify({"error": "Internal server error"}), 500


@manager_bp.get("/verifications")
def list_pending_verifications_route():
    """Orders from unreviewed businesses awaiting an existing / new / block decision."""
    orders = verification_service.list_pending_verifications()
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@manager_bp.get("/receivables")
def receivables_route():
    """Unpaid, non-cancelled orders grouped by business, highest debt first."""
    rows = order_service.receivables_by_business(request.args.get("search") or None)
    return jsonify({
        "items": rows,
        "count": len(rows),
        "total_unpaid": sum(r["total_amount"] for r in rows),
        "order_count": sum(r["order_count"] for r in rows),
    }), 200


@manager_bp.post("/orders/status")
def update_order_status_route():
    """Body: {"order_ids": [1, 2], "status": "confirmed" | "delivered"}"""
    try:
        data = request.get_json() or {}
        raw_ids = data.get("order_ids") or []
        if not isinstance(raw_ids, list):
            return jsonify({"error": "order_ids must be a list"}), 400
        order_ids = [coerce_int(v, "order_ids[]") for v in raw_ids]

        result = order_service.update_status_batch(order_ids, data.get("status"))
        return jsonify(result), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@manager_bp.post("/orders/<int:order_id>/settle")
def settle_order_route(order_id: int):
    try:
        order = order_service.settle_order(order_id)
        return jsonify({"order": order.to_dict()}), 200

    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to settle order")
        return jsonify({"error": "Internal server error"}), 500


@manager_bp.get("/aprons")
def list_aprons_route():
    status = request.args.get("status")
    items = entitlement_service.list_entitlements(status)
    return jsonify({"items": [a.to_dict() for a in items], "count": len(items)}), 200


@manager_bp.post("/aprons/<int:entitlement_id>/complete")
def complete_apron_route(entitlement_id: int):
    """Body: {"delivery_method": "driver" | "staff"}"""
    try:
        data = request.get_json() or {}
        entitlement = entitlement_service.complete_entitlement(entitlement_id, data.get("delivery_method"))
        return jsonify({"apron_entitlement": entitlement.to_dict()}), 200

    except EntitlementNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except EntitlementError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to complete apron entitlement")
        return jsonify({"error": "Internal server error"}), 500
