# backend/portal/routes/system.py
"""
System health endpoint.

Reports database reachability plus the promotion settings the running
instance was configured with, for deployment debugging.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Product, Order, MonthlyFreeBoxUsage
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).filter_by(is_active=True).count()
        order_count = db.session.query(Order).count()
        ledger_rows = db.session.query(MonthlyFreeBoxUsage).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_products": product_count,
                "orders": order_count,
                "usage_ledger_rows": ledger_rows,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    config = current_app.config
    body = {
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
        "promotion": {
            "free_box_trigger_boxes": config["FREE_BOX_TRIGGER_BOXES"],
            "monthly_free_box_cap": config["MONTHLY_FREE_BOX_CAP"],
            "first_order_apron_quantity": config["FIRST_ORDER_APRON_QUANTITY"],
            "business_timezone": config["BUSINESS_TIMEZONE"],
        },
    }
    return jsonify(body), 200 if database["status"] == "healthy" else 503
