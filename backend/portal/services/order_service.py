# Overview: Order submission and fulfillment; sequences the ledger and apron side effects around the order write.

"""
Order Service

SUBMISSION SEQUENCE:
1. Read this month's usage (fail-open) and quote the cart.
2. Decide the apron grant (before the order exists).
3. Persist the order. This is the only step whose failure fails the call.
4. Record granted free boxes in the usage ledger (best effort).
5. Create the apron entitlement if decided in step 2 (best effort).

Steps 4 and 5 never roll back or fail an order that was already saved.
Their failures are logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ApronEntitlement, Order, OrderItem
from ..models.orders import (
    ORDER_PENDING,
    ORDER_CONFIRMED,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
    PAYMENT_PAID,
    PAYMENT_UNPAID,
)
from ..models.entitlements import SOURCE_FIRST_ORDER
from ..time_utils import utcnow
from ..validation import ValidationError
from . import business_service, entitlement_service, usage_ledger_service
from .cart_service import Cart, Catalog, lookup
from .catalog_service import load_catalog
from .concurrency import lock_for_update, run_with_retry
from .promotion_service import PromotionQuote, quote


ALLOWED_TRANSITIONS = {
    ORDER_PENDING: {ORDER_CONFIRMED, ORDER_DELIVERED, ORDER_CANCELLED},
    ORDER_CONFIRMED: {ORDER_DELIVERED, ORDER_CANCELLED},
    ORDER_DELIVERED: set(),
    ORDER_CANCELLED: set(),
}

# Statuses a manager may set in bulk from the logistics screen
BATCH_STATUSES = {ORDER_CONFIRMED, ORDER_DELIVERED}


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderError):
    pass


class OrderPersistenceError(OrderError):
    """The order write itself failed; nothing was recorded."""


@dataclass
class SubmissionResult:
    order: Order
    quote: PromotionQuote
    entitlement: Optional[ApronEntitlement] = None

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "promotion": self.quote.to_dict(),
            "apron_entitlement": self.entitlement.to_dict() if self.entitlement else None,
        }


def quote_for_business(business_number: str, cart: Cart, now: datetime | None = None) -> PromotionQuote:
    """Promotion quote for the order screen; uses the live catalog and this month's usage."""
    config = current_app.config
    catalog = load_catalog()
    year_month = usage_ledger_service.current_year_month(now)
    used = usage_ledger_service.get_used_or_zero(business_number, year_month)
    return quote(
        cart,
        catalog,
        used,
        cap=config["MONTHLY_FREE_BOX_CAP"],
        trigger_boxes=config["FREE_BOX_TRIGGER_BOXES"],
    )


def _build_items(cart: Cart, catalog: Catalog, promotion: PromotionQuote) -> list[OrderItem]:
    items = []
    for product_id, quantity in cart.items():
        product = lookup(catalog, product_id)
        items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            category=product.category,
            quantity=quantity,
            unit_price=product.price,
            line_total=product.price * quantity,
            is_free=False,
        ))

    free_line = promotion.free_line
    if free_line is not None:
        items.append(OrderItem(
            product_id=free_line.product.id,
            product_name=free_line.product.name,
            category=free_line.product.category,
            quantity=free_line.quantity,
            unit_price=0,
            line_total=0,
            is_free=True,
        ))
    return items


def _decide_apron(business_id: int) -> bool:
    try:
        return entitlement_service.should_grant(business_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Apron eligibility check failed for business %s; skipping grant",
            business_id, exc_info=True,
        )
        return False


def _record_free_boxes(order: Order, promotion: PromotionQuote, cap: int) -> None:
    try:
        new_total = usage_ledger_service.record_usage(
            order.business_number,
            order.promotion_month,
            promotion.granted_free_boxes,
            cap=cap,
        )
    except Exception:
        # The order is already committed; a ledger failure must not surface to the caller
        db.session.rollback()
        current_app.logger.exception(
            "Failed to record %s free boxes for order %s (%s %s)",
            promotion.granted_free_boxes, order.id, order.business_number, order.promotion_month,
        )
        return

    if new_total == cap and new_total - promotion.used_this_month != promotion.granted_free_boxes:
        # Another order moved the counter between our read and this write
        current_app.logger.warning(
            "Monthly free-box cap reached concurrently for %s %s; order %s may exceed the remaining quota",
            order.business_number, order.promotion_month, order.id,
        )


def _grant_first_order_apron(order: Order, quantity: int) -> Optional[ApronEntitlement]:
    try:
        return entitlement_service.create_entitlement(
            order.business_id,
            quantity,
            source=SOURCE_FIRST_ORDER,
            order_id=order.id,
            delivery_address=order.delivery_address,
        )
    except entitlement_service.EntitlementExistsError:
        current_app.logger.info("Business %s already has an apron entitlement", order.business_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create apron entitlement for order %s", order.id)
    return None


def submit_order(
    business_id: int,
    cart: Cart,
    delivery_address: str,
    *,
    now: datetime | None = None,
) -> SubmissionResult:
    """
    Persist an order for a cart and apply the promotion side effects.

    Raises ValidationError for bad input, OrderError for business rule
    rejections and OrderPersistenceError when the order could not be saved.
    """
    config = current_app.config
    now = now or utcnow()

    if not cart:
        raise ValidationError("cart is empty")
    for product_id, quantity in cart.items():
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"quantity for product {product_id} must be a positive integer")
    if not delivery_address or not delivery_address.strip():
        raise ValidationError("delivery_address required")

    business = business_service.get_business(business_id)
    if not business:
        raise OrderNotFoundError("Business not found", details={"business_id": business_id})
    if business.is_blocked:
        raise OrderError("Business is blocked from ordering", details={"business_id": business_id})

    catalog = load_catalog()
    year_month = usage_ledger_service.current_year_month(now)
    used = usage_ledger_service.get_used_or_zero(business.business_number, year_month)
    cap = config["MONTHLY_FREE_BOX_CAP"]
    promotion = quote(cart, catalog, used, cap=cap, trigger_boxes=config["FREE_BOX_TRIGGER_BOXES"])

    grant_apron = _decide_apron(business.id)

    def _persist():
        order = Order(
            business_id=business.id,
            business_number=business.business_number,
            business_name=business.business_name,
            delivery_address=delivery_address.strip(),
            total_boxes=promotion.total_boxes,
            water_boxes=promotion.totals.water_boxes,
            free_boxes=promotion.granted_free_boxes,
            total_amount=promotion.totals.total_amount,
            promotion_month=year_month,
            status=ORDER_PENDING,
            created_at=now,
        )
        order.items = _build_items(cart, catalog, promotion)
        db.session.add(order)
        db.session.commit()
        return order

    try:
        order = run_with_retry(_persist, label="order submit")
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to persist order for business %s", business.id)
        raise OrderPersistenceError("Order could not be saved") from exc

    if promotion.granted_free_boxes > 0:
        _record_free_boxes(order, promotion, cap)

    entitlement = None
    if grant_apron:
        entitlement = _grant_first_order_apron(order, config["FIRST_ORDER_APRON_QUANTITY"])

    return SubmissionResult(order=order, quote=promotion, entitlement=entitlement)


def get_order(order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id).first()
    if not order:
        raise OrderNotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_orders(business_id: int) -> list[Order]:
    """A business's order history, newest first."""
    if not business_service.get_business(business_id):
        raise OrderNotFoundError("Business not found", details={"business_id": business_id})
    return (
        db.session.query(Order)
        .filter_by(business_id=business_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def transition_order(order: Order, status: str) -> bool:
    """Move order to status if allowed. Caller commits. Returns False when not allowed."""
    if order.status == status:
        return True
    if status not in ALLOWED_TRANSITIONS.get(order.status, set()):
        return False
    order.status = status
    return True


def update_status_batch(order_ids: list[int], status: str) -> dict:
    """
    Bulk confirm or mark delivered. Orders that cannot move (e.g. cancelled)
    are reported in skipped rather than failing the batch.
    """
    if status not in BATCH_STATUSES:
        raise ValidationError("status must be one of: " + ", ".join(sorted(BATCH_STATUSES)))
    if not order_ids:
        raise ValidationError("order_ids required")

    def _op():
        orders = lock_for_update(
            db.session.query(Order).filter(Order.id.in_(order_ids))
        ).all()
        found = {o.id: o for o in orders}
        updated, skipped = [], []
        for order_id in order_ids:
            order = found.get(order_id)
            if order is None:
                skipped.append({"order_id": order_id, "reason": "not_found"})
            elif transition_order(order, status):
                updated.append(order_id)
            else:
                skipped.append({"order_id": order_id, "reason": f"status_{order.status}"})
        db.session.commit()
        return {"status": status, "updated": updated, "skipped": skipped}

    return run_with_retry(_op, label="order status batch")


def settle_order(order_id: int) -> Order:
    """Record that payment for the order arrived."""
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise OrderNotFoundError("Order not found", details={"order_id": order_id})
        if order.status == ORDER_CANCELLED:
            raise OrderError("Cannot settle a cancelled order")
        if order.payment_status == PAYMENT_PAID:
            raise OrderError("Order already settled")
        order.payment_status = PAYMENT_PAID
        order.paid_at = utcnow()
        db.session.commit()
        return order

    return run_with_retry(_op, label="order settle")


def list_unpaid_orders() -> list[Order]:
    """Orders still awaiting payment. Cancelled orders are never collected."""
    return (
        db.session.query(Order)
        .filter(Order.payment_status == PAYMENT_UNPAID, Order.status != ORDER_CANCELLED)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def receivables_by_business(search: str | None = None) -> list[dict]:
    """
    Unpaid orders grouped per business, highest outstanding total first.

    search filters on a substring of the business name.
    """
    grouped: dict[int, dict] = {}
    for order in list_unpaid_orders():
        entry = grouped.setdefault(order.business_id, {
            "business_id": order.business_id,
            "business_name": order.business_name,
            "business_number": order.business_number,
            "total_amount": 0,
            "order_count": 0,
            "order_ids": [],
        })
        entry["total_amount"] += order.total_amount
        entry["order_count"] += 1
        entry["order_ids"].append(order.id)

    rows = list(grouped.values())
    if search:
        rows = [r for r in rows if search in (r["business_name"] or "")]
    return sorted(rows, key=lambda r: r["total_amount"], reverse=True)
