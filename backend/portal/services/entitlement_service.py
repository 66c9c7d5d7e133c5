# Overview: One-time apron grant for new businesses; creation is shared by order submission and manager verification.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ApronEntitlement, Business, Order
from ..models.entitlements import (
    APRON_PENDING,
    APRON_COMPLETED,
    DELIVERY_METHODS,
    SOURCE_FIRST_ORDER,
)
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


class EntitlementError(Exception):
    """Raised for apron entitlement errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EntitlementNotFoundError(EntitlementError):
    pass


class EntitlementExistsError(EntitlementError):
    """The business already has its apron entitlement."""


def count_orders(business_id: int) -> int:
    return db.session.query(Order).filter_by(business_id=business_id).count()


def count_entitlements(business_id: int) -> int:
    return db.session.query(ApronEntitlement).filter_by(business_id=business_id).count()


def should_grant(business_id: int) -> bool:
    """
    True when this business has never ordered and never received an apron.

    Must be evaluated before the new order is persisted, otherwise the new
    order itself makes count_orders non-zero.
    """
    return count_orders(business_id) == 0 and count_entitlements(business_id) == 0


def create_entitlement(
    business_id: int,
    quantity: int,
    status: str = APRON_PENDING,
    *,
    source: str = SOURCE_FIRST_ORDER,
    order_id: int | None = None,
    delivery_address: str | None = None,
) -> ApronEntitlement:
    """
    Create the business's single apron entitlement.

    Both the first-order path and manager "new business" verification call
    this. The unique constraint on business_id turns a duplicate (including
    one lost in a race) into EntitlementExistsError.
    """
    if quantity <= 0:
        raise EntitlementError("quantity must be positive")

    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business:
        raise EntitlementError("Business not found", details={"business_id": business_id})

    entitlement = ApronEntitlement(
        business_id=business.id,
        order_id=order_id,
        quantity=quantity,
        status=status,
        source=source,
        business_name=business.business_name,
        business_number=business.business_number,
        phone=business.phone,
        delivery_address=delivery_address or business.address,
    )
    db.session.add(entitlement)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise EntitlementExistsError(
            "Apron entitlement already granted",
            details={"business_id": business_id},
        )

    current_app.logger.info(
        "Apron entitlement %s created for business %s (%s x%s)",
        entitlement.id, business_id, source, quantity,
    )
    return entitlement


def get_entitlement_for_business(business_id: int) -> ApronEntitlement | None:
    return db.session.query(ApronEntitlement).filter_by(business_id=business_id).first()


def list_entitlements(status: str | None = None) -> list[ApronEntitlement]:
    q = db.session.query(ApronEntitlement)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(ApronEntitlement.created_at.desc(), ApronEntitlement.id.desc()).all()


def complete_entitlement(entitlement_id: int, delivery_method: str) -> ApronEntitlement:
    """Mark a pending apron as handed out, by driver (with the delivery) or by staff."""
    if delivery_method not in DELIVERY_METHODS:
        raise EntitlementError(
            "delivery_method must be one of: " + ", ".join(sorted(DELIVERY_METHODS))
        )

    def _op():
        entitlement = lock_for_update(
            db.session.query(ApronEntitlement).filter_by(id=entitlement_id)
        ).first()
        if not entitlement:
            raise EntitlementNotFoundError("Entitlement not found", details={"entitlement_id": entitlement_id})
        if entitlement.status == APRON_COMPLETED:
            raise EntitlementError("Entitlement already completed")

        entitlement.status = APRON_COMPLETED
        entitlement.delivery_method = delivery_method
        entitlement.completed_at = utcnow()
        db.session.commit()
        return entitlement

    return run_with_retry(_op, label="apron hand-out")
