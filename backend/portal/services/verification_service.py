# Overview: Manager review of a business's first order (existing / new / block).

"""
Verification Service

DECISIONS:
- existing: business becomes verified_existing, order confirmed.
- new:      business becomes verified_new, order confirmed, and the apron
            entitlement is created through entitlement_service.create_entitlement,
            the same call the first-order path uses. An apron the business
            already holds is kept; no second one is made.
- block:    business becomes blocked, order cancelled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import ApronEntitlement, Business, Order
from ..models.business import (
    VERIFICATION_BLOCKED,
    VERIFICATION_EXISTING,
    VERIFICATION_NEW,
    VERIFICATION_UNVERIFIED,
)
from ..models.entitlements import SOURCE_VERIFICATION
from ..models.orders import ORDER_CANCELLED, ORDER_CONFIRMED
from ..time_utils import utcnow
from . import entitlement_service
from .concurrency import lock_for_update, run_with_retry
from .order_service import transition_order


DECISION_EXISTING = "existing"
DECISION_NEW = "new"
DECISION_BLOCK = "block"

_DECISIONS = {
    DECISION_EXISTING: (VERIFICATION_EXISTING, ORDER_CONFIRMED),
    DECISION_NEW: (VERIFICATION_NEW, ORDER_CONFIRMED),
    DECISION_BLOCK: (VERIFICATION_BLOCKED, ORDER_CANCELLED),
}


class VerificationError(Exception):
    """Raised for verification errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class VerificationResult:
    order: Order
    business: Business
    entitlement: Optional[ApronEntitlement] = None

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "business": self.business.to_dict(),
            "apron_entitlement": self.entitlement.to_dict() if self.entitlement else None,
        }


def list_pending_verifications() -> list[Order]:
    """Live orders from businesses no manager has reviewed yet, oldest first."""
    return (
        db.session.query(Order)
        .join(Business, Business.id == Order.business_id)
        .filter(
            Business.verification_status == VERIFICATION_UNVERIFIED,
            Order.status != ORDER_CANCELLED,
        )
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def verify_business(order_id: int, decision: str) -> VerificationResult:
    if decision not in _DECISIONS:
        raise VerificationError(
            "decision must be one of: " + ", ".join(sorted(_DECISIONS)),
            details={"decision": decision},
        )
    business_status, order_status = _DECISIONS[decision]

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise VerificationError("Order not found", details={"order_id": order_id})
        business = lock_for_update(db.session.query(Business).filter_by(id=order.business_id)).first()

        if not transition_order(order, order_status):
            raise VerificationError(
                f"Cannot move order from {order.status} to {order_status}",
                details={"order_id": order_id, "status": order.status},
            )
        business.verification_status = business_status
        business.verified_at = utcnow()
        db.session.commit()
        return order, business

    order, business = run_with_retry(_op, label="business verification")

    entitlement = None
    if decision == DECISION_NEW:
        try:
            entitlement = entitlement_service.create_entitlement(
                business.id,
                current_app.config["FIRST_ORDER_APRON_QUANTITY"],
                source=SOURCE_VERIFICATION,
                order_id=order.id,
                delivery_address=order.delivery_address,
            )
        except entitlement_service.EntitlementExistsError:
            entitlement = entitlement_service.get_entitlement_for_business(business.id)

    return VerificationResult(order=order, business=business, entitlement=entitlement)
