# Overview: Pytest coverage for apron entitlements and manager verification.

"""
Apron Entitlement & Verification Tests

Covers:
1. should_grant is true only before the first order and first apron
2. The unique constraint rejects a second apron for a business
3. Manager "new" verification goes through create_entitlement
4. "existing" and "block" decisions
5. Apron hand-out by driver or staff
"""

from datetime import datetime

import pytest

from portal.models import ApronEntitlement
from portal.models.business import VERIFICATION_BLOCKED, VERIFICATION_EXISTING, VERIFICATION_NEW
from portal.models.entitlements import APRON_COMPLETED, SOURCE_VERIFICATION
from portal.models.orders import ORDER_CANCELLED, ORDER_CONFIRMED
from portal.services import entitlement_service, verification_service
from portal.services.entitlement_service import (
    EntitlementError,
    EntitlementExistsError,
    EntitlementNotFoundError,
    complete_entitlement,
    create_entitlement,
    should_grant,
)
from portal.services.order_service import OrderError, submit_order
from portal.services.verification_service import VerificationError, verify_business


NOW = datetime(2026, 10, 15, 3, 0)
ADDRESS = "12 Jongno-gu, Seoul"


class TestShouldGrant:
    def test_new_business(self, db_session, business):
        assert should_grant(business.id) is True

    def test_after_first_order(self, db_session, business, pepsi):
        submit_order(business.id, {pepsi.id: 1}, ADDRESS, now=NOW)
        assert should_grant(business.id) is False

    def test_after_entitlement_without_order(self, db_session, business):
        create_entitlement(business.id, 5)
        assert should_grant(business.id) is False

    def test_other_business_unaffected(self, db_session, business, other_business, pepsi):
        submit_order(business.id, {pepsi.id: 1}, ADDRESS, now=NOW)
        assert should_grant(other_business.id) is True


class TestCreateEntitlement:
    def test_snapshots_business(self, db_session, business):
        entitlement = create_entitlement(business.id, 5)
        assert entitlement.business_name == "Hanok Chicken"
        assert entitlement.business_number == "1234567890"
        assert entitlement.delivery_address == business.address
        assert entitlement.status == "pending"

    def test_duplicate_fails_loudly(self, db_session, business):
        create_entitlement(business.id, 5)
        with pytest.raises(EntitlementExistsError):
            create_entitlement(business.id, 5)
        assert db_session.query(ApronEntitlement).count() == 1

    def test_unknown_business(self, db_session):
        with pytest.raises(EntitlementError):
            create_entitlement(999, 5)

    def test_quantity_must_be_positive(self, db_session, business):
        with pytest.raises(EntitlementError):
            create_entitlement(business.id, 0)


class TestCompleteEntitlement:
    def test_driver_delivery(self, db_session, business):
        entitlement = create_entitlement(business.id, 5)
        done = complete_entitlement(entitlement.id, "driver")
        assert done.status == APRON_COMPLETED
        assert done.delivery_method == "driver"
        assert done.completed_at is not None

    def test_cannot_complete_twice(self, db_session, business):
        entitlement = create_entitlement(business.id, 5)
        complete_entitlement(entitlement.id, "staff")
        with pytest.raises(EntitlementError):
            complete_entitlement(entitlement.id, "staff")

    def test_unknown_method(self, db_session, business):
        entitlement = create_entitlement(business.id, 5)
        with pytest.raises(EntitlementError):
            complete_entitlement(entitlement.id, "drone")

    def test_list_filters_by_status(self, db_session, business, other_business):
        first = create_entitlement(business.id, 5)
        create_entitlement(other_business.id, 5)
        complete_entitlement(first.id, "driver")
        pending = entitlement_service.list_entitlements("pending")
        assert [e.business_id for e in pending] == [other_business.id]
        assert len(entitlement_service.list_entitlements()) == 2


class TestVerification:
    def _order(self, business, pepsi):
        return submit_order(business.id, {pepsi.id: 1}, ADDRESS, now=NOW).order

    def test_existing(self, db_session, business, pepsi):
        order = self._order(business, pepsi)
        result = verify_business(order.id, "existing")
        assert result.business.verification_status == VERIFICATION_EXISTING
        assert result.order.status == ORDER_CONFIRMED
        assert result.entitlement is None

    def test_new_uses_shared_create_entitlement(self, db_session, business, pepsi, monkeypatch):
        order = self._order(business, pepsi)
        # Remove the first-order apron so verification has to create one
        db_session.query(ApronEntitlement).delete()
        db_session.commit()

        calls = []
        original = entitlement_service.create_entitlement

        def _spy(*args, **kwargs):
            calls.append((args, kwargs))
            return original(*args, **kwargs)

        monkeypatch.setattr(entitlement_service, "create_entitlement", _spy)

        result = verify_business(order.id, "new")

        assert len(calls) == 1
        assert result.business.verification_status == VERIFICATION_NEW
        assert result.order.status == ORDER_CONFIRMED
        assert result.entitlement.source == SOURCE_VERIFICATION
        assert result.entitlement.quantity == 5

    def test_new_keeps_existing_apron(self, db_session, business, pepsi):
        order = self._order(business, pepsi)
        first_apron = entitlement_service.get_entitlement_for_business(business.id)

        result = verify_business(order.id, "new")

        assert result.entitlement.id == first_apron.id
        assert db_session.query(ApronEntitlement).count() == 1

    def test_block(self, db_session, business, pepsi):
        order = self._order(business, pepsi)
        result = verify_business(order.id, "block")
        assert result.business.verification_status == VERIFICATION_BLOCKED
        assert result.order.status == ORDER_CANCELLED

        with pytest.raises(OrderError):
            submit_order(business.id, {pepsi.id: 1}, ADDRESS, now=NOW)

    def test_cancelled_order_cannot_be_confirmed(self, db_session, business, pepsi):
        order = self._order(business, pepsi)
        verify_business(order.id, "block")
        with pytest.raises(VerificationError):
            verify_business(order.id, "existing")

    def test_unknown_decision(self, db_session, business, pepsi):
        order = self._order(business, pepsi)
        with pytest.raises(VerificationError):
            verify_business(order.id, "maybe")

    def test_unknown_order(self, db_session):
        with pytest.raises(VerificationError):
            verification_service.verify_business(404, "existing")


class TestVerificationQueue:
    def test_lists_orders_of_unverified_businesses(self, db_session, business, other_business, pepsi):
        first = submit_order(business.id, {pepsi.id: 1}, ADDRESS, now=datetime(2026, 10, 1, 3, 0)).order
        second = submit_order(other_business.id, {pepsi.id: 1}, ADDRESS, now=datetime(2026, 10, 2, 3, 0)).order

        queue = verification_service.list_pending_verifications()
        assert [o.id for o in queue] == [first.id, second.id]

    def test_reviewed_and_cancelled_leave_queue(self, db_session, business, other_business, pepsi):
        reviewed = submit_order(business.id, {pepsi.id: 1}, ADDRESS, now=NOW).order
        cancelled = submit_order(other_business.id, {pepsi.id: 1}, ADDRESS, now=NOW).order
        verify_business(reviewed.id, "existing")
        cancelled.status = "cancelled"
        db_session.commit()

        assert verification_service.list_pending_verifications() == []

    def test_completing_unknown_entitlement(self, db_session):
        with pytest.raises(EntitlementNotFoundError):
            complete_entitlement(404, "driver")
