from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


APRON_PENDING = "pending"
APRON_COMPLETED = "completed"

DELIVERY_DRIVER = "driver"  # packed with the beverage delivery
DELIVERY_STAFF = "staff"    # handed over by association staff
DELIVERY_METHODS = {DELIVERY_DRIVER, DELIVERY_STAFF}

SOURCE_FIRST_ORDER = "first_order"
SOURCE_VERIFICATION = "verification"


class ApronEntitlement(db.Model):
    """
    One-time apron grant for a new business.

    The unique constraint on business_id is what makes the grant at most
    once: a second insert for the same business fails with IntegrityError.
    """
    __tablename__ = "apron_entitlements"
    __table_args__ = (
        db.UniqueConstraint("business_id", name="uq_apron_entitlements_business"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=APRON_PENDING, index=True)
    source = db.Column(db.String(32), nullable=False, default=SOURCE_FIRST_ORDER)
    delivery_method = db.Column(db.String(16), nullable=True)

    # Snapshots for the hand-out list
    business_name = db.Column(db.String(255), nullable=True)
    business_number = db.Column(db.String(32), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    delivery_address = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("apron_entitlements", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "order_id": self.order_id,
            "quantity": self.quantity,
            "status": self.status,
            "source": self.source,
            "delivery_method": self.delivery_method,
            "business_name": self.business_name,
            "business_number": self.business_number,
            "phone": self.phone,
            "delivery_address": self.delivery_address,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
