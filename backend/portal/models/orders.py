from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ORDER_PENDING = "pending"
ORDER_CONFIRMED = "confirmed"
ORDER_DELIVERED = "delivered"
ORDER_CANCELLED = "cancelled"
ORDER_STATUSES = {ORDER_PENDING, ORDER_CONFIRMED, ORDER_DELIVERED, ORDER_CANCELLED}

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"


class Order(db.Model):
    """
    Persisted order snapshot.

    Business details, product names and prices are copied at submission time.
    Items and amounts never change afterwards; only status and payment
    status move.

    total_boxes = paid non-water boxes + free boxes. Water boxes are kept in
    water_boxes. total_amount sums paid lines only (water included).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_business_created", "business_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    # Snapshots
    business_number = db.Column(db.String(32), nullable=False)
    business_name = db.Column(db.String(255), nullable=False)
    delivery_address = db.Column(db.String(512), nullable=False)

    total_boxes = db.Column(db.Integer, nullable=False)
    water_boxes = db.Column(db.Integer, nullable=False, default=0)
    free_boxes = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Integer, nullable=False)

    # Month whose free-box quota this order drew from ("YYYY-MM")
    promotion_month = db.Column(db.String(7), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_UNPAID, index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def paid_items(self) -> list["OrderItem"]:
        return [i for i in self.items if not i.is_free]

    @property
    def service_items(self) -> list["OrderItem"]:
        return [i for i in self.items if i.is_free]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "business_number": self.business_number,
            "business_name": self.business_name,
            "delivery_address": self.delivery_address,
            "items": [i.to_dict() for i in self.paid_items],
            "service_items": [i.to_dict() for i in self.service_items],
            "total_boxes": self.total_boxes,
            "water_boxes": self.water_boxes,
            "free_boxes": self.free_boxes,
            "total_amount": self.total_amount,
            "promotion_month": self.promotion_month,
            "status": self.status,
            "payment_status": self.payment_status,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Paid line or free (service) line of an order. Free lines carry unit_price 0."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Integer, nullable=False)
    is_free = db.Column(db.Boolean, nullable=False, default=False)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "category": self.category,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
            "is_free": self.is_free,
        }
