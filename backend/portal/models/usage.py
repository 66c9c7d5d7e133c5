from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class MonthlyFreeBoxUsage(db.Model):
    """
    Running total of free boxes granted to one business in one month.

    Written only through a single INSERT ... ON CONFLICT DO UPDATE so the
    counter never goes through a read-modify-write in Python. Rows are never
    deleted; a new month starts a new row.
    """
    __tablename__ = "monthly_free_box_usage"
    __table_args__ = (
        db.UniqueConstraint("business_number", "year_month", name="uq_usage_business_month"),
        db.CheckConstraint("used_free_boxes >= 0", name="used_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_number = db.Column(db.String(32), nullable=False, index=True)
    year_month = db.Column(db.String(7), nullable=False)  # "YYYY-MM"
    used_free_boxes = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "business_number": self.business_number,
            "year_month": self.year_month,
            "used_free_boxes": self.used_free_boxes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
