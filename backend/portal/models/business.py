from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


VERIFICATION_UNVERIFIED = "unverified"
VERIFICATION_EXISTING = "verified_existing"
VERIFICATION_NEW = "verified_new"
VERIFICATION_BLOCKED = "blocked"
VERIFICATION_STATUSES = {
    VERIFICATION_UNVERIFIED,
    VERIFICATION_EXISTING,
    VERIFICATION_NEW,
    VERIFICATION_BLOCKED,
}


class Business(db.Model):
    """
    Member business placing orders.

    business_number is the registration number with every non-digit
    stripped; it keys the monthly free-box ledger.
    """
    __tablename__ = "businesses"
    __table_args__ = (
        db.Index("ix_businesses_business_number", "business_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_number = db.Column(db.String(32), nullable=False)
    business_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(512), nullable=True)

    verification_status = db.Column(db.String(32), nullable=False, default=VERIFICATION_UNVERIFIED, index=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_blocked(self) -> bool:
        return self.verification_status == VERIFICATION_BLOCKED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_number": self.business_number,
            "business_name": self.business_name,
            "phone": self.phone,
            "address": self.address,
            "verification_status": self.verification_status,
            "verified_at": to_utc_z(self.verified_at) if self.verified_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
