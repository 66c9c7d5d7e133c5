from __future__ import annotations

import re

from ..extensions import db
from ..models import Business
from ..validation import ValidationError


_NON_DIGITS = re.compile(r"\D")


def normalize_business_number(value: str | None) -> str:
    """'123-45-67890' -> '1234567890'. Raises when no digits remain."""
    digits = _NON_DIGITS.sub("", value or "")
    if not digits:
        raise ValidationError("business_number must contain digits")
    return digits


def get_business(business_id: int) -> Business | None:
    return db.session.query(Business).filter_by(id=business_id).first()


def create_business(
    *,
    business_number: str,
    business_name: str,
    phone: str | None = None,
    address: str | None = None,
) -> Business:
    if not business_name or not business_name.strip():
        raise ValidationError("business_name required")
    business = Business(
        business_number=normalize_business_number(business_number),
        business_name=business_name.strip(),
        phone=phone,
        address=address,
    )
    db.session.add(business)
    db.session.commit()
    return business
