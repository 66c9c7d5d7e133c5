from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import ValidationError, MAX_PRICE


CATEGORY_CAN = "CAN"
CATEGORY_BOTTLE = "BOTTLE"
CATEGORY_WATER = "WATER"
PRODUCT_CATEGORIES = {CATEGORY_CAN, CATEGORY_BOTTLE, CATEGORY_WATER}


@dataclass(frozen=True)
class CatalogItem:
    """
    Immutable view of a product as priced for one order.

    The promotion functions only ever see these, never live ORM rows, so a
    catalog snapshot can be evaluated outside an app context.
    """
    id: int
    name: str
    price: int
    category: str
    is_qualifying_family: bool = False

    def __post_init__(self):
        if self.category not in PRODUCT_CATEGORIES:
            raise ValidationError(f"Unknown product category: {self.category}")
        if isinstance(self.price, bool) or not isinstance(self.price, int):
            raise ValidationError("price must be an integer")
        if self.price < 0 or self.price > MAX_PRICE:
            raise ValidationError(f"price must be between 0 and {MAX_PRICE}")

    @property
    def is_eligible_category(self) -> bool:
        """Counts toward the 3+1 threshold and can be given away as the free box."""
        return self.category != CATEGORY_WATER


class Product(db.Model):
    """
    Orderable beverage (one unit is one box).

    Qualifying-family membership is an explicit flag set when the catalog is
    authored; it is never derived from the product name.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # KRW per box
    price = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(16), nullable=False, index=True)
    is_qualifying_family = db.Column(db.Boolean, nullable=False, default=False)

    image_url = db.Column(db.String(512), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @validates("category")
    def _validate_category(self, key, value):
        value = (value or "").strip().upper()
        if value not in PRODUCT_CATEGORIES:
            raise ValidationError(f"Unknown product category: {value or None}")
        return value

    @validates("price")
    def _validate_price(self, key, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError("price must be an integer")
        if value < 0 or value > MAX_PRICE:
            raise ValidationError(f"price must be between 0 and {MAX_PRICE}")
        return value

    def to_catalog_item(self) -> CatalogItem:
        return CatalogItem(
            id=self.id,
            name=self.name,
            price=self.price,
            category=self.category,
            is_qualifying_family=bool(self.is_qualifying_family),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price": self.price,
            "category": self.category,
            "is_qualifying_family": self.is_qualifying_family,
            "is_eligible_category": self.category != CATEGORY_WATER,
            "image_url": self.image_url,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
