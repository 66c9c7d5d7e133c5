# Overview: Catalog provider; loads products and freezes them into CatalogItem snapshots.

from __future__ import annotations

from ..extensions import db
from ..models import Product, CatalogItem
from ..models.catalog import CATEGORY_CAN, CATEGORY_WATER
from ..validation import ConflictError


# Default association catalog (KRW per box)
DEFAULT_PRODUCTS = [
    {"sku": "CHILSUNG-CIDER-355-24", "name": "칠성사이다 업소용 355ml (24캔)", "price": 18000, "category": CATEGORY_CAN, "is_qualifying_family": False},
    {"sku": "PEPSI-COLA-355-24", "name": "펩시콜라 업소용 355ml (24캔)", "price": 17000, "category": CATEGORY_CAN, "is_qualifying_family": True},
    {"sku": "PEPSI-ZERO-355-24", "name": "펩시 제로 슈거 355ml (24캔)", "price": 17500, "category": CATEGORY_CAN, "is_qualifying_family": True},
    {"sku": "TAMS-ZERO-ORANGE-355-24", "name": "탐스 제로 오렌지 355ml (24캔)", "price": 16000, "category": CATEGORY_CAN, "is_qualifying_family": False},
    {"sku": "MILKIS-250-30", "name": "밀키스 250ml (30캔)", "price": 15000, "category": CATEGORY_CAN, "is_qualifying_family": False},
    {"sku": "ICIS-WATER-500-20", "name": "아이시스 8.0 500ml (20병)", "price": 9000, "category": CATEGORY_WATER, "is_qualifying_family": False},
]


def list_products(include_inactive: bool = False) -> list[Product]:
    """Products in display order."""
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(Product.sort_order.asc(), Product.id.asc()).all()


def build_catalog(products) -> dict[int, CatalogItem]:
    return {p.id: p.to_catalog_item() for p in products}


def load_catalog() -> dict[int, CatalogItem]:
    """Snapshot of the active catalog for one quote or order."""
    return build_catalog(list_products())


def create_product(data: dict) -> Product:
    if db.session.query(Product).filter_by(sku=data["sku"]).first():
        raise ConflictError(f"SKU {data['sku']} already exists")
    product = Product(
        sku=data["sku"],
        name=data["name"],
        price=data["price"],
        category=data["category"],
        is_qualifying_family=bool(data.get("is_qualifying_family", False)),
        image_url=data.get("image_url"),
        sort_order=data.get("sort_order", 0),
    )
    db.session.add(product)
    db.session.commit()
    return product


def seed_default_products() -> int:
    """Insert any default products missing by SKU. Safe to run repeatedly."""
    created = 0
    for position, data in enumerate(DEFAULT_PRODUCTS):
        if db.session.query(Product).filter_by(sku=data["sku"]).first():
            continue
        db.session.add(Product(sort_order=position, **data))
        created += 1
    db.session.commit()
    return created
