# Overview: Pure cart operations; no database access.

"""
Cart Service

A cart is a plain mapping of product id -> positive box count, owned by the
caller. Nothing here mutates the cart it is given.

Invariant: a cart never holds a zero (or negative) quantity. Removing past
zero drops the entry instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..models.catalog import CatalogItem
from ..validation import ValidationError


Cart = Mapping[int, int]
Catalog = Mapping[int, CatalogItem]


class UnknownProductError(ValidationError):
    """Cart references a product that is not in the catalog."""

    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


@dataclass(frozen=True)
class CartTotals:
    total_all_boxes: int
    total_eligible_boxes: int
    total_amount: int

    @property
    def water_boxes(self) -> int:
        return self.total_all_boxes - self.total_eligible_boxes

    def to_dict(self) -> dict:
        return {
            "total_all_boxes": self.total_all_boxes,
            "total_eligible_boxes": self.total_eligible_boxes,
            "water_boxes": self.water_boxes,
            "total_amount": self.total_amount,
        }


def lookup(catalog: Catalog, product_id: int) -> CatalogItem:
    item = catalog.get(product_id)
    if item is None:
        raise UnknownProductError(product_id)
    return item


def add_to_cart(cart: Cart, product_id: int, delta: int) -> dict[int, int]:
    """
    Return a new cart with delta boxes added to product_id.

    Negative deltas remove boxes. The result is clamped at zero and a zero
    result removes the line. There is no upper bound here.
    """
    updated = dict(cart)
    quantity = max(0, updated.get(product_id, 0) + delta)
    if quantity == 0:
        updated.pop(product_id, None)
    else:
        updated[product_id] = quantity
    return updated


def compute_totals(cart: Cart, catalog: Catalog) -> CartTotals:
    """
    Box counts and amount for a cart.

    Water counts toward total_all_boxes and total_amount but never toward
    total_eligible_boxes.
    """
    all_boxes = 0
    eligible_boxes = 0
    amount = 0
    for product_id, quantity in cart.items():
        item = lookup(catalog, product_id)
        all_boxes += quantity
        if item.is_eligible_category:
            eligible_boxes += quantity
        amount += quantity * item.price
    return CartTotals(
        total_all_boxes=all_boxes,
        total_eligible_boxes=eligible_boxes,
        total_amount=amount,
    )
