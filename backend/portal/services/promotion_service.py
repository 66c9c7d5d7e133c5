# Overview: 3+1 free-box promotion; pure functions of a cart, a catalog and the month's usage.

"""
Promotion Service

RULES:
- Every 3 paid non-water boxes earn 1 free box (floor, no partial credit).
- The bonus only triggers when the cart holds at least one qualifying-family
  product. Water lines count for that check even though water boxes never
  count toward the threshold.
- A business may receive at most MONTHLY_FREE_BOX_CAP free boxes per
  calendar month. The grant is clamped to what is left.
- The free box is the cheapest non-water product in the cart. On a price
  tie the first line in cart order wins. Selection is recomputed from the
  current cart every time.

Nothing here touches the database; the month's usage is passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..models.catalog import CatalogItem
from ..validation import ValidationError
from .cart_service import Cart, Catalog, CartTotals, compute_totals, lookup


DEFAULT_TRIGGER_BOXES = 3
DEFAULT_MONTHLY_CAP = 10


@dataclass(frozen=True)
class EligibilityResult:
    paid_eligible_boxes: int
    has_qualifying_product: bool
    raw_free_boxes: int

    def to_dict(self) -> dict:
        return {
            "paid_eligible_boxes": self.paid_eligible_boxes,
            "has_qualifying_product": self.has_qualifying_product,
            "raw_free_boxes": self.raw_free_boxes,
        }


@dataclass(frozen=True)
class FreeLine:
    product: CatalogItem
    quantity: int

    @property
    def value(self) -> int:
        """What the free boxes would have cost."""
        return self.product.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product.id,
            "product_name": self.product.name,
            "quantity": self.quantity,
            "unit_price": 0,
            "list_price": self.product.price,
        }


@dataclass(frozen=True)
class PromotionQuote:
    totals: CartTotals
    eligibility: EligibilityResult
    used_this_month: int
    monthly_cap: int
    granted_free_boxes: int
    free_line: Optional[FreeLine]
    discount_percent: int
    average_box_price: Optional[int]

    @property
    def remaining_after_order(self) -> int:
        return max(0, self.monthly_cap - self.used_this_month - self.granted_free_boxes)

    @property
    def total_boxes(self) -> int:
        """Boxes counted on the order: paid non-water plus free."""
        return self.totals.total_eligible_boxes + self.granted_free_boxes

    def to_dict(self) -> dict:
        return {
            "totals": self.totals.to_dict(),
            "eligibility": self.eligibility.to_dict(),
            "used_this_month": self.used_this_month,
            "monthly_cap": self.monthly_cap,
            "granted_free_boxes": self.granted_free_boxes,
            "remaining_after_order": self.remaining_after_order,
            "free_line": self.free_line.to_dict() if self.free_line else None,
            "total_boxes": self.total_boxes,
            "discount_percent": self.discount_percent,
            "average_box_price": self.average_box_price,
        }


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def evaluate(cart: Cart, catalog: Catalog, trigger_boxes: int = DEFAULT_TRIGGER_BOXES) -> EligibilityResult:
    if trigger_boxes < 1:
        raise ValidationError("trigger_boxes must be at least 1")
    paid_eligible = 0
    has_qualifying = False
    for product_id, quantity in cart.items():
        item = lookup(catalog, product_id)
        if item.is_eligible_category:
            paid_eligible += quantity
        if item.is_qualifying_family:
            has_qualifying = True

    raw = 0
    if paid_eligible >= trigger_boxes and has_qualifying:
        raw = paid_eligible // trigger_boxes

    return EligibilityResult(
        paid_eligible_boxes=paid_eligible,
        has_qualifying_product=has_qualifying,
        raw_free_boxes=raw,
    )


def allocate(raw_free_boxes: int, used_this_month: int, cap: int = DEFAULT_MONTHLY_CAP) -> int:
    """Clamp the raw grant to what is left of this month's cap. Never negative."""
    remaining = max(0, cap - used_this_month)
    return max(0, min(raw_free_boxes, remaining))


def select_free_product(cart: Cart, catalog: Catalog) -> Optional[CatalogItem]:
    """Cheapest non-water product in the cart; first in cart order on a tie."""
    chosen = None
    for product_id in cart:
        item = lookup(catalog, product_id)
        if not item.is_eligible_category:
            continue
        if chosen is None or item.price < chosen.price:
            chosen = item
    return chosen


def discount_percent(paid_amount: int, free_line_value: int) -> int:
    """Share of the combined value that was given away, as a whole percent."""
    if free_line_value <= 0:
        return 0
    ratio = Decimal(free_line_value) * 100 / Decimal(paid_amount + free_line_value)
    return _round_half_up(ratio)


def average_box_price(paid_amount: int, eligible_boxes: int, granted_free_boxes: int) -> Optional[int]:
    """Effective price per box once free boxes are included; None when nothing was granted."""
    if granted_free_boxes <= 0:
        return None
    boxes = eligible_boxes + granted_free_boxes
    return _round_half_up(Decimal(paid_amount) / Decimal(boxes))


def quote(
    cart: Cart,
    catalog: Catalog,
    used_this_month: int,
    cap: int = DEFAULT_MONTHLY_CAP,
    trigger_boxes: int = DEFAULT_TRIGGER_BOXES,
) -> PromotionQuote:
    """Everything the order screen and the submission path need, in one pass."""
    totals = compute_totals(cart, catalog)
    eligibility = evaluate(cart, catalog, trigger_boxes=trigger_boxes)
    granted = allocate(eligibility.raw_free_boxes, used_this_month, cap)

    free_line = None
    if granted > 0:
        product = select_free_product(cart, catalog)
        # granted > 0 implies at least trigger_boxes non-water boxes, so product is set
        free_line = FreeLine(product=product, quantity=granted)

    return PromotionQuote(
        totals=totals,
        eligibility=eligibility,
        used_this_month=used_this_month,
        monthly_cap=cap,
        granted_free_boxes=granted,
        free_line=free_line,
        discount_percent=discount_percent(totals.total_amount, free_line.value if free_line else 0),
        average_box_price=average_box_price(totals.total_amount, totals.total_eligible_boxes, granted),
    )
