# Overview: Pytest coverage for the pure cart and 3+1 promotion functions.

"""
Promotion Engine Tests

No database: the cart and promotion functions run on CatalogItem snapshots.
"""

import pytest

from portal.models.catalog import CatalogItem, CATEGORY_CAN, CATEGORY_BOTTLE, CATEGORY_WATER
from portal.services.cart_service import UnknownProductError, add_to_cart, compute_totals
from portal.services.promotion_service import (
    allocate,
    average_box_price,
    discount_percent,
    evaluate,
    quote,
    select_free_product,
)
from portal.validation import ValidationError


PEPSI = CatalogItem(id=1, name="Pepsi", price=17000, category=CATEGORY_CAN, is_qualifying_family=True)
CIDER = CatalogItem(id=2, name="Cider", price=18000, category=CATEGORY_CAN)
MILKIS = CatalogItem(id=3, name="Milkis", price=15000, category=CATEGORY_CAN)
WATER = CatalogItem(id=4, name="Water", price=1000, category=CATEGORY_WATER)
PEPSI_WATER = CatalogItem(id=5, name="Pepsi-brand water", price=1200, category=CATEGORY_WATER, is_qualifying_family=True)
TAMS = CatalogItem(id=6, name="Tams", price=15000, category=CATEGORY_BOTTLE)

CATALOG = {item.id: item for item in (PEPSI, CIDER, MILKIS, WATER, PEPSI_WATER, TAMS)}


class TestAddToCart:
    def test_adds_new_line(self):
        assert add_to_cart({}, PEPSI.id, 2) == {PEPSI.id: 2}

    def test_does_not_mutate_input(self):
        cart = {PEPSI.id: 1}
        add_to_cart(cart, PEPSI.id, 3)
        assert cart == {PEPSI.id: 1}

    def test_reaching_zero_removes_line(self):
        assert add_to_cart({PEPSI.id: 2, CIDER.id: 1}, PEPSI.id, -2) == {CIDER.id: 1}

    def test_repeated_removal_past_zero_never_leaves_entry(self):
        cart = {PEPSI.id: 1}
        for _ in range(5):
            cart = add_to_cart(cart, PEPSI.id, -1)
            assert PEPSI.id not in cart
            assert all(qty > 0 for qty in cart.values())
        assert cart == {}

    def test_large_negative_delta_clamps(self):
        assert add_to_cart({PEPSI.id: 3}, PEPSI.id, -100) == {}

    def test_no_upper_bound(self):
        assert add_to_cart({}, PEPSI.id, 500) == {PEPSI.id: 500}


class TestComputeTotals:
    def test_water_counts_toward_amount_not_eligible_boxes(self):
        totals = compute_totals({WATER.id: 4}, CATALOG)
        assert totals.total_all_boxes == 4
        assert totals.total_eligible_boxes == 0
        assert totals.total_amount == 4000
        assert totals.water_boxes == 4

    def test_mixed_cart(self):
        totals = compute_totals({PEPSI.id: 3, WATER.id: 2, TAMS.id: 1}, CATALOG)
        assert totals.total_all_boxes == 6
        assert totals.total_eligible_boxes == 4
        assert totals.total_amount == 3 * 17000 + 2 * 1000 + 15000

    def test_unknown_product_raises(self):
        with pytest.raises(UnknownProductError):
            compute_totals({999: 1}, CATALOG)


class TestEvaluate:
    @pytest.mark.parametrize("boxes,expected", [(2, 0), (3, 1), (4, 1), (5, 1), (6, 2), (8, 2), (9, 3)])
    def test_threshold_and_floor(self, boxes, expected):
        assert evaluate({PEPSI.id: boxes}, CATALOG).raw_free_boxes == expected

    def test_water_only_never_triggers(self):
        result = evaluate({PEPSI_WATER.id: 30, WATER.id: 30}, CATALOG)
        assert result.paid_eligible_boxes == 0
        assert result.raw_free_boxes == 0
        assert compute_totals({WATER.id: 30}, CATALOG).total_amount > 0

    def test_requires_qualifying_product(self):
        result = evaluate({CIDER.id: 5, MILKIS.id: 4}, CATALOG)
        assert result.paid_eligible_boxes == 9
        assert result.has_qualifying_product is False
        assert result.raw_free_boxes == 0

    def test_qualifying_water_line_enables_bonus(self):
        # Water never counts toward the threshold but does count as the qualifying product
        result = evaluate({CIDER.id: 3, PEPSI_WATER.id: 1}, CATALOG)
        assert result.has_qualifying_product is True
        assert result.paid_eligible_boxes == 3
        assert result.raw_free_boxes == 1

    def test_qualifying_product_counts_with_others(self):
        result = evaluate({PEPSI.id: 1, CIDER.id: 2}, CATALOG)
        assert result.raw_free_boxes == 1


class TestAllocate:
    def test_cap_clamps_grant(self):
        assert allocate(3, used_this_month=9, cap=10) == 1

    def test_cap_exhausted(self):
        assert allocate(5, used_this_month=10, cap=10) == 0

    def test_over_cap_usage_never_negative(self):
        assert allocate(2, used_this_month=14, cap=10) == 0

    def test_never_exceeds_raw(self):
        assert allocate(2, used_this_month=0, cap=10) == 2

    def test_default_cap_is_ten(self):
        assert allocate(20, used_this_month=0) == 10


class TestSelectFreeProduct:
    def test_cheapest_wins(self):
        assert select_free_product({PEPSI.id: 2, MILKIS.id: 1}, CATALOG) == MILKIS

    def test_water_never_selected(self):
        assert select_free_product({PEPSI.id: 3, WATER.id: 5}, CATALOG) == PEPSI

    def test_tie_keeps_first_in_cart_order(self):
        assert select_free_product({TAMS.id: 1, MILKIS.id: 2}, CATALOG) == TAMS
        assert select_free_product({MILKIS.id: 2, TAMS.id: 1}, CATALOG) == MILKIS

    def test_no_eligible_lines(self):
        assert select_free_product({WATER.id: 3}, CATALOG) is None

    def test_recomputed_after_cart_edit(self):
        cart = {PEPSI.id: 3, MILKIS.id: 1}
        assert select_free_product(cart, CATALOG) == MILKIS
        cart = add_to_cart(cart, MILKIS.id, -1)
        assert select_free_product(cart, CATALOG) == PEPSI


class TestDisplayHelpers:
    def test_discount_percent(self):
        # 17000 free on 51000 paid -> 25%
        assert discount_percent(51000, 17000) == 25

    def test_discount_rounds_half_up(self):
        # 1 / 8 * 100 = 12.5
        assert discount_percent(7, 1) == 13

    def test_no_discount_without_grant(self):
        assert discount_percent(51000, 0) == 0

    def test_average_box_price(self):
        assert average_box_price(51000, 3, 1) == 12750

    def test_average_skipped_without_grant(self):
        assert average_box_price(51000, 3, 0) is None


class TestQuote:
    def test_end_to_end_scenario(self):
        product_a = CatalogItem(id=10, name="Product A", price=17000, category=CATEGORY_CAN, is_qualifying_family=True)
        product_b = CatalogItem(id=11, name="Product B", price=1000, category=CATEGORY_WATER)
        catalog = {product_a.id: product_a, product_b.id: product_b}

        result = quote({product_a.id: 3, product_b.id: 2}, catalog, used_this_month=0)

        assert result.totals.total_all_boxes == 5
        assert result.totals.total_eligible_boxes == 3
        assert result.eligibility.has_qualifying_product is True
        assert result.eligibility.raw_free_boxes == 1
        assert result.granted_free_boxes == 1
        assert result.free_line.product == product_a
        assert result.free_line.quantity == 1
        assert result.totals.total_amount == 53000
        assert result.total_boxes == 4
        assert result.totals.water_boxes == 2

    def test_cheapest_substitution_with_grant(self):
        result = quote({PEPSI.id: 2, MILKIS.id: 1}, CATALOG, used_this_month=0)
        assert result.granted_free_boxes == 1
        assert result.free_line.product.price == 15000

    def test_no_free_line_when_cap_exhausted(self):
        result = quote({PEPSI.id: 9}, CATALOG, used_this_month=10)
        assert result.eligibility.raw_free_boxes == 3
        assert result.granted_free_boxes == 0
        assert result.free_line is None
        assert result.discount_percent == 0
        assert result.average_box_price is None
        assert result.remaining_after_order == 0

    def test_remaining_after_order(self):
        result = quote({PEPSI.id: 6}, CATALOG, used_this_month=3)
        assert result.granted_free_boxes == 2
        assert result.remaining_after_order == 5

    def test_to_dict_shape(self):
        data = quote({PEPSI.id: 3}, CATALOG, used_this_month=0).to_dict()
        assert data["free_line"]["unit_price"] == 0
        assert data["free_line"]["product_id"] == PEPSI.id
        assert data["granted_free_boxes"] == 1


class TestCatalogItem:
    def test_rejects_negative_price(self):
        with pytest.raises(ValidationError):
            CatalogItem(id=1, name="x", price=-1, category=CATEGORY_CAN)

    def test_rejects_unknown_category(self):
        with pytest.raises(ValidationError):
            CatalogItem(id=1, name="x", price=100, category="JUICE")

    def test_rejects_float_price(self):
        with pytest.raises(ValidationError):
            CatalogItem(id=1, name="x", price=100.5, category=CATEGORY_CAN)

    def test_eligible_category(self):
        assert PEPSI.is_eligible_category is True
        assert WATER.is_eligible_category is False
