import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from dataclasses import replace
from pos_core.domain import CartItem, Product, Promotion
from pos_core.ftypes import Found, Missing, OutOfRange
from pos_core.promotions import (
    apply_combos,
    lookup_price,
    natural_subtotal,
    resolve_eligible,
    type_promo_subtotal,
)

LEMONADE = Product(id="p1", name="Lemonade", price=6.0, type_id="drinks", promo_eligible=True)
ICED_TEA = Product(id="p2", name="Iced Tea", price=5.0, type_id="drinks", promo_eligible=True)
ESPRESSO = Product(id="p3", name="Espresso", price=3.0, type_id="drinks", promo_eligible=False)


@pytest.fixture
def drinks_promo():
    return Promotion(
        id="promo_1",
        name="Drinks Promo",
        type_id="drinks",
        max_quantity=4,
        prices={2: 10, 3: 14, 4: 18},
        incremental_price=4,
        incremental_price_10_plus=10,
    )


def eligible(qty):
    return (CartItem(product=LEMONADE, quantity=qty),)


def amount(result):
    assert result.is_right, result
    return result.value.amount


# ============ Табличный поиск ============


def test_lookup_price_variants(drinks_promo):
    gap = replace(drinks_promo, prices={2: 10, 4: 18})
    assert lookup_price(drinks_promo, 3) == Found(14)
    assert lookup_price(gap, 3) == Missing(3)
    assert lookup_price(drinks_promo, 1) == OutOfRange(1)
    assert lookup_price(drinks_promo, 5) == OutOfRange(5)


# ============ Натуральная цена ============


def test_no_promotion_uses_natural_price():
    items = (CartItem(product=LEMONADE, quantity=2), CartItem(product=ICED_TEA, quantity=1))
    result = resolve_eligible(items, None)
    assert amount(result) == 17.0
    assert not result.value.applied


def test_single_unit_is_not_promoted(drinks_promo):
    result = resolve_eligible(eligible(1), drinks_promo)
    assert amount(result) == 6.0
    assert not result.value.applied


def test_natural_price_honors_item_override(drinks_promo):
    items = (CartItem(product=LEMONADE, quantity=1, override_price=2.5),)
    assert amount(resolve_eligible(items, drinks_promo)) == 2.5
    assert natural_subtotal(items + (CartItem(product=ESPRESSO, quantity=2),)) == 8.5


# ============ Таблица и шаги ============


@pytest.mark.parametrize("qty, expected", [(2, 10), (3, 14), (4, 18)])
def test_table_prices(drinks_promo, qty, expected):
    result = resolve_eligible(eligible(qty), drinks_promo)
    assert amount(result) == expected
    assert result.value.applied


def test_mixed_products_share_promo_quantity(drinks_promo):
    items = (CartItem(product=LEMONADE, quantity=1), CartItem(product=ICED_TEA, quantity=2))
    assert amount(resolve_eligible(items, drinks_promo)) == 14


def test_six_units_use_first_band(drinks_promo):
    assert amount(resolve_eligible(eligible(6), drinks_promo)) == 26


def test_max_plus_three(drinks_promo):
    assert amount(resolve_eligible(eligible(7), drinks_promo)) == 18 + 3 * 4


def test_fifth_extra_unit_still_first_band(drinks_promo):
    assert amount(resolve_eligible(eligible(9), drinks_promo)) == 18 + 5 * 4


def test_sixth_extra_unit_switches_band(drinks_promo):
    assert amount(resolve_eligible(eligible(10), drinks_promo)) == 48


def test_max_plus_eight(drinks_promo):
    assert amount(resolve_eligible(eligible(12), drinks_promo)) == 18 + 5 * 4 + 3 * 10


def test_eleven_units(drinks_promo):
    assert amount(resolve_eligible(eligible(11), drinks_promo)) == 18 + 5 * 4 + 2 * 10


# ============ Ошибки настройки ============


def test_table_gap_is_reported(drinks_promo):
    gap = replace(drinks_promo, prices={2: 10, 4: 18})
    result = resolve_eligible(eligible(3), gap)
    assert result.is_left
    assert result.value.quantity == 3
    assert result.value.promo_id == "promo_1"


def test_missing_incremental_price_is_reported(drinks_promo):
    no_step = replace(drinks_promo, incremental_price=None)
    assert resolve_eligible(eligible(5), no_step).is_left
    assert amount(resolve_eligible(eligible(4), no_step)) == 18


def test_missing_second_band_price(drinks_promo):
    no_second = replace(drinks_promo, incremental_price_10_plus=None)
    assert amount(resolve_eligible(eligible(9), no_second)) == 38
    assert resolve_eligible(eligible(10), no_second).is_left


def test_missing_base_price_for_overflow(drinks_promo):
    no_base = replace(drinks_promo, prices={2: 10, 3: 14})
    assert resolve_eligible(eligible(5), no_base).is_left


# ============ Итог типа ============


def test_non_eligible_items_added_at_natural_price(drinks_promo):
    items = (CartItem(product=LEMONADE, quantity=3), CartItem(product=ESPRESSO, quantity=2))
    outcome, subtotal = type_promo_subtotal(items, drinks_promo)
    assert outcome.is_right
    assert subtotal == 14 + 6


def test_misconfigured_group_falls_back_to_natural_price(drinks_promo):
    gap = replace(drinks_promo, prices={2: 10, 4: 18})
    items = (CartItem(product=LEMONADE, quantity=3), CartItem(product=ESPRESSO, quantity=1))
    outcome, subtotal = type_promo_subtotal(items, gap)
    assert outcome.is_left
    assert subtotal == 3 * 6 + 3


# ============ Наборы (combo) ============


CRISPS = Product(id="p4", name="Crisps", price=2.5, type_id="snacks", promo_eligible=True)
BROWNIE = Product(id="p5", name="Brownie", price=4.0, type_id="snacks", promo_eligible=True)
COMBO = Promotion(
    id="promo_2",
    name="Crisps + Brownie",
    mode="combo",
    combo_product_ids=("p4", "p5"),
    combo_price=5.5,
)


def test_combo_consumes_quantities():
    cart = (CartItem(product=CRISPS, quantity=3), CartItem(product=BROWNIE, quantity=2))
    result = apply_combos(cart, (COMBO,))
    assert result.subtotal == 11.0
    assert result.applied == ("Crisps + Brownie",)
    assert result.remaining == (CartItem(product=CRISPS, quantity=1),)


def test_combo_requires_every_product():
    cart = (CartItem(product=CRISPS, quantity=3),)
    result = apply_combos(cart, (COMBO,))
    assert result.subtotal == 0.0
    assert result.remaining == cart


def test_combo_skips_non_eligible_products():
    plain = replace(BROWNIE, promo_eligible=False)
    cart = (CartItem(product=CRISPS, quantity=1), CartItem(product=plain, quantity=1))
    assert apply_combos(cart, (COMBO,)).applied == ()


def test_combos_run_in_promotion_order():
    crisps_pair = Promotion(
        id="promo_4",
        name="Crisps Pair",
        mode="combo",
        combo_product_ids=("p4",),
        combo_price=4.0,
        order=0,
    )
    later_combo = replace(COMBO, order=1)
    cart = (CartItem(product=CRISPS, quantity=1), CartItem(product=BROWNIE, quantity=1))
    # список в обратном порядке: решает order, а не позиция
    result = apply_combos(cart, (later_combo, crisps_pair))
    assert result.applied == ("Crisps Pair",)
    assert result.subtotal == 4.0
    assert result.remaining == (CartItem(product=BROWNIE, quantity=1),)


def test_combos_with_equal_order_keep_list_order():
    crisps_pair = Promotion(
        id="promo_4", name="Crisps Pair", mode="combo", combo_product_ids=("p4",), combo_price=4.0
    )
    cart = (CartItem(product=CRISPS, quantity=1), CartItem(product=BROWNIE, quantity=1))
    assert apply_combos(cart, (COMBO, crisps_pair)).applied == ("Crisps + Brownie",)
