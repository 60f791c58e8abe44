from dataclasses import dataclass, replace
from functools import reduce
from typing import Dict, Optional, Tuple

from .domain import (
    PROMO_COMBO,
    PROMO_TYPE_LIST,
    CartItem,
    PromoConfigError,
    Promotion,
)
from .ftypes import Either, Found, Missing, OutOfRange, PriceLookup

# акция работает от 2 штук
MIN_PROMO_QUANTITY = 2
# первые 5 штук сверх таблицы идут по incremental_price, дальше incremental_price_10_plus
FIRST_BAND_SIZE = 5


@dataclass(frozen=True)
class PromoOutcome:
    amount: float
    applied: bool


@dataclass(frozen=True)
class ComboResult:
    subtotal: float
    applied: Tuple[str, ...]
    remaining: Tuple[CartItem, ...]


# ============ Натуральная цена ============


def effective_price(item: CartItem) -> float:
    """Ручная цена позиции, если задана, иначе цена каталога"""
    return item.override_price if item.override_price is not None else item.product.price


def natural_subtotal(items: Tuple[CartItem, ...]) -> float:
    return reduce(lambda acc, it: acc + effective_price(it) * it.quantity, items, 0.0)


def total_quantity(items: Tuple[CartItem, ...]) -> int:
    return sum(it.quantity for it in items)


# ============ Акции type_list ============


def promo_for_type(promotions: Tuple[Promotion, ...], type_id: str) -> Optional[Promotion]:
    return next(
        (p for p in promotions if p.mode == PROMO_TYPE_LIST and p.type_id == type_id),
        None,
    )


def lookup_price(promo: Promotion, quantity: int) -> PriceLookup:
    """Found(price) | OutOfRange | Missing вместо неявного нуля"""
    if quantity < MIN_PROMO_QUANTITY or quantity > promo.max_quantity:
        return OutOfRange(quantity)
    price = promo.prices.get(quantity)
    return Found(price) if price is not None else Missing(quantity)


def _config_error(promo: Promotion, quantity: int, reason: str) -> Either:
    return Either.left(
        PromoConfigError(
            promo_id=promo.id,
            promo_name=promo.name,
            type_id=promo.type_id,
            quantity=quantity,
            reason=reason,
        )
    )


def _overflow_price(promo: Promotion, quantity: int) -> Either:
    base = lookup_price(promo, promo.max_quantity)
    if not isinstance(base, Found):
        return _config_error(promo, quantity, f"no price for max quantity {promo.max_quantity}")

    extra = quantity - promo.max_quantity
    if promo.incremental_price is None:
        return _config_error(promo, quantity, "incremental price is not set")

    if extra <= FIRST_BAND_SIZE:
        return Either.right(PromoOutcome(base.price + extra * promo.incremental_price, True))

    if promo.incremental_price_10_plus is None:
        return _config_error(promo, quantity, "incremental price for the second band is not set")

    amount = (
        base.price
        + FIRST_BAND_SIZE * promo.incremental_price
        + (extra - FIRST_BAND_SIZE) * promo.incremental_price_10_plus
    )
    return Either.right(PromoOutcome(amount, True))


def resolve_eligible(
    items: Tuple[CartItem, ...], promo: Optional[Promotion]
) -> Either[PromoConfigError, PromoOutcome]:
    """
    Цена группы товаров, участвующих в акции типа.

    - нет акции / нет позиций / меньше 2 штук -> натуральная цена
    - 2..max_quantity -> цена из таблицы
    - больше max_quantity -> prices[max] + шаги по incremental ценам
    Пробел в таблице или отсутствие шага -> Left(PromoConfigError)
    """
    if promo is None or not items:
        return Either.right(PromoOutcome(natural_subtotal(items), False))

    quantity = total_quantity(items)
    if quantity < MIN_PROMO_QUANTITY:
        return Either.right(PromoOutcome(natural_subtotal(items), False))

    if quantity > promo.max_quantity:
        return _overflow_price(promo, quantity)

    found = lookup_price(promo, quantity)
    if isinstance(found, Found):
        return Either.right(PromoOutcome(found.price, True))
    if isinstance(found, Missing):
        return _config_error(promo, quantity, f"no price for quantity {quantity}")
    # OutOfRange здесь возможен только при max_quantity < 2
    return _config_error(promo, quantity, f"max quantity {promo.max_quantity} is below 2")


def split_eligible(
    items: Tuple[CartItem, ...],
) -> Tuple[Tuple[CartItem, ...], Tuple[CartItem, ...]]:
    eligible = tuple(it for it in items if it.product.promo_eligible)
    others = tuple(it for it in items if not it.product.promo_eligible)
    return eligible, others


def type_promo_subtotal(
    type_items: Tuple[CartItem, ...], promo: Optional[Promotion]
) -> Tuple[Either[PromoConfigError, PromoOutcome], float]:
    """
    Возвращает (результат для группы акции, итог типа).
    Не участвующие в акции позиции всегда по натуральной цене.
    При ошибке настройки группа акции тоже считается по натуральной цене.
    """
    eligible, others = split_eligible(type_items)
    outcome = resolve_eligible(eligible, promo)
    eligible_amount = outcome.value.amount if outcome.is_right else natural_subtotal(eligible)
    return outcome, eligible_amount + natural_subtotal(others)


# ============ Акции combo ============


def _combo_count(promo: Promotion, remaining: Dict[str, int], items: Dict[str, CartItem]) -> int:
    counts = []
    for pid in promo.combo_product_ids:
        item = items.get(pid)
        if item is None or not item.product.promo_eligible or remaining.get(pid, 0) < 1:
            return 0
        counts.append(remaining[pid])
    return min(counts) if counts else 0


def apply_combos(
    cart: Tuple[CartItem, ...], promotions: Tuple[Promotion, ...]
) -> ComboResult:
    """
    Собирает максимальное число полных наборов по каждой combo-акции
    (в порядке order) и возвращает корзину с оставшимися количествами.
    """
    combos = sorted(
        (p for p in promotions if p.mode == PROMO_COMBO and p.combo_product_ids and p.combo_price),
        key=lambda p: p.order,
    )
    items = {it.product.id: it for it in cart}

    def apply_one(acc: Tuple[float, Tuple[str, ...], Dict[str, int]], promo: Promotion):
        subtotal, applied, remaining = acc
        count = _combo_count(promo, remaining, items)
        if count == 0:
            return acc
        used = {pid: remaining[pid] - count for pid in promo.combo_product_ids}
        return (
            subtotal + promo.combo_price * count,
            applied + (promo.name,),
            {**remaining, **used},
        )

    subtotal, applied, remaining = reduce(
        apply_one, combos, (0.0, (), {it.product.id: it.quantity for it in cart})
    )
    left = tuple(
        replace(it, quantity=remaining[it.product.id])
        for it in cart
        if remaining[it.product.id] > 0
    )
    return ComboResult(subtotal=subtotal, applied=applied, remaining=left)
