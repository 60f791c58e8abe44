import logging
from typing import Optional, Tuple

from .currency import conversion_rate, rounds, to_display
from .domain import Catalog, CartItem, ProductType, SalesSession, Totals, TypeSubtotal
from .promotions import apply_combos, natural_subtotal, promo_for_type, type_promo_subtotal

logger = logging.getLogger(__name__)


def enabled_types(types: Tuple[ProductType, ...]) -> Tuple[ProductType, ...]:
    """Включённые типы в порядке отображения"""
    return tuple(sorted(filter(lambda t: t.enabled, types), key=lambda t: t.order))


def items_of_type(cart: Tuple[CartItem, ...], type_id: str) -> Tuple[CartItem, ...]:
    return tuple(filter(lambda it: it.product.type_id == type_id, cart))


def _type_subtotal(
    product_type: ProductType,
    cart: Tuple[CartItem, ...],
    catalog: Catalog,
    session: SalesSession,
) -> TypeSubtotal:
    type_items = items_of_type(cart, product_type.id)
    promo = promo_for_type(catalog.promotions, product_type.id)
    outcome, base_subtotal = type_promo_subtotal(type_items, promo)

    config_error = None
    if outcome.is_left:
        config_error = outcome.value
        logger.warning(
            "Incomplete promotion %r for type %s at quantity %d: %s",
            config_error.promo_name,
            product_type.name,
            config_error.quantity,
            config_error.reason,
        )

    return TypeSubtotal(
        type=product_type,
        subtotal=to_display(base_subtotal, session),
        base_subtotal=base_subtotal,
        natural_subtotal=natural_subtotal(type_items),
        has_promo=promo is not None,
        promo_name=promo.name if promo else None,
        promo_applied=outcome.is_right and outcome.value.applied,
        config_error=config_error,
    )


def type_subtotals(
    session: SalesSession,
    catalog: Catalog,
    cart: Optional[Tuple[CartItem, ...]] = None,
) -> Tuple[TypeSubtotal, ...]:
    """
    Промежуточные итоги по каждому включённому типу (в порядке order).
    Типы без позиций тоже попадают в результат с нулём.
    cart — корзина после combo-акций; по умолчанию корзина сессии.
    """
    items = session.cart if cart is None else cart
    return tuple(
        _type_subtotal(t, items, catalog, session) for t in enabled_types(catalog.types)
    )


def cart_totals(session: SalesSession, catalog: Catalog) -> Totals:
    """
    Итог корзины: combo-акции, затем итоги по типам, затем ручной итог.

    Позиции типов, которые выключены или отсутствуют в каталоге,
    идут по натуральной цене в other_subtotal и тоже входят в итог.
    """
    combos = apply_combos(session.cart, catalog.promotions)
    subtotals = type_subtotals(session, catalog, combos.remaining)

    visible_ids = {row.type.id for row in subtotals}
    other_items = tuple(it for it in combos.remaining if it.product.type_id not in visible_ids)
    other_base = natural_subtotal(other_items)

    combo_subtotal = to_display(combos.subtotal, session)
    other_subtotal = to_display(other_base, session)
    calculated_total = combo_subtotal + other_subtotal + sum(row.subtotal for row in subtotals)

    natural_base = natural_subtotal(session.cart)
    calculated_base = combos.subtotal + other_base + sum(row.base_subtotal for row in subtotals)
    # скидка не округляется: это разница, а не сумма к оплате
    discount = (natural_base - calculated_base) * conversion_rate(session)

    override_active = session.order_override is not None
    total = to_display(session.order_override, session) if override_active else calculated_total

    applied = combos.applied + tuple(
        row.promo_name for row in subtotals if row.promo_applied and row.promo_name
    )
    warnings = tuple(row.config_error for row in subtotals if row.config_error is not None)

    return Totals(
        currency=session.display_currency,
        type_subtotals=subtotals,
        combo_subtotal=combo_subtotal,
        other_subtotal=other_subtotal,
        natural_subtotal=to_display(natural_base, session),
        calculated_total=calculated_total,
        total=total,
        discount=discount,
        applied_promotions=applied,
        has_overrides=override_active or any(it.override_price is not None for it in session.cart),
        override_active=override_active,
        rounded=rounds(session),
        warnings=warnings,
    )
