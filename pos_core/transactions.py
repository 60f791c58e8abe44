import uuid
from typing import Dict, Optional, Tuple

from .currency import conversion_rate, get_effective_rate, to_display
from .domain import PAYMENT_METHODS, CartItem, Catalog, SalesSession, Totals, Transaction, TransactionLine
from .ftypes import Either
from .pricing import cart_totals, type_subtotals
from .promotions import apply_combos, effective_price

LOCKED_MESSAGE = "This event is locked. You cannot register new transactions."


def _share(group_amount: float, natural: float, units: int, group_natural: float, group_units: int) -> float:
    """Доля позиции в сумме группы: по натуральной цене, а при нулевой — по количеству"""
    if group_natural > 0:
        return group_amount * natural / group_natural
    return group_amount * units / group_units if group_units else 0.0


def _line_amounts(session: SalesSession, catalog: Catalog) -> Dict[str, float]:
    """
    Сумма каждой позиции в основной валюте со скидкой акций,
    распределённой пропорционально натуральной цене:
    единицы, ушедшие в combo, делят combo-итог, остальные — итог своего типа.
    """
    combos = apply_combos(session.cart, catalog.promotions)
    remaining = {it.product.id: it.quantity for it in combos.remaining}
    consumed = {it.product.id: it.quantity - remaining.get(it.product.id, 0) for it in session.cart}

    combo_natural = sum(effective_price(it) * consumed[it.product.id] for it in session.cart)
    combo_units = sum(consumed.values())

    rows = {row.type.id: row for row in type_subtotals(session, catalog, combos.remaining)}
    type_units: Dict[str, int] = {}
    for it in combos.remaining:
        type_units[it.product.type_id] = type_units.get(it.product.type_id, 0) + it.quantity

    def amount(it: CartItem) -> float:
        price = effective_price(it)
        used = consumed[it.product.id]
        left = remaining.get(it.product.id, 0)
        in_combo = _share(combos.subtotal, used * price, used, combo_natural, combo_units)
        row = rows.get(it.product.type_id)
        if row is None:
            # тип выключен или неизвестен: натуральная цена
            return in_combo + left * price
        units = type_units.get(it.product.type_id, 0)
        return in_combo + _share(row.base_subtotal, left * price, left, row.natural_subtotal, units)

    return {it.product.id: amount(it) for it in session.cart}


def _lines(
    session: SalesSession, catalog: Catalog, totals: Totals, rate: float
) -> Tuple[TransactionLine, ...]:
    items = tuple(it for it in session.cart if it.quantity > 0)
    amounts = {pid: a * conversion_rate(session) for pid, a in _line_amounts(session, catalog).items()}
    # подгоняем сумму строк под итог к оплате (ручной итог, округление)
    lines_sum = sum(amounts[it.product.id] for it in items)
    if lines_sum > 0:
        payable = {it.product.id: amounts[it.product.id] * totals.total / lines_sum for it in items}
    else:
        units = sum(it.quantity for it in items)
        payable = {it.product.id: totals.total * it.quantity / units for it in items}

    return tuple(
        TransactionLine(
            product_id=it.product.id,
            name=it.product.name,
            type_id=it.product.type_id,
            quantity=it.quantity,
            unit_price=payable[it.product.id] * rate / it.quantity,
            subgroup=it.product.subgroup,
        )
        for it in items
    )


def build_transaction(
    session: SalesSession,
    catalog: Catalog,
    payment_method: str,
    ts: str,
    note: Optional[str] = None,
    locked: bool = False,
    settlement_currency: str = "EUR",
) -> Either[dict, Transaction]:
    """
    Запись продажи из текущей корзины → Either[error, Transaction].
    Оплата картой проводится в settlement_currency, наличные и QR —
    в валюте отображения.
    """
    if locked:
        return Either.left({"error": LOCKED_MESSAGE})
    if payment_method not in PAYMENT_METHODS:
        return Either.left({"error": f"Unknown payment method '{payment_method}'"})
    if not any(it.quantity > 0 for it in session.cart):
        return Either.left({"error": "Cart is empty"})

    totals = cart_totals(session, catalog)

    converted = payment_method == "card" and session.display_currency != settlement_currency
    currency = settlement_currency if converted else session.display_currency
    rate = (
        get_effective_rate(session.rates, settlement_currency)
        / get_effective_rate(session.rates, session.display_currency)
        if converted
        else 1.0
    )

    override_total = (
        to_display(session.order_override, session) * rate
        if session.order_override is not None
        else None
    )

    return Either.right(
        Transaction(
            id=str(uuid.uuid4()),
            items=_lines(session, catalog, totals, rate),
            subtotal=totals.natural_subtotal * rate,
            discount=totals.discount * rate,
            total=totals.total * rate,
            currency=currency,
            payment_method=payment_method,
            ts=str(ts),
            applied_promotions=totals.applied_promotions,
            note=(note or "").strip() or None,
            override_total=override_total,
            original_currency=session.display_currency if converted else None,
            original_total=totals.total if converted else None,
            original_subtotal=totals.natural_subtotal if converted else None,
        )
    )
