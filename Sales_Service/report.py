from functools import reduce
from typing import Dict, Iterable, Iterator, List, Tuple

from pos_core.currency import convert, get_effective_rate
from pos_core.domain import Catalog, ExchangeRates, Transaction, TransactionLine


def _to_main(amount: float, currency: str, rates: ExchangeRates, main_currency: str) -> float:
    if currency == main_currency:
        return amount
    return convert(amount, get_effective_rate(rates, currency), get_effective_rate(rates, main_currency))


def _line_total(line: TransactionLine) -> float:
    return line.unit_price * line.quantity


## лениво отдаёт продажи за день (ГГГГ-ММ-ДД)
def iter_transactions_by_day(
    transactions: Iterable[Transaction], day: str
) -> Iterator[Transaction]:
    for t in transactions:
        if t.ts.startswith(day):
            yield t


# ============ Итоги в основной валюте ============


def daily_totals(
    transactions: Tuple[Transaction, ...], rates: ExchangeRates, main_currency: str
) -> Dict[str, float]:
    """Продажи по дням в основной валюте: {date: total}"""

    def accumulate_by_day(acc: dict, t: Transaction) -> dict:
        day = t.ts[:10]
        return {**acc, day: acc.get(day, 0.0) + _to_main(t.total, t.currency, rates, main_currency)}

    return reduce(accumulate_by_day, transactions, {})


def main_currency_total(
    transactions: Tuple[Transaction, ...], rates: ExchangeRates, main_currency: str
) -> float:
    return sum(daily_totals(transactions, rates, main_currency).values())


# ============ Разбивка по валютам и способам оплаты ============


def currency_summary(transactions: Tuple[Transaction, ...]) -> Dict[str, Dict[str, dict]]:
    """
    {currency: {payment_method: {"total", "count"}}} без конвертации
    """

    def accumulate(acc: dict, t: Transaction) -> dict:
        by_method = acc.get(t.currency, {})
        cell = by_method.get(t.payment_method, {"total": 0.0, "count": 0})
        cell = {"total": cell["total"] + t.total, "count": cell["count"] + 1}
        return {**acc, t.currency: {**by_method, t.payment_method: cell}}

    return reduce(accumulate, transactions, {})


def product_summary(transactions: Tuple[Transaction, ...], catalog: Catalog) -> List[dict]:
    """Проданные товары каталога: количество и суммы по валюте/способу оплаты"""

    def accumulate(acc: dict, t: Transaction) -> dict:
        for line in t.items:
            entry = acc.get(line.product_id, {"quantity": 0, "by_currency_and_method": {}})
            by_cm = entry["by_currency_and_method"]
            by_method = by_cm.get(t.currency, {})
            cell = by_method.get(t.payment_method, {"quantity": 0, "total": 0.0})
            cell = {
                "quantity": cell["quantity"] + line.quantity,
                "total": cell["total"] + _line_total(line),
            }
            acc = {
                **acc,
                line.product_id: {
                    "quantity": entry["quantity"] + line.quantity,
                    "by_currency_and_method": {
                        **by_cm,
                        t.currency: {**by_method, t.payment_method: cell},
                    },
                },
            }
        return acc

    sold = reduce(accumulate, transactions, {})
    return [
        {"product_id": p.id, "name": p.name, **sold[p.id]}
        for p in catalog.products
        if p.id in sold and sold[p.id]["quantity"] > 0
    ]


# ============ Отчёты по типам ============


def type_subtotals_report(
    transactions: Tuple[Transaction, ...],
    catalog: Catalog,
    rates: ExchangeRates,
    main_currency: str,
) -> List[dict]:
    """Все типы каталога (включая нулевые) в порядке order, суммы в основной валюте"""
    totals = {t.id: 0.0 for t in catalog.types}
    for t in transactions:
        for line in t.items:
            if line.type_id in totals:
                totals[line.type_id] += _to_main(_line_total(line), t.currency, rates, main_currency)

    return [
        {"type_id": pt.id, "name": pt.name, "color": pt.color, "total": totals[pt.id]}
        for pt in sorted(catalog.types, key=lambda pt: pt.order)
    ]


def type_group_summary(
    transactions: Tuple[Transaction, ...],
    catalog: Catalog,
    rates: ExchangeRates,
    main_currency: str,
) -> List[dict]:
    """
    Группы по названию типа: итог в основной валюте, разбивка по
    валюте/способу оплаты (в валюте продажи) и по товарам.
    Типы, которых нет в каталоге, идут как "Unknown" в конце.
    """
    type_names = {pt.id: pt.name for pt in catalog.types}
    type_order = {pt.name: pt.order for pt in catalog.types}
    groups: Dict[str, dict] = {}

    for t in transactions:
        for line in t.items:
            name = type_names.get(line.type_id, "Unknown")
            group = groups.setdefault(
                name, {"type": name, "total": 0.0, "by_currency_and_method": {}, "items": {}}
            )
            converted = _to_main(_line_total(line), t.currency, rates, main_currency)
            group["total"] += converted

            cell = group["by_currency_and_method"].setdefault(t.currency, {}).setdefault(
                t.payment_method, {"quantity": 0, "total": 0.0}
            )
            cell["quantity"] += line.quantity
            cell["total"] += _line_total(line)

            item = group["items"].setdefault(line.name, {"name": line.name, "quantity": 0, "amount": 0.0})
            item["quantity"] += line.quantity
            item["amount"] += converted

    return [
        {**g, "items": list(g["items"].values())}
        for g in sorted(groups.values(), key=lambda g: type_order.get(g["type"], 999))
    ]


def subgroup_summary(
    transactions: Tuple[Transaction, ...],
    catalog: Catalog,
    rates: ExchangeRates,
    main_currency: str,
) -> List[dict]:
    """Подгруппы товаров, по убыванию суммы"""
    type_names = {pt.id: pt.name for pt in catalog.types}
    groups: Dict[str, dict] = {}

    for t in transactions:
        for line in t.items:
            if not line.subgroup or not line.subgroup.strip():
                continue
            group = groups.setdefault(
                line.subgroup,
                {
                    "subgroup": line.subgroup,
                    "type": type_names.get(line.type_id, "Unknown"),
                    "total": 0.0,
                    "items": {},
                },
            )
            converted = _to_main(_line_total(line), t.currency, rates, main_currency)
            group["total"] += converted
            item = group["items"].setdefault(line.name, {"name": line.name, "quantity": 0, "amount": 0.0})
            item["quantity"] += line.quantity
            item["amount"] += converted

    return sorted(
        ({**g, "items": list(g["items"].values())} for g in groups.values()),
        key=lambda g: g["total"],
        reverse=True,
    )


# ============ Сводка ============


def sales_summary(
    transactions: Tuple[Transaction, ...], rates: ExchangeRates, main_currency: str
) -> dict:
    total = main_currency_total(transactions, rates, main_currency)
    count = len(transactions)
    return {
        "transactions": count,
        "total": total,
        "average": total / count if count else 0.0,
        "with_override": sum(1 for t in transactions if t.override_total is not None),
        "with_promotions": sum(1 for t in transactions if t.applied_promotions),
        "by_method": reduce(
            lambda acc, t: {**acc, t.payment_method: acc.get(t.payment_method, 0) + 1},
            transactions,
            {},
        ),
    }
