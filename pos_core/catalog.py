import json
from typing import Tuple

from .domain import Catalog, ExchangeRates, Product, ProductType, Promotion, Transaction, TransactionLine
from .ftypes import Maybe

DEFAULT_RATES = {"USD": 1.0, "EUR": 0.92, "GBP": 0.79}


def load_seed(path: str) -> Tuple[Catalog, ExchangeRates, Tuple[Transaction, ...]]:
    """Загружает seed.json: каталог, курсы и историю продаж"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    types = tuple(map(lambda t: ProductType(**t), data.get("types", [])))
    products = tuple(map(lambda p: Product(**p), data.get("products", [])))
    promotions = tuple(map(_to_promotion, data.get("promotions", [])))

    rates = data.get("rates", {})
    exchange_rates = ExchangeRates(
        rates={k: float(v) for k, v in (rates.get("rates") or DEFAULT_RATES).items()},
        custom_rates={k: float(v) for k, v in (rates.get("custom_rates") or {}).items()},
    )
    transactions = tuple(map(_to_transaction, data.get("transactions", [])))
    return Catalog(types=types, products=products, promotions=promotions), exchange_rates, transactions


def _to_promotion(p: dict) -> Promotion:
    p2 = dict(p)
    # в JSON ключи таблицы всегда строки
    p2["prices"] = {int(k): float(v) for k, v in p2.get("prices", {}).items()}
    p2["combo_product_ids"] = tuple(p2.get("combo_product_ids", []))
    return Promotion(**p2)


def _to_transaction(t: dict) -> Transaction:
    t2 = dict(t)
    t2["items"] = tuple(TransactionLine(**line) for line in t2.get("items", []))
    t2["applied_promotions"] = tuple(t2.get("applied_promotions", []))
    return Transaction(**t2)


# ============ Поиск по каталогу ============


def safe_product(catalog: Catalog, product_id: str) -> Maybe[Product]:
    return Maybe.of(next((p for p in catalog.products if p.id == product_id), None))


def type_by_id(catalog: Catalog, type_id: str) -> Maybe[ProductType]:
    return Maybe.of(next((t for t in catalog.types if t.id == type_id), None))


def enabled_products(catalog: Catalog, type_id: str) -> Tuple[Product, ...]:
    """Включённые товары типа в порядке отображения"""
    return tuple(
        sorted(
            (p for p in catalog.products if p.enabled and p.type_id == type_id),
            key=lambda p: p.order,
        )
    )
