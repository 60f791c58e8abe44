import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from pos_core.config import Settings
from pos_core.domain import Catalog, ExchangeRates, Product, ProductType, Promotion
from pos_core.service import CatalogService, SalesService, TransactionRejected, new_session

SETTINGS = Settings(
    base_currency="EUR",
    display_currency="EUR",
    currency_round_up=False,
    card_settlement_currency="EUR",
    seed_path="",
    log_level="INFO",
)
RATES = ExchangeRates(rates={"USD": 1.0, "EUR": 0.92})

CATALOG = Catalog(
    types=(
        ProductType(id="drinks", name="Drinks", order=0),
        ProductType(id="merch", name="Merch", order=1, enabled=False),
    ),
    products=(
        Product(id="p1", name="Lemonade", price=6.0, type_id="drinks", promo_eligible=True, order=1),
        Product(id="p2", name="Iced Tea", price=5.0, type_id="drinks", promo_eligible=True, order=0),
        Product(id="p9", name="Old Tea", price=1.0, type_id="drinks", enabled=False),
    ),
    promotions=(
        Promotion(
            id="promo_1",
            name="Drinks Promo",
            type_id="drinks",
            max_quantity=4,
            prices={2: 10, 3: 14, 4: 18},
            incremental_price=4,
            incremental_price_10_plus=10,
        ),
    ),
)


@pytest.fixture
def recorded():
    return []


@pytest.fixture
def sales(recorded):
    return SalesService(
        CatalogService(CATALOG),
        new_session(SETTINGS, RATES),
        sink=recorded.append,
    )


def test_catalog_service_filters_and_orders():
    svc = CatalogService(CATALOG)
    assert [t.id for t in svc.visible_types()] == ["drinks"]
    assert [p.id for p in svc.products_of_type("drinks")] == ["p2", "p1"]
    assert svc.product("p404").is_none()
    assert svc.product_type("merch").get_or_else(None).name == "Merch"


def test_add_unknown_product_is_ignored(sales):
    before = sales.session
    assert sales.add("p404") is before


def test_totals_recomputed_after_actions(sales):
    sales.add("p1")
    sales.add("p2")
    assert sales.totals().total == 10
    sales.set_total(8)
    assert sales.totals().total == 8
    sales.clear_total()
    assert sales.totals().total == 10


def test_complete_transaction_records_and_clears(sales, recorded):
    sales.add("p1")
    sales.add("p1")
    result = sales.complete_transaction("cash", "thanks", ts="2026-10-17T09:00:00")

    assert result.is_right
    assert recorded == [result.value]
    assert result.value.total == 10
    assert sales.session.cart == ()


def test_sink_failure_keeps_cart():
    def failing_sink(transaction):
        raise TransactionRejected("storage unavailable")

    sales = SalesService(CatalogService(CATALOG), new_session(SETTINGS, RATES), sink=failing_sink)
    sales.add("p1")
    result = sales.complete_transaction("card")

    assert result.is_left
    assert result.value["error"] == "storage unavailable"
    assert len(sales.session.cart) == 1


def test_locked_event_blocks_payment_and_edits(recorded):
    sales = SalesService(
        CatalogService(CATALOG),
        new_session(SETTINGS, RATES),
        sink=recorded.append,
        is_locked=lambda: True,
    )
    sales.add("p1")
    result = sales.complete_transaction("cash")

    assert result.is_left
    assert not sales.can_edit_prices()
    assert recorded == []
