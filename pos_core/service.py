import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from .catalog import enabled_products, safe_product, type_by_id
from .config import Settings
from .domain import Catalog, ExchangeRates, Product, ProductType, SalesSession, Totals, Transaction, TypeSubtotal
from .events import SessionBus, create_event, create_session_bus
from .ftypes import Either, Maybe
from .pricing import cart_totals, enabled_types, type_subtotals
from .transactions import build_transaction

logger = logging.getLogger(__name__)

TransactionSink = Callable[[Transaction], None]


class TransactionRejected(Exception):
    """Хранилище продаж отказалось принять запись"""


def new_session(settings: Settings, rates: ExchangeRates) -> SalesSession:
    return SalesSession(
        cart=(),
        base_currency=settings.base_currency,
        display_currency=settings.display_currency,
        rates=rates,
        round_up=settings.currency_round_up,
    )


class CatalogService:
    """Фасад для работы с каталогом мероприятия (только чтение)"""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def visible_types(self) -> Tuple[ProductType, ...]:
        return enabled_types(self.catalog.types)

    def products_of_type(self, type_id: str) -> Tuple[Product, ...]:
        return enabled_products(self.catalog, type_id)

    def product(self, product_id: str) -> Maybe[Product]:
        return safe_product(self.catalog, product_id)

    def product_type(self, type_id: str) -> Maybe[ProductType]:
        return type_by_id(self.catalog, type_id)


class SalesService:
    """
    Фасад активной продажи. Владеет сессией; каждое действие публикуется
    в шину и возвращает новую сессию, итоги считаются явно через totals().
    """

    def __init__(
        self,
        catalog_service: CatalogService,
        session: SalesSession,
        sink: TransactionSink,
        is_locked: Callable[[], bool] = lambda: False,
        settlement_currency: str = "EUR",
        bus: Optional[SessionBus] = None,
    ):
        self.catalog = catalog_service
        self.session = session
        self.sink = sink
        self.is_locked = is_locked
        self.settlement_currency = settlement_currency
        self.bus = bus or create_session_bus()

    def dispatch(self, name: str, **payload) -> SalesSession:
        self.session = self.bus.publish(create_event(name, payload), self.session)
        return self.session

    # ---- корзина ----

    def add(self, product_id: str, qty: int = 1) -> SalesSession:
        product = self.catalog.product(product_id)
        if product.is_none():
            logger.warning("Unknown product %s", product_id)
            return self.session
        return self.dispatch("ADD_TO_CART", product=product.value, qty=qty)

    def remove(self, product_id: str) -> SalesSession:
        return self.dispatch("REMOVE_FROM_CART", product_id=product_id)

    def clear(self) -> SalesSession:
        return self.dispatch("CLEAR_CART")

    # ---- ручные цены ----

    def set_item_price(self, product_id: str, price: float) -> SalesSession:
        return self.dispatch("SET_ITEM_PRICE", product_id=product_id, price=price)

    def clear_item_price(self, product_id: str) -> SalesSession:
        return self.dispatch("CLEAR_ITEM_PRICE", product_id=product_id)

    def set_total(self, total: float) -> SalesSession:
        return self.dispatch("SET_TOTAL", total=total)

    def clear_total(self) -> SalesSession:
        return self.dispatch("CLEAR_TOTAL")

    def set_display_currency(self, currency: str) -> SalesSession:
        return self.dispatch("SET_DISPLAY_CURRENCY", currency=currency)

    # ---- итоги ----

    def totals(self) -> Totals:
        return cart_totals(self.session, self.catalog.catalog)

    def type_subtotals(self) -> Tuple[TypeSubtotal, ...]:
        return type_subtotals(self.session, self.catalog.catalog)

    def can_edit_prices(self) -> bool:
        return not self.is_locked()

    # ---- оплата ----

    def complete_transaction(
        self, payment_method: str, note: Optional[str] = None, ts: Optional[str] = None
    ) -> Either[dict, Transaction]:
        """
        Формирует запись продажи, передаёт её в хранилище и очищает корзину.
        При отказе хранилища корзина остаётся нетронутой.
        """
        result = build_transaction(
            self.session,
            self.catalog.catalog,
            payment_method,
            ts or datetime.now().isoformat(),
            note=note,
            locked=self.is_locked(),
            settlement_currency=self.settlement_currency,
        )
        if result.is_left:
            logger.error("Transaction not completed: %s", result.value["error"])
            return result

        transaction = result.value
        try:
            self.sink(transaction)
        except TransactionRejected as e:
            logger.error("Transaction %s rejected by storage: %s", transaction.id, e)
            return Either.left({"error": str(e)})

        logger.info(
            "Transaction %s completed: %.2f %s (%s)",
            transaction.id,
            transaction.total,
            transaction.currency,
            transaction.payment_method,
        )
        self.clear()
        return result
