from dataclasses import dataclass, field
from typing import Optional, Tuple, Dict


CURRENCIES: Dict[str, Dict[str, str]] = {
    "USD": {"symbol": "$", "name": "US Dollar"},
    "EUR": {"symbol": "€", "name": "Euro"},
    "GBP": {"symbol": "£", "name": "British Pound"},
}

PAYMENT_METHODS: Tuple[str, ...] = ("cash", "card", "qr")

PROMO_TYPE_LIST = "type_list"
PROMO_COMBO = "combo"


@dataclass(frozen=True)
class ProductType:
    id: str
    name: str
    order: int = 0
    enabled: bool = True
    color: str = "#FFFFFF"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float  # в основной валюте
    type_id: str
    promo_eligible: bool = False
    enabled: bool = True
    order: int = 0
    subgroup: Optional[str] = None


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int
    override_price: Optional[float] = None  # в основной валюте


@dataclass(frozen=True)
class Promotion:
    """
    Акция на тип товара.
    type_list: таблица цен quantity -> цена пакета + шаги сверх max_quantity
    combo: фиксированная цена набора товаров
    """

    id: str
    name: str
    mode: str = PROMO_TYPE_LIST
    type_id: Optional[str] = None
    max_quantity: int = 0
    prices: Dict[int, float] = field(default_factory=dict)
    incremental_price: Optional[float] = None
    incremental_price_10_plus: Optional[float] = None
    combo_product_ids: Tuple[str, ...] = ()
    combo_price: Optional[float] = None
    order: int = 0


@dataclass(frozen=True)
class ExchangeRates:
    """Курсы относительно USD; custom_rates перекрывают загруженные"""

    rates: Dict[str, float]
    custom_rates: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Catalog:
    types: Tuple[ProductType, ...]
    products: Tuple[Product, ...]
    promotions: Tuple[Promotion, ...] = ()


@dataclass(frozen=True)
class SalesSession:
    """Состояние активной продажи: корзина, валюты, ручной итог"""

    cart: Tuple[CartItem, ...]
    base_currency: str
    display_currency: str
    rates: ExchangeRates
    round_up: bool = False
    order_override: Optional[float] = None  # в основной валюте


@dataclass(frozen=True)
class PromoConfigError:
    promo_id: str
    promo_name: str
    type_id: Optional[str]
    quantity: int
    reason: str


@dataclass(frozen=True)
class TypeSubtotal:
    type: ProductType
    subtotal: float  # в валюте отображения
    base_subtotal: float
    natural_subtotal: float
    has_promo: bool = False
    promo_name: Optional[str] = None
    promo_applied: bool = False
    config_error: Optional[PromoConfigError] = None


@dataclass(frozen=True)
class Totals:
    currency: str
    type_subtotals: Tuple[TypeSubtotal, ...]
    combo_subtotal: float
    other_subtotal: float
    natural_subtotal: float
    calculated_total: float
    total: float
    discount: float
    applied_promotions: Tuple[str, ...]
    has_overrides: bool
    override_active: bool
    rounded: bool
    warnings: Tuple[PromoConfigError, ...] = ()


@dataclass(frozen=True)
class TransactionLine:
    product_id: str
    name: str
    type_id: str
    quantity: int
    unit_price: float
    subgroup: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    id: str
    items: Tuple[TransactionLine, ...]
    subtotal: float
    discount: float
    total: float
    currency: str
    payment_method: str
    ts: str
    applied_promotions: Tuple[str, ...] = ()
    note: Optional[str] = None
    override_total: Optional[float] = None
    original_currency: Optional[str] = None
    original_total: Optional[float] = None
    original_subtotal: Optional[float] = None


@dataclass(frozen=True)
class Event:
    id: str
    ts: str
    name: str
    payload: Dict
