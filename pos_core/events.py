import uuid
from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from typing import Callable, Tuple

from .cart import add_to_cart, clear_cart, remove_from_cart
from .currency import clear_custom_rates, set_custom_rate, set_display_currency
from .domain import Event, SalesSession
from .overrides import clear_item_override, clear_order_override, set_item_override, set_order_override

Handler = Callable[[Event, SalesSession], SalesSession]


@dataclass(frozen=True)
class SessionBus:
    """
    Иммутабельная шина действий над сессией продаж.
    Обработчики — чистые функции (Event, SalesSession) -> SalesSession.
    Итоги не пересчитываются сами: после publish вызывающий зовёт cart_totals.
    """

    subscribers: Tuple[Tuple[str, Handler], ...] = ()

    def subscribe(self, event_name: str, handler: Handler) -> "SessionBus":
        return SessionBus(subscribers=self.subscribers + ((event_name, handler),))

    def publish(self, event: Event, session: SalesSession) -> SalesSession:
        matching = tuple(h for name, h in self.subscribers if name == event.name)
        return reduce(lambda s, h: h(event, s), matching, session)


def create_event(name: str, payload: dict) -> Event:
    return Event(
        id=str(uuid.uuid4()),
        ts=datetime.now().isoformat(),
        name=name,
        payload=payload,
    )


# ============ Обработчики ============


def handle_add_to_cart(event: Event, session: SalesSession) -> SalesSession:
    return add_to_cart(session, event.payload["product"], event.payload.get("qty", 1))


def handle_remove_from_cart(event: Event, session: SalesSession) -> SalesSession:
    return remove_from_cart(session, event.payload["product_id"])


def handle_clear_cart(event: Event, session: SalesSession) -> SalesSession:
    return clear_cart(session)


def handle_set_item_price(event: Event, session: SalesSession) -> SalesSession:
    return set_item_override(session, event.payload["product_id"], event.payload["price"])


def handle_clear_item_price(event: Event, session: SalesSession) -> SalesSession:
    return clear_item_override(session, event.payload["product_id"])


def handle_set_total(event: Event, session: SalesSession) -> SalesSession:
    return set_order_override(session, event.payload["total"])


def handle_clear_total(event: Event, session: SalesSession) -> SalesSession:
    return clear_order_override(session)


def handle_set_display_currency(event: Event, session: SalesSession) -> SalesSession:
    return set_display_currency(session, event.payload["currency"])


def handle_set_custom_rate(event: Event, session: SalesSession) -> SalesSession:
    return set_custom_rate(session, event.payload["currency"], event.payload["rate"])


def handle_clear_custom_rates(event: Event, session: SalesSession) -> SalesSession:
    return clear_custom_rates(session)


def create_session_bus() -> SessionBus:
    bus = SessionBus()
    bus = bus.subscribe("ADD_TO_CART", handle_add_to_cart)
    bus = bus.subscribe("REMOVE_FROM_CART", handle_remove_from_cart)
    bus = bus.subscribe("CLEAR_CART", handle_clear_cart)
    bus = bus.subscribe("SET_ITEM_PRICE", handle_set_item_price)
    bus = bus.subscribe("CLEAR_ITEM_PRICE", handle_clear_item_price)
    bus = bus.subscribe("SET_TOTAL", handle_set_total)
    bus = bus.subscribe("CLEAR_TOTAL", handle_clear_total)
    bus = bus.subscribe("SET_DISPLAY_CURRENCY", handle_set_display_currency)
    bus = bus.subscribe("SET_CUSTOM_RATE", handle_set_custom_rate)
    bus = bus.subscribe("CLEAR_CUSTOM_RATES", handle_clear_custom_rates)
    return bus


def apply_events(bus: SessionBus, events: Tuple[Event, ...], session: SalesSession) -> SalesSession:
    return reduce(lambda s, e: bus.publish(e, s), events, session)
