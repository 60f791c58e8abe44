"""
Ручные цены: цена позиции и итог заказа.

Значения вводятся в валюте отображения и хранятся в основной валюте.
Некорректный ввод не бросает исключений: возвращается прежняя сессия.
"""

import logging
from dataclasses import replace
from typing import Optional

from .cart import find_item
from .currency import from_display, is_amount
from .domain import SalesSession

logger = logging.getLogger(__name__)


def _set_item_price(
    session: SalesSession, product_id: str, price: Optional[float]
) -> SalesSession:
    updated = tuple(
        replace(it, override_price=price) if it.product.id == product_id else it
        for it in session.cart
    )
    return replace(session, cart=updated)


def set_item_override(
    session: SalesSession, product_id: str, price_in_display: float
) -> SalesSession:
    if not is_amount(price_in_display) or price_in_display <= 0:
        logger.warning("Rejected price override %r for %s", price_in_display, product_id)
        return session
    if find_item(session, product_id).is_none():
        logger.warning("Price override for %s ignored: not in cart", product_id)
        return session
    return _set_item_price(session, product_id, from_display(price_in_display, session))


def clear_item_override(session: SalesSession, product_id: str) -> SalesSession:
    if find_item(session, product_id).is_none():
        return session
    return _set_item_price(session, product_id, None)


def set_order_override(session: SalesSession, total_in_display: float) -> SalesSession:
    if not is_amount(total_in_display) or total_in_display < 0:
        logger.warning("Rejected total override %r", total_in_display)
        return session
    return replace(session, order_override=from_display(total_in_display, session))


def clear_order_override(session: SalesSession) -> SalesSession:
    return replace(session, order_override=None)
