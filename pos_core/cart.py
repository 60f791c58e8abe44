from dataclasses import replace
from typing import Tuple

from .domain import CartItem, Product, SalesSession
from .ftypes import Maybe


# ============ Операции с корзиной (чистые функции) ============
# Любое изменение корзины сбрасывает ручной итог заказа


def find_item(session: SalesSession, product_id: str) -> Maybe[CartItem]:
    return Maybe.of(next((it for it in session.cart if it.product.id == product_id), None))


def item_quantity(session: SalesSession, product_id: str) -> int:
    return find_item(session, product_id).map(lambda it: it.quantity).get_or_else(0)


def _with_cart(session: SalesSession, cart: Tuple[CartItem, ...]) -> SalesSession:
    return replace(session, cart=cart, order_override=None)


def add_to_cart(session: SalesSession, product: Product, qty: int = 1) -> SalesSession:
    """Новая позиция с количеством qty или увеличение существующей"""
    if qty <= 0:
        return session

    if find_item(session, product.id).is_some():
        updated = tuple(
            replace(it, quantity=it.quantity + qty) if it.product.id == product.id else it
            for it in session.cart
        )
    else:
        updated = session.cart + (CartItem(product=product, quantity=qty),)

    return _with_cart(session, updated)


def remove_from_cart(session: SalesSession, product_id: str) -> SalesSession:
    """Уменьшает количество на 1; позиция с количеством 1 удаляется"""
    existing = find_item(session, product_id)
    if existing.is_none():
        return session

    if existing.value.quantity <= 1:
        updated = tuple(filter(lambda it: it.product.id != product_id, session.cart))
    else:
        updated = tuple(
            replace(it, quantity=it.quantity - 1) if it.product.id == product_id else it
            for it in session.cart
        )

    return _with_cart(session, updated)


def clear_cart(session: SalesSession) -> SalesSession:
    return _with_cart(session, ())
