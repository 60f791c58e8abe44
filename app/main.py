import sys
import os
import logging
import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pos_core.catalog import load_seed
from pos_core.config import get_settings
from pos_core.domain import CURRENCIES, PAYMENT_METHODS
from pos_core.service import CatalogService, SalesService, new_session
from Sales_Service.report import (
    currency_summary,
    daily_totals,
    main_currency_total,
    sales_summary,
    type_group_summary,
    type_subtotals_report,
)

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("pos_app")


# ============ Кэширование данных ============
@st.cache_data
def get_data(path: str):
    return load_seed(path)


st.set_page_config(
    page_title="Event POS",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

catalog, rates, seed_transactions = get_data(settings.seed_path)
catalog_service = CatalogService(catalog)

if "transactions" not in st.session_state:
    st.session_state.transactions = list(seed_transactions)

if "locked" not in st.session_state:
    st.session_state.locked = False

if "session" not in st.session_state:
    st.session_state.session = new_session(settings, rates)


def record_transaction(transaction):
    st.session_state.transactions.insert(0, transaction)


sales = SalesService(
    catalog_service,
    st.session_state.session,
    sink=record_transaction,
    is_locked=lambda: st.session_state.locked,
    settlement_currency=settings.card_settlement_currency,
)


def commit():
    """Сохраняет новую сессию и перерисовывает экран"""
    st.session_state.session = sales.session
    st.rerun()


# ============ Вспомогательные функции ============
def format_money(amount: float, currency: str, whole: bool = False) -> str:
    symbol = CURRENCIES.get(currency, {}).get("symbol", currency)
    return f"{symbol}{amount:.0f}" if whole else f"{symbol}{amount:.2f}"


# ============ SIDEBAR ============
with st.sidebar:
    st.header("🧾 Event POS")
    page = st.radio(
        "Раздел:",
        ["🛒 Касса", "📜 История", "📑 Итоги", "⚙️ Настройки"],
        label_visibility="collapsed",
    )
    st.divider()
    currencies = list(rates.rates.keys())
    chosen = st.selectbox(
        "💱 Валюта",
        currencies,
        index=currencies.index(sales.session.display_currency),
    )
    if chosen != sales.session.display_currency:
        sales.set_display_currency(chosen)
        commit()
    if st.session_state.locked:
        st.warning("🔒 Мероприятие заблокировано")


# ============ PAGE: КАССА ============
if page == "🛒 Касса":
    session = sales.session
    totals = sales.totals()
    currency = session.display_currency

    left, right = st.columns([3, 2])

    with left:
        st.header("📦 Товары")
        for product_type in catalog_service.visible_types():
            st.subheader(product_type.name)
            products = catalog_service.products_of_type(product_type.id)
            cols = st.columns(3)
            for idx, p in enumerate(products):
                with cols[idx % 3]:
                    qty = sum(it.quantity for it in session.cart if it.product.id == p.id)
                    label = f"{p.name} ({qty})" if qty else p.name
                    if st.button(label, key=f"add_{p.id}", use_container_width=True):
                        sales.add(p.id)
                        commit()

    with right:
        st.header("🛒 Корзина")
        if not session.cart:
            st.info("Корзина пуста")

        for item in session.cart:
            cols = st.columns([4, 1, 1])
            with cols[0]:
                price = item.override_price if item.override_price is not None else item.product.price
                mark = " ✏️" if item.override_price is not None else ""
                st.write(f"**{item.product.name}** × {item.quantity} — {price:.2f} {session.base_currency}{mark}")
            with cols[1]:
                if st.button("➖", key=f"remove_{item.product.id}"):
                    sales.remove(item.product.id)
                    commit()
            with cols[2]:
                if st.button("➕", key=f"plus_{item.product.id}"):
                    sales.add(item.product.id)
                    commit()

            if sales.can_edit_prices():
                with st.expander("Цена", expanded=False):
                    new_price = st.number_input(
                        f"Цена за единицу ({currency})",
                        min_value=0.0,
                        value=0.0,
                        step=0.5,
                        key=f"price_{item.product.id}",
                    )
                    c1, c2 = st.columns(2)
                    if c1.button("Применить", key=f"set_price_{item.product.id}"):
                        sales.set_item_price(item.product.id, new_price)
                        commit()
                    if c2.button("Сбросить", key=f"clear_price_{item.product.id}"):
                        sales.clear_item_price(item.product.id)
                        commit()

        st.divider()

        for row in totals.type_subtotals:
            label = f"{row.type.name} Subtotal"
            if row.promo_applied:
                label += f" 🏷️ {row.promo_name}"
            st.write(f"{label}: **{format_money(row.subtotal, currency, totals.rounded)}**")
            if row.config_error:
                st.error(f"⚠️ Акция «{row.config_error.promo_name}» настроена не полностью: {row.config_error.reason}")

        if totals.combo_subtotal:
            st.write(f"Наборы: **{format_money(totals.combo_subtotal, currency, totals.rounded)}**")
        if totals.other_subtotal:
            st.write(f"Прочее: **{format_money(totals.other_subtotal, currency, totals.rounded)}**")
        if totals.discount > 0:
            st.caption(f"Скидка: {format_money(totals.discount, currency)}")

        st.markdown(f"### 💰 Итого: **{format_money(totals.total, currency, totals.rounded)}**")
        if totals.override_active:
            st.caption(f"Расчётный итог: {format_money(totals.calculated_total, currency, totals.rounded)}")

        if session.cart and sales.can_edit_prices():
            with st.expander("✏️ Изменить итог"):
                forced = st.number_input(
                    f"Итог ({currency})", min_value=0.0, value=float(totals.total), step=1.0
                )
                c1, c2 = st.columns(2)
                if c1.button("Применить", key="set_total"):
                    sales.set_total(forced)
                    commit()
                if c2.button("Сбросить", key="clear_total"):
                    sales.clear_total()
                    commit()

        note = st.text_input("Заметка / email", key="note")
        cols = st.columns(len(PAYMENT_METHODS))
        for col, method in zip(cols, PAYMENT_METHODS):
            with col:
                if st.button(method.upper(), key=f"pay_{method}", type="primary", disabled=not session.cart):
                    result = sales.complete_transaction(method, note)
                    if result.is_right:
                        st.session_state.session = sales.session
                        st.success(f"✅ Оплачено: {format_money(result.value.total, result.value.currency)}")
                    else:
                        st.error(f"❌ {result.value['error']}")

        if session.cart and st.button("🗑️ Очистить корзину"):
            sales.clear()
            commit()


# ============ PAGE: ИСТОРИЯ ============
elif page == "📜 История":
    st.header("📜 История продаж")
    transactions = st.session_state.transactions

    if not transactions:
        st.info("Продаж пока нет")

    for t in transactions:
        with st.container():
            cols = st.columns([3, 2, 2, 2])
            with cols[0]:
                st.write(f"**{t.ts[:16].replace('T', ' ')}**")
                st.caption(", ".join(f"{line.name} × {line.quantity}" for line in t.items))
            with cols[1]:
                st.write(format_money(t.total, t.currency))
                if t.original_currency:
                    st.caption(f"({format_money(t.original_total, t.original_currency)})")
            with cols[2]:
                st.write(t.payment_method.upper())
            with cols[3]:
                if t.applied_promotions:
                    st.caption("🏷️ " + ", ".join(t.applied_promotions))
                if t.note:
                    st.caption(t.note)
            st.divider()


# ============ PAGE: ИТОГИ ============
elif page == "📑 Итоги":
    main = settings.base_currency
    transactions = tuple(st.session_state.transactions)
    summary = sales_summary(transactions, rates, main)

    st.header(f"📑 Итоги ({main})")
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("💰 Всего", format_money(main_currency_total(transactions, rates, main), main))
    with col2:
        st.metric("🧾 Продаж", summary["transactions"])
    with col3:
        st.metric("📊 Средний чек", format_money(summary["average"], main))

    st.divider()
    tab1, tab2, tab3 = st.tabs(["📦 По типам", "💳 По оплате", "📅 По дням"])

    with tab1:
        for row in type_subtotals_report(transactions, catalog, rates, main):
            st.write(f"**{row['name']} Subtotal**: {format_money(row['total'], main)}")
        st.divider()
        for group in type_group_summary(transactions, catalog, rates, main):
            with st.expander(f"{group['type']} — {format_money(group['total'], main)}"):
                for item in group["items"]:
                    st.write(f"{item['name']}: {item['quantity']} шт, {format_money(item['amount'], main)}")

    with tab2:
        for cur, by_method in currency_summary(transactions).items():
            st.subheader(cur)
            for method, cell in by_method.items():
                st.write(f"{method.upper()}: {format_money(cell['total'], cur)} ({cell['count']})")

    with tab3:
        days = daily_totals(transactions, rates, main)
        if days:
            st.bar_chart(dict(sorted(days.items())))


# ============ PAGE: НАСТРОЙКИ ============
elif page == "⚙️ Настройки":
    st.header("⚙️ Настройки")
    st.write(f"Основная валюта: **{settings.base_currency}**")
    st.write(f"Округление вверх при конвертации: **{'да' if settings.currency_round_up else 'нет'}**")
    st.session_state.locked = st.checkbox("🔒 Заблокировать мероприятие", value=st.session_state.locked)

    st.subheader("💱 Ручные курсы (к USD)")
    for cur in rates.rates:
        value = st.number_input(
            cur,
            min_value=0.0001,
            value=float(sales.session.rates.custom_rates.get(cur, rates.rates[cur])),
            step=0.01,
            format="%.4f",
            key=f"rate_{cur}",
        )
        if value != sales.session.rates.custom_rates.get(cur, rates.rates[cur]):
            sales.dispatch("SET_CUSTOM_RATE", currency=cur, rate=value)
            st.session_state.session = sales.session
    if st.button("Сбросить ручные курсы"):
        sales.dispatch("CLEAR_CUSTOM_RATES")
        commit()
