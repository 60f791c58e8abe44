import logging
import math
from dataclasses import replace

from .domain import ExchangeRates, SalesSession

logger = logging.getLogger(__name__)

# погрешность float, которую отбрасываем перед округлением вверх
_CEIL_EPSILON_DIGITS = 9


def is_amount(value) -> bool:
    """Конечное число (bool и строки не считаются)"""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def get_effective_rate(rates: ExchangeRates, currency: str) -> float:
    """Ручной курс, если задан, иначе загруженный (KeyError для неизвестной валюты)"""
    if currency in rates.custom_rates:
        return rates.custom_rates[currency]
    return rates.rates[currency]


def convert(amount: float, from_rate: float, to_rate: float) -> float:
    """
    Пересчёт между валютами через общую опорную валюту:
    amount * (to_rate / from_rate), без цепочек конвертаций
    """
    return amount * (to_rate / from_rate)


def round_up(amount: float) -> float:
    return float(math.ceil(round(amount, _CEIL_EPSILON_DIGITS)))


def conversion_rate(session: SalesSession) -> float:
    """Коэффициент основная валюта -> валюта отображения"""
    if session.display_currency == session.base_currency:
        return 1.0
    return get_effective_rate(session.rates, session.display_currency) / get_effective_rate(
        session.rates, session.base_currency
    )


def rounds(session: SalesSession) -> bool:
    """Округление вверх работает только при реальной конвертации"""
    return session.round_up and session.display_currency != session.base_currency


def to_display(amount: float, session: SalesSession) -> float:
    """Сумма в основной валюте -> валюта отображения (с округлением вверх по политике)"""
    if session.display_currency == session.base_currency:
        return amount
    converted = convert(
        amount,
        get_effective_rate(session.rates, session.base_currency),
        get_effective_rate(session.rates, session.display_currency),
    )
    return round_up(converted) if session.round_up else converted


def from_display(amount: float, session: SalesSession) -> float:
    """Обратный пересчёт: валюта отображения -> основная, без округления"""
    if session.display_currency == session.base_currency:
        return amount
    return convert(
        amount,
        get_effective_rate(session.rates, session.display_currency),
        get_effective_rate(session.rates, session.base_currency),
    )


# ============ Настройки валют сессии ============


def set_display_currency(session: SalesSession, currency: str) -> SalesSession:
    if currency not in session.rates.rates:
        logger.warning("Unknown display currency %r ignored", currency)
        return session
    return replace(session, display_currency=currency)


def set_custom_rate(session: SalesSession, currency: str, rate: float) -> SalesSession:
    """Ручной курс; некорректное значение оставляет сессию без изменений"""
    if currency not in session.rates.rates or not is_amount(rate) or rate <= 0:
        logger.warning("Rejected custom rate %r for %s", rate, currency)
        return session
    rates = ExchangeRates(
        rates=session.rates.rates,
        custom_rates={**session.rates.custom_rates, currency: rate},
    )
    return replace(session, rates=rates)


def clear_custom_rates(session: SalesSession) -> SalesSession:
    return replace(session, rates=ExchangeRates(rates=session.rates.rates))
