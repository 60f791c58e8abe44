import sys
import os
import math

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from pos_core.domain import ExchangeRates, SalesSession
from pos_core.currency import (
    clear_custom_rates,
    conversion_rate,
    convert,
    from_display,
    get_effective_rate,
    round_up,
    set_custom_rate,
    set_display_currency,
    to_display,
)

RATES = ExchangeRates(rates={"USD": 1.0, "EUR": 0.92, "GBP": 0.79})


def make_session(display="EUR", round_up_flag=False, rates=RATES):
    return SalesSession(
        cart=(),
        base_currency="EUR",
        display_currency=display,
        rates=rates,
        round_up=round_up_flag,
    )


def test_custom_rate_overrides_loaded_rate():
    rates = ExchangeRates(rates=RATES.rates, custom_rates={"GBP": 0.85})
    assert get_effective_rate(rates, "GBP") == 0.85
    assert get_effective_rate(rates, "EUR") == 0.92


def test_unknown_currency_raises():
    with pytest.raises(KeyError):
        get_effective_rate(RATES, "JPY")


def test_convert_is_single_ratio():
    assert convert(100, 1.0, 0.92) == pytest.approx(92.0)
    assert convert(92, 0.92, 1.0) == pytest.approx(100.0)


def test_round_trip_between_currencies():
    """A -> B -> A возвращает исходную сумму"""
    amount = 37.5
    eur, gbp = RATES.rates["EUR"], RATES.rates["GBP"]
    assert convert(convert(amount, eur, gbp), gbp, eur) == pytest.approx(amount)

    session = make_session("USD")
    assert from_display(to_display(amount, session), session) == pytest.approx(amount)


def test_same_currency_never_rounds():
    session = make_session("EUR", round_up_flag=True)
    assert to_display(10.25, session) == 10.25
    assert conversion_rate(session) == 1.0


def test_round_up_only_on_conversion():
    session = make_session("USD", round_up_flag=True)
    # 10 / 0.92 = 10.87
    assert to_display(10, session) == 11.0
    assert to_display(10, make_session("USD")) == pytest.approx(10 / 0.92)


def test_round_up_is_ceiling_and_ignores_float_noise():
    assert round_up(10.2) == 11.0
    assert round_up(10.0) == 10.0
    assert round_up(11.000000000000002) == 11.0


def test_from_display_is_not_rounded():
    session = make_session("USD", round_up_flag=True)
    assert from_display(10, session) == pytest.approx(9.2)


def test_set_custom_rate_rejects_bad_values():
    session = make_session()
    assert set_custom_rate(session, "GBP", 0) is session
    assert set_custom_rate(session, "GBP", float("nan")) is session
    assert set_custom_rate(session, "GBP", "1.1") is session
    assert set_custom_rate(session, "GBP", None) is session
    assert set_custom_rate(session, "GBP", True) is session
    assert set_custom_rate(session, "JPY", 1.2) is session

    updated = set_custom_rate(session, "GBP", 0.8)
    assert get_effective_rate(updated.rates, "GBP") == 0.8
    assert get_effective_rate(clear_custom_rates(updated).rates, "GBP") == 0.79


def test_set_display_currency():
    session = make_session()
    assert set_display_currency(session, "GBP").display_currency == "GBP"
    assert set_display_currency(session, "XXX") is session


def test_conversion_rate_uses_effective_rates():
    session = make_session("USD")
    assert math.isclose(conversion_rate(session), 1 / 0.92)
