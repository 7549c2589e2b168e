from __future__ import annotations

import math

import pytest

from stockroom.domain.currency import (
    convert,
    from_canonical,
    is_valid_rate,
    normalize_currency_code,
    to_canonical,
)
from stockroom.errors import InvalidExchangeRateError, UnsupportedCurrencyError


@pytest.mark.parametrize("raw", ["usd", "USD", " $ ", "Ref", "US$"])
def test_usd_spellings(raw: str) -> None:
    assert normalize_currency_code(raw) == "USD"


@pytest.mark.parametrize("raw", ["Bs", "bs.", "Bs.D", "VES", "Bs.S", "vef"])
def test_bolivar_spellings(raw: str) -> None:
    assert normalize_currency_code(raw) == "Bs"


@pytest.mark.parametrize("raw", ["EUR", "", None, 5])
def test_unknown_currency_rejected(raw) -> None:
    with pytest.raises(UnsupportedCurrencyError):
        normalize_currency_code(raw)


def test_canonical_amount_passes_through_without_rate() -> None:
    assert to_canonical(12.5, "USD", None) == 12.5
    assert convert(3.0, "Bs", "bs", None) == 3.0


def test_bolivars_divided_by_rate() -> None:
    assert to_canonical(365.0, "Bs", 36.5) == pytest.approx(10.0)
    assert from_canonical(10.0, "Bs", 36.5) == pytest.approx(365.0)


@pytest.mark.parametrize("rate", [None, 0, -4.0, math.nan, math.inf, True, "abc"])
def test_conversion_refuses_bad_rate(rate) -> None:
    assert not is_valid_rate(rate)
    with pytest.raises(InvalidExchangeRateError):
        to_canonical(100.0, "Bs", rate)


def test_invalid_rate_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        convert(1.0, "USD", "Bs", 0)


@pytest.mark.parametrize("rate", [0.5, 1.0, 36.52, 4500.0])
@pytest.mark.parametrize("amount", [0.0, 1.0, 19.99, 12345.67])
def test_round_trip_within_tolerance(rate: float, amount: float) -> None:
    back = from_canonical(to_canonical(amount, "Bs", rate), "Bs", rate)
    assert back == pytest.approx(amount)
