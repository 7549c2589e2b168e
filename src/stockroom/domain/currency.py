"""Currency normalization between the canonical storage currency and bolívares.

All persisted prices are USD. Invoices may be printed in bolívares (``Bs``);
their amounts are divided by the exchange rate (Bs per USD) on the way in and
multiplied by it for display.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from ..errors import InvalidExchangeRateError, UnsupportedCurrencyError

CANONICAL_CURRENCY = "USD"
SECONDARY_CURRENCY = "Bs"
SUPPORTED_CURRENCIES = (CANONICAL_CURRENCY, SECONDARY_CURRENCY)

# Spellings seen on Venezuelan fiscal printers and in extraction output.
_CURRENCY_ALIASES = {
    "usd": CANONICAL_CURRENCY,
    "us$": CANONICAL_CURRENCY,
    "$": CANONICAL_CURRENCY,
    "ref": CANONICAL_CURRENCY,
    "bs": SECONDARY_CURRENCY,
    "bs.": SECONDARY_CURRENCY,
    "bsd": SECONDARY_CURRENCY,
    "bs.d": SECONDARY_CURRENCY,
    "bs.d.": SECONDARY_CURRENCY,
    "bss": SECONDARY_CURRENCY,
    "bs.s": SECONDARY_CURRENCY,
    "bs.s.": SECONDARY_CURRENCY,
    "ves": SECONDARY_CURRENCY,
    "vef": SECONDARY_CURRENCY,
}


def normalize_currency_code(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise UnsupportedCurrencyError(f"Unsupported currency: {value!r}")
    code = _CURRENCY_ALIASES.get(value.strip().lower().replace(" ", ""))
    if code is None:
        raise UnsupportedCurrencyError(f"Unsupported currency: {value!r}")
    return code


def is_valid_rate(rate: Optional[float]) -> bool:
    if rate is None or isinstance(rate, bool):
        return False
    try:
        value = float(rate)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0


def _require_rate(rate: Optional[float]) -> float:
    if not is_valid_rate(rate):
        raise InvalidExchangeRateError(f"Exchange rate must be a positive finite number, got {rate!r}")
    return float(rate)


def convert(amount: float, source: str, target: str, rate: Optional[float]) -> float:
    """Convert `amount` from `source` to `target` currency.

    Same-currency conversions return the amount untouched and never look at
    `rate`; cross-currency conversions require a positive finite rate.
    """
    src = normalize_currency_code(source)
    dst = normalize_currency_code(target)
    if src == dst:
        return amount
    r = _require_rate(rate)
    if src == SECONDARY_CURRENCY:
        return amount / r
    return amount * r


def to_canonical(amount: float, source_currency: str, rate: Optional[float]) -> float:
    return convert(amount, source_currency, CANONICAL_CURRENCY, rate)


def from_canonical(amount: float, target_currency: str, rate: Optional[float]) -> float:
    return convert(amount, CANONICAL_CURRENCY, target_currency, rate)


def needs_rate(currency: str) -> bool:
    """True when amounts in `currency` cannot be stored without an exchange rate."""
    return normalize_currency_code(currency) != CANONICAL_CURRENCY
